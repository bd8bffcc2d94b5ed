"""The set of projects taking part in a build and their name resolution."""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from layerbuild.config import Configuration
from layerbuild.errors import (
    LayerbuildError,
    NotLinkableError,
    ResolutionError,
    UnresolvedDependencyError,
)
from layerbuild.libraries import LibraryRegistry
from layerbuild.model import ModuleRecord, ProjectType
from layerbuild.project import ResolvedProject

logger = logging.getLogger(__name__)

WILDCARD = "/*"


class ProjectCollection:
    """Owns every ResolvedProject of the active build."""

    def __init__(self) -> None:
        self._projects: list[ResolvedProject] = []
        self._by_name: dict[str, ResolvedProject] = {}

    @property
    def projects(self) -> list[ResolvedProject]:
        return list(self._projects)

    def __len__(self) -> int:
        return len(self._projects)

    def find_project(self, name: str) -> ResolvedProject | None:
        return self._by_name.get(name)

    def add_project(self, project: ResolvedProject) -> None:
        existing = self._by_name.get(project.name)
        if existing is not None:
            raise ResolutionError(
                f"Project '{project.name}' already exists, found in module "
                f"'{_module_name(existing)}' so another version from "
                f"'{_module_name(project)}' can't be registered"
            )
        self._projects.append(project)
        self._by_name[project.name] = project

    def populate_from_modules(self, modules: list[ModuleRecord]) -> None:
        problems: list[str] = []
        for module in modules:
            for record in module.projects:
                root = record.root_path
                if root is None:
                    root = (module.source_root or module.root_path) / record.name
                try:
                    self.add_project(ResolvedProject(record=record, module=module, root_path=root))
                except ResolutionError as e:
                    problems.extend(e.messages)

        if problems:
            raise ResolutionError(problems)

    # -- filtering ----------------------------------------------------------

    def filter_projects(self, config: Configuration) -> int:
        """Drop projects that do not take part in this build; return how many.

        Auto libraries become static or shared libraries here, following
        the configured library mode.
        """
        library_type = (
            ProjectType.SHARED_LIBRARY if config.libs == "shared" else ProjectType.STATIC_LIBRARY
        )
        old_projects = self._projects
        self._projects = []
        self._by_name = {}

        for project in old_projects:
            if project.type is ProjectType.DISABLED:
                continue
            if not config.is_development:
                if project.record.dev_only or project.type is ProjectType.TEST_APPLICATION:
                    continue
            if project.type is ProjectType.AUTO_LIBRARY:
                project.record = replace(project.record, type=library_type)
            self._projects.append(project)
            self._by_name[project.name] = project

        removed = len(old_projects) - len(self._projects)
        if removed:
            logger.info(
                "Filtered %d project(s) from the solution due to development flag",
                removed,
            )
        return removed

    # -- dependency resolution ----------------------------------------------

    def resolve_dependency(self, name: str, *, soft: bool = False) -> list[ResolvedProject]:
        """Resolve a dependency reference to the projects it names.

        ``prefix/*`` selects every static or shared library directly under
        ``prefix/``. A plain name must be a linkable library; a missing plain
        name is an error unless *soft* is set.
        """
        if name.endswith(WILDCARD):
            prefix = name[:-1]  # keeps the trailing "/"
            found: list[ResolvedProject] = []
            for project in self._projects:
                if not project.type.is_binary_library:
                    continue
                if not project.name.startswith(prefix):
                    continue
                if "/" in project.name[len(prefix):]:
                    continue
                if project not in found:
                    found.append(project)
            return found

        project = self.find_project(name)
        if project is None:
            if soft:
                return []
            raise UnresolvedDependencyError(name)

        if not project.type.is_linkable:
            raise NotLinkableError(name, project.type.value)
        return [project]

    def resolve_dependencies(self) -> None:
        """Resolve the dependency names of every project.

        All problems found across the whole collection are reported together,
        with every project that references each missing name.
        """
        missing: dict[str, list[str]] = defaultdict(list)
        problems: list[str] = []

        for project in self._projects:
            resolved: list[ResolvedProject] = []

            for name in project.record.dependencies:
                try:
                    deps = self.resolve_dependency(name)
                except UnresolvedDependencyError:
                    missing[name].append(project.name)
                    continue
                except NotLinkableError as e:
                    problems.append(f"Project '{project.name}': {e}")
                    continue
                _extend_unique(resolved, deps)

            for name in project.record.optional_dependencies:
                try:
                    deps = self.resolve_dependency(name, soft=True)
                except LayerbuildError as e:
                    logger.debug("Ignoring optional dependency of '%s': %s", project.name, e)
                    continue
                _extend_unique(resolved, deps)

            project.dependencies = [dep for dep in resolved if dep is not project]

        for name in sorted(missing):
            referencing = ", ".join(f"'{p}'" for p in missing[name])
            problems.append(
                f"Missing project '{name}' referenced by {len(missing[name])} "
                f"project(s): {referencing}"
            )

        if problems:
            raise ResolutionError(problems)

    def resolve_libraries(self, registry: LibraryRegistry) -> None:
        problems: list[str] = []
        used: dict[str, None] = {}

        for project in self._projects:
            project.libraries = []
            for name in project.record.library_dependencies:
                library = registry.find(name)
                if library is None:
                    problems.append(
                        f"Missing library '{name}' referenced in project '{project.name}'"
                    )
                    continue
                if library not in project.libraries:
                    project.libraries.append(library)
                used[library.name] = None

        logger.info("Found %d libraries in use across all projects", len(used))
        if problems:
            raise ResolutionError(problems)

    # -- content --------------------------------------------------------------

    def scan_content(self, workers: int = 1) -> int:
        """Scan every project's files in parallel; return the total file count."""
        results: list[int | ResolutionError] = []
        with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
            for result in pool.map(_scan_one, self._projects):
                results.append(result)

        total = 0
        problems: list[str] = []
        for project, result in zip(self._projects, results):
            if isinstance(result, ResolutionError):
                problems.extend(f"Project '{project.name}': {m}" for m in result.messages)
            else:
                total += result

        if problems:
            raise ResolutionError(problems)
        return total


def _scan_one(project: ResolvedProject) -> int | ResolutionError:
    try:
        return project.scan_content()
    except ResolutionError as e:
        return e


def _extend_unique(target: list[ResolvedProject], items: list[ResolvedProject]) -> None:
    for item in items:
        if item not in target:
            target.append(item)


def _module_name(project: ResolvedProject) -> str:
    return project.module.name if project.module is not None else "<none>"
