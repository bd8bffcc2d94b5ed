"""The generation graph: one decorated node per buildable project.

Nodes are created from a resolved and filtered ProjectCollection, wired to
their direct dependencies, given ordered transitive closures and a global
build order, and finally have a few generation flags downgraded depending on
which runtime providers they can reach.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path

from layerbuild.analysis import find_cycles
from layerbuild.collection import ProjectCollection
from layerbuild.config import Configuration
from layerbuild.errors import CycleError, ResolutionError
from layerbuild.graph import build_order, transitive_closure
from layerbuild.model import (
    FileType,
    LibraryRecord,
    ModuleRecord,
    ProjectFile,
    ProjectType,
    SuiteFramework,
)
from layerbuild.project import ResolvedProject

logger = logging.getLogger(__name__)

# Runtime providers looked up by name during flag propagation.
OBJECT_PROVIDER = "core_object"
SYSTEM_PROVIDER = "core_system"
FILE_PROVIDER = "core_file"

EXTERNAL_GROUP = "external"
CACHE_MOUNT = "/Cache/"


def guid_from_text(text: str) -> str:
    """Deterministic GUID string derived only from *text*."""
    digest = hashlib.md5(text.encode("utf-8"), usedforsecurity=False).hexdigest().upper()
    return "{%s-%s-%s-%s-%s}" % (
        digest[:8],
        digest[8:12],
        digest[12:16],
        digest[16:20],
        digest[20:],
    )


def symbol_name(name: str) -> str:
    """``core/object`` -> ``core_object``; used for files, macros and lookups."""
    return name.replace("/", "_")


@dataclass(eq=False)
class Group:
    """Presentation folder of the solution tree."""

    name: str
    merged_name: str
    guid: str
    path: str = ""
    parent: Group | None = None
    children: list[Group] = field(default_factory=list)
    nodes: list[GraphNode] = field(default_factory=list)

    def child(self, name: str) -> Group:
        for group in self.children:
            if group.name == name:
                return group
        path = f"{self.path}/{name}"
        group = Group(
            name=name,
            merged_name=f"{self.merged_name}_{name}",
            guid=guid_from_text("GROUP" + path),
            path=path,
            parent=self,
        )
        self.children.append(group)
        return group

    def walk(self):
        """Yield this group and all descendants, depth first."""
        yield self
        for group in self.children:
            yield from group.walk()

    def __repr__(self) -> str:
        return f"Group({self.merged_name!r})"


@dataclass(eq=False)
class GraphNode:
    """Generation-time view of a buildable project."""

    name: str
    type: ProjectType
    root_path: Path | None = None
    module: ModuleRecord | None = None
    guid: str = ""
    namespace: str = ""

    use_precompiled_headers: bool = False
    use_exceptions: bool = False
    use_window_subsystem: bool = False
    use_reflection: bool = True
    use_embedded_files: bool = False
    use_static_init: bool = False
    detached: bool = False
    generate_main: bool = False
    pre_main: bool = False
    self_test: bool = False
    third_party: bool = False
    has_init: bool = False
    has_pre_init: bool = False
    test_framework: SuiteFramework = SuiteFramework.GTEST

    app_class: str = ""
    app_header: str = ""
    app_systems: tuple[str, ...] = ()

    generated_path: Path = Path()
    project_path: Path = Path()
    output_path: Path = Path()

    glue_header: Path | None = None
    public_header: Path | None = None
    private_header: Path | None = None
    build_header: Path | None = None
    reflection_file: Path | None = None

    direct_dependencies: list[GraphNode] = field(default_factory=list)
    all_dependencies: list[GraphNode] = field(default_factory=list)
    libraries: list[LibraryRecord] = field(default_factory=list)
    files: list[ProjectFile] = field(default_factory=list)
    include_paths: list[Path] = field(default_factory=list)
    local_defines: tuple[tuple[str, str], ...] = ()
    global_defines: tuple[tuple[str, str], ...] = ()
    group: Group | None = None

    @property
    def symbol(self) -> str:
        return symbol_name(self.name)

    @property
    def is_local(self) -> bool:
        return self.module.local if self.module is not None else True

    def has_dependency(self, name: str) -> bool:
        """Whether *name* is in the transitive dependency set of this node."""
        wanted = symbol_name(name)
        return any(dep.symbol == wanted for dep in self.all_dependencies)

    def provides_or_depends_on(self, name: str) -> bool:
        return self.symbol == symbol_name(name) or self.has_dependency(name)

    def __repr__(self) -> str:
        return f"GraphNode({self.name!r}, {self.type.value})"


@dataclass(frozen=True)
class DataFolder:
    mount_path: str
    data_path: Path


class SolutionGraph:
    """Ordered, decorated dependency graph consumed by code generation and renderers."""

    def __init__(self, config: Configuration, name: str):
        self.config = config
        self.name = name
        self.root_group = Group(name=name, merged_name=name, guid=guid_from_text(name), path=name)
        self.nodes: list[GraphNode] = []
        self.source_roots: list[Path] = []
        self.data_folders: list[DataFolder] = []
        self._by_name: dict[str, GraphNode] = {}

    @classmethod
    def build(cls, collection: ProjectCollection, config: Configuration, name: str) -> SolutionGraph:
        graph = cls(config, name)
        graph.extract_projects(collection)
        return graph

    def find(self, name: str) -> GraphNode | None:
        return self._by_name.get(name)

    def groups(self) -> list[Group]:
        return list(self.root_group.walk())

    # -- construction -------------------------------------------------------

    def extract_projects(self, collection: ProjectCollection) -> None:
        """Build nodes, closures and order from *collection*.

        Raises CycleError on cyclic dependencies and ResolutionError on
        conflicting data mounts; the graph is complete in the latter case.
        """
        self.data_folders.append(DataFolder(CACHE_MOUNT, self.config.cache_path / "internal"))

        used_modules: list[ModuleRecord] = []
        node_for: dict[int, GraphNode] = {}
        for project in collection.projects:
            if project.type is ProjectType.DISABLED:
                continue
            node = self._create_node(project)
            self.nodes.append(node)
            self._by_name[node.name] = node
            node_for[id(project)] = node
            if project.module is not None and project.module not in used_modules:
                used_modules.append(project.module)
            self._assign_group(node, project)

        for project in collection.projects:
            node = node_for.get(id(project))
            if node is None:
                continue
            for dep in project.dependencies:
                dep_node = node_for.get(id(dep))
                if dep_node is not None:
                    node.direct_dependencies.append(dep_node)

        self._compute_order()
        self._propagate_flags()

        for module in used_modules:
            for path in module.include_paths or ((module.source_root,) if module.source_root else ()):
                if path not in self.source_roots:
                    self.source_roots.append(path)

        self._collect_data_folders(used_modules)
        logger.info("Solution graph: %d node(s), %d group(s)", len(self.nodes), len(self.groups()))

    def _create_node(self, project: ResolvedProject) -> GraphNode:
        record = project.record
        base = self.config.solution_path
        node = GraphNode(
            name=project.name,
            type=record.type,
            root_path=project.root_path,
            module=project.module,
            guid=record.guid or guid_from_text(project.name),
            namespace=record.namespace or symbol_name(project.name.split("/")[0]),
            use_precompiled_headers=record.use_precompiled_headers,
            use_exceptions=record.use_exceptions,
            use_window_subsystem=record.window_subsystem,
            use_static_init=record.use_static_init,
            detached=record.detached,
            generate_main=record.generate_main,
            pre_main=record.pre_main,
            self_test=record.self_test,
            third_party=record.third_party,
            has_init=record.has_init,
            has_pre_init=record.has_pre_init,
            test_framework=record.test_framework,
            app_class=record.app_class,
            app_header=record.app_header,
            app_systems=record.app_systems,
            generated_path=base / "generated" / project.name,
            project_path=base / "projects" / project.name,
            output_path=base / "output" / project.name,
            libraries=list(project.libraries),
            local_defines=record.local_defines,
            global_defines=record.global_defines,
        )

        for file in project.files:
            if file.name == "init.cpp":
                node.has_init = True
                node.has_pre_init = True
            if file.type is FileType.MEDIA:
                node.use_embedded_files = True
            node.files.append(
                ProjectFile(
                    name=file.name,
                    absolute_path=file.absolute_path,
                    type=file.type,
                    filter_path=file.filter_path,
                    scan_relative_path=file.scan_relative_path,
                    project_relative_path=file.project_relative_path,
                    use_precompiled_header=record.use_precompiled_headers
                    and file.name.endswith(".cpp"),
                )
            )

        public_header = project.root_path / "include" / "public.h"
        if public_header.is_file():
            node.public_header = public_header
        private_header = project.root_path / "src" / "private.h"
        if private_header.is_file():
            node.private_header = private_header

        return node

    def _assign_group(self, node: GraphNode, project: ResolvedProject) -> None:
        if not project.is_local:
            root = self.root_group.child(EXTERNAL_GROUP)
        elif project.record.solution_group:
            root = self._create_group(project.record.solution_group.split("/"), self.root_group)
        else:
            root = self.root_group

        if project.record.group:
            segments = project.record.group.split("/")
        else:
            segments = project.name.split("/")[:-1]

        node.group = self._create_group(segments, root)
        node.group.nodes.append(node)

    def _create_group(self, segments: list[str], parent: Group) -> Group:
        group = parent
        for segment in segments:
            if segment:
                group = group.child(segment)
        return group

    def _compute_order(self) -> None:
        def edges(node: GraphNode) -> list[GraphNode]:
            return node.direct_dependencies

        def key(node: GraphNode) -> str:
            return node.name

        try:
            for node in self.nodes:
                node.all_dependencies = transitive_closure(node, edges, key)
            self.nodes = build_order(self.nodes, edges, key)
        except CycleError as e:
            e.cycles = find_cycles(
                {n.name: [d.name for d in n.direct_dependencies] for n in self.nodes}
            )
            for cycle in e.cycles:
                logger.error("Dependency cycle between: %s", ", ".join(cycle))
            raise

        for node in self.nodes:
            logger.debug("  %s", node.name)

    def _propagate_flags(self) -> None:
        for node in self.nodes:
            if node.use_reflection and not node.provides_or_depends_on(OBJECT_PROVIDER):
                node.use_reflection = False
            if node.use_static_init and not node.provides_or_depends_on(SYSTEM_PROVIDER):
                node.use_static_init = False
            if node.use_embedded_files and not node.has_dependency(FILE_PROVIDER):
                node.use_embedded_files = False

    def _collect_data_folders(self, modules: list[ModuleRecord]) -> None:
        seen: set[str] = {CACHE_MOUNT.lower()}
        problems: list[str] = []
        for module in modules:
            for mount in module.data_mounts:
                key = mount.mount_path.lower()
                if key in seen:
                    problems.append(f"Duplicated entry for mounting data to '{mount.mount_path}'")
                    continue
                seen.add(key)
                self.data_folders.append(DataFolder(mount.mount_path, mount.source_path))
        if problems:
            raise ResolutionError(problems)


# -- queries shared by renderers ---------------------------------------------


def collect_defines(node: GraphNode) -> list[tuple[str, str]]:
    """Preprocessor definitions for *node*: dependencies' global, own global, own local."""
    defines: dict[str, str] = {}
    for dep in node.all_dependencies:
        if node.type is ProjectType.STATIC_LIBRARY and dep.type is ProjectType.SHARED_LIBRARY:
            logger.warning(
                "Static library '%s' is using a shared library '%s', this may not work",
                node.name,
                dep.name,
            )
        defines.update(dep.global_defines)
    defines.update(node.global_defines)
    defines.update(node.local_defines)
    return list(defines.items())


def collect_include_paths(graph: SolutionGraph, node: GraphNode) -> list[Path]:
    paths: list[Path] = list(graph.source_roots)
    for dep in node.all_dependencies:
        for library in dep.libraries:
            paths.extend(library.include_paths)
    for library in node.libraries:
        paths.extend(library.include_paths)
    if node.root_path is not None:
        if node.third_party:
            paths.append(node.root_path)
        else:
            paths.append(node.root_path / "src")
            paths.append(node.root_path / "include")
    paths.append(graph.config.shared_glue_path)
    paths.append(node.generated_path)
    paths.extend(node.include_paths)

    unique: list[Path] = []
    for path in paths:
        if path not in unique:
            unique.append(path)
    return unique
