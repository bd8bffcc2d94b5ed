"""Load module manifests (module.yaml) into ModuleRecords."""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path

import yaml

from layerbuild.errors import ManifestError
from layerbuild.model import (
    DataMount,
    ModuleDependency,
    ModuleRecord,
    ProjectRecord,
    ProjectType,
    SuiteFramework,
)

logger = logging.getLogger(__name__)

MODULE_MANIFEST_NAME = "module.yaml"

# manifest key -> ProjectRecord field
_FLAG_KEYS = {
    "precompiled_headers": "use_precompiled_headers",
    "static_init": "use_static_init",
    "exceptions": "use_exceptions",
    "dev_only": "dev_only",
    "detached": "detached",
    "generate_main": "generate_main",
    "self_test": "self_test",
    "window_subsystem": "window_subsystem",
    "pre_main": "pre_main",
    "third_party": "third_party",
    "has_init": "has_init",
    "has_pre_init": "has_pre_init",
}

_TYPE_NAMES = {
    "disabled": ProjectType.DISABLED,
    "app": ProjectType.APPLICATION,
    "application": ProjectType.APPLICATION,
    "test": ProjectType.TEST_APPLICATION,
    "test_application": ProjectType.TEST_APPLICATION,
    "static": ProjectType.STATIC_LIBRARY,
    "static_library": ProjectType.STATIC_LIBRARY,
    "shared": ProjectType.SHARED_LIBRARY,
    "shared_library": ProjectType.SHARED_LIBRARY,
    "library": ProjectType.AUTO_LIBRARY,
    "auto": ProjectType.AUTO_LIBRARY,
    "auto_library": ProjectType.AUTO_LIBRARY,
    "header": ProjectType.HEADER_LIBRARY,
    "header_library": ProjectType.HEADER_LIBRARY,
}


def load_modules(root: Path, cache_path: Path) -> list[ModuleRecord]:
    """Load the module at *root* and every module it depends on.

    Local ``path`` dependencies are relative to the declaring manifest;
    ``repo`` dependencies must already be checked out under
    ``<cache_path>/modules/<repo stem>`` and are marked non-local.
    """
    modules: list[ModuleRecord] = []
    loaded: set[Path] = set()
    pending: deque[tuple[Path, bool]] = deque([(Path(root).resolve(), True)])

    while pending:
        module_dir, local = pending.popleft()
        if module_dir in loaded:
            continue
        loaded.add(module_dir)

        module = load_module_manifest(module_dir / MODULE_MANIFEST_NAME, local=local)
        modules.append(module)
        logger.debug("Loaded module '%s' from %s", module.name, module_dir)

        for dep in module.dependencies:
            if dep.path:
                pending.append(((module_dir / dep.path).resolve(), local))
            elif dep.repo:
                checkout = (Path(cache_path) / "modules" / _repo_stem(dep.repo)).resolve()
                if not (checkout / MODULE_MANIFEST_NAME).is_file():
                    raise ManifestError(
                        f"Module '{module.name}' depends on '{dep.repo}' which is not "
                        f"available at {checkout}"
                    )
                pending.append((checkout, False))

    logger.info("Loaded %d module(s)", len(modules))
    return modules


def _repo_stem(repo: str) -> str:
    stem = repo.rstrip("/").rsplit("/", 1)[-1]
    return stem[:-4] if stem.endswith(".git") else stem


def _read_yaml(path: Path) -> dict:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest {path} must be a mapping")
    return data


def load_module_manifest(path: Path, *, local: bool = True) -> ModuleRecord:
    data = _read_yaml(path)
    root = path.parent
    name = str(data.get("name") or root.name)
    source_root = root / data.get("source_root", "src")

    dependencies = []
    for entry in data.get("dependencies", []):
        if not isinstance(entry, dict) or not (entry.get("repo") or entry.get("path")):
            raise ManifestError(f"Module '{name}': dependency needs a 'repo' or a 'path': {entry!r}")
        dependencies.append(
            ModuleDependency(repo=entry.get("repo"), branch=entry.get("branch"), path=entry.get("path"))
        )

    projects = []
    problems = []
    for entry in data.get("projects", []):
        try:
            projects.append(_parse_project(entry, root))
        except ManifestError as e:
            problems.extend(f"Module '{name}': {m}" for m in e.messages)
    if problems:
        raise ManifestError(problems)

    mounts = tuple(
        DataMount(mount_path=str(m["mount"]), source_path=root / m["path"])
        for m in data.get("data", [])
    )

    return ModuleRecord(
        name=name,
        root_path=root,
        source_root=source_root,
        local=local,
        dependencies=tuple(dependencies),
        projects=tuple(projects),
        data_mounts=mounts,
        include_paths=tuple(root / p for p in data.get("include_paths", [])),
    )


def _parse_project(entry: dict, module_root: Path) -> ProjectRecord:
    if not isinstance(entry, dict) or not entry.get("name"):
        raise ManifestError(f"Project entry needs a name: {entry!r}")
    name = str(entry["name"])

    type_name = str(entry.get("type", "disabled")).lower()
    if type_name not in _TYPE_NAMES:
        raise ManifestError(f"Project '{name}' has unknown type '{type_name}'")

    framework = str(entry.get("test_framework", "gtest")).lower()
    try:
        test_framework = SuiteFramework(framework)
    except ValueError:
        raise ManifestError(f"Project '{name}' has unknown test framework '{framework}'") from None

    flags = {field: bool(entry[key]) for key, field in _FLAG_KEYS.items() if key in entry}
    project_type = _TYPE_NAMES[type_name]
    if project_type is ProjectType.SHARED_LIBRARY:
        # explicitly shared libraries are always detached
        flags["detached"] = True
    path = entry.get("path")

    return ProjectRecord(
        name=name,
        type=project_type,
        root_path=module_root / path if path else None,
        dependencies=tuple(entry.get("dependencies", [])),
        optional_dependencies=tuple(entry.get("optional_dependencies", [])),
        library_dependencies=tuple(entry.get("libraries", [])),
        test_framework=test_framework,
        namespace=entry.get("namespace", ""),
        group=entry.get("group", ""),
        solution_group=entry.get("solution_group", ""),
        guid=entry.get("guid"),
        app_class=entry.get("app_class", ""),
        app_header=entry.get("app_header", ""),
        app_systems=tuple(entry.get("app_systems", [])),
        local_defines=_parse_defines(entry.get("defines", {})),
        global_defines=_parse_defines(entry.get("global_defines", {})),
        **flags,
    )


def _parse_defines(value) -> tuple[tuple[str, str], ...]:
    """Accept ``{KEY: value}`` or ``["KEY=value", "FLAG"]``."""
    if isinstance(value, dict):
        return tuple((str(k), "" if v is None else str(v)) for k, v in value.items())
    defines = []
    for item in value or []:
        key, _, val = str(item).partition("=")
        defines.append((key, val))
    return tuple(defines)
