"""Manifest records: the parsed, read-only description of modules and projects."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path


class ProjectType(enum.Enum):
    DISABLED = "disabled"
    APPLICATION = "application"
    TEST_APPLICATION = "test_application"
    STATIC_LIBRARY = "static_library"
    SHARED_LIBRARY = "shared_library"
    AUTO_LIBRARY = "auto_library"
    HEADER_LIBRARY = "header_library"

    @property
    def is_executable(self) -> bool:
        return self in (ProjectType.APPLICATION, ProjectType.TEST_APPLICATION)

    @property
    def is_binary_library(self) -> bool:
        return self in (ProjectType.STATIC_LIBRARY, ProjectType.SHARED_LIBRARY)

    @property
    def is_linkable(self) -> bool:
        """Whether another project may name this one as a dependency."""
        return self.is_binary_library or self is ProjectType.HEADER_LIBRARY

    @property
    def is_buildable(self) -> bool:
        return self.is_binary_library or self.is_executable


class FileType(enum.Enum):
    UNKNOWN = "unknown"
    HEADER = "header"
    SOURCE = "source"
    GRAMMAR = "grammar"
    RESOURCES = "resources"
    BUILD_SCRIPT = "build_script"
    MEDIA = "media"
    NATVIS = "natvis"


class SuiteFramework(enum.Enum):
    GTEST = "gtest"
    CATCH2 = "catch2"


@dataclass(frozen=True)
class ModuleDependency:
    """Either a remote repository reference or a local relative path."""

    repo: str | None = None
    branch: str | None = None
    path: str | None = None


@dataclass(frozen=True)
class DataMount:
    """A data directory exposed by a module under a virtual mount path."""

    mount_path: str
    source_path: Path


@dataclass(frozen=True)
class ProjectRecord:
    """One buildable unit declared inside a module manifest."""

    name: str  # "core/math"
    type: ProjectType = ProjectType.DISABLED
    root_path: Path | None = None
    dependencies: tuple[str, ...] = ()
    optional_dependencies: tuple[str, ...] = ()
    library_dependencies: tuple[str, ...] = ()

    use_precompiled_headers: bool = True
    use_static_init: bool = True
    use_exceptions: bool = False
    dev_only: bool = False
    detached: bool = False
    generate_main: bool = False
    self_test: bool = False
    window_subsystem: bool = False
    pre_main: bool = False
    third_party: bool = False
    has_init: bool = False
    has_pre_init: bool = False

    test_framework: SuiteFramework = SuiteFramework.GTEST
    namespace: str = ""
    group: str = ""
    solution_group: str = ""
    guid: str | None = None
    app_class: str = ""
    app_header: str = ""
    app_systems: tuple[str, ...] = ()

    local_defines: tuple[tuple[str, str], ...] = ()
    global_defines: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ModuleRecord:
    """A versioned collection of projects and its own dependency declarations."""

    name: str
    root_path: Path
    source_root: Path | None = None
    local: bool = True
    dependencies: tuple[ModuleDependency, ...] = ()
    projects: tuple[ProjectRecord, ...] = ()
    data_mounts: tuple[DataMount, ...] = ()
    include_paths: tuple[Path, ...] = ()


@dataclass(frozen=True)
class LibraryRecord:
    """A third-party library made available by a library pack."""

    name: str
    root_path: Path | None = None
    include_paths: tuple[Path, ...] = ()
    link_files: tuple[Path, ...] = ()
    deploy_files: tuple[Path, ...] = ()


@dataclass
class ProjectFile:
    """A file that belongs to a project, scanned or synthesized."""

    name: str
    absolute_path: Path
    type: FileType = FileType.UNKNOWN
    filter_path: str = ""
    scan_relative_path: str = ""
    project_relative_path: str = ""
    use_precompiled_header: bool = False
