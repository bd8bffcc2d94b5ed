"""Resolved projects: a manifest record bound to its module, files and dependencies."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path

from layerbuild.errors import ResolutionError
from layerbuild.model import (
    FileType,
    LibraryRecord,
    ModuleRecord,
    ProjectFile,
    ProjectRecord,
    ProjectType,
)

logger = logging.getLogger(__name__)

BUILD_SCRIPT_NAME = "build.yaml"

_EXTENSION_TYPES = {
    ".h": FileType.HEADER,
    ".hpp": FileType.HEADER,
    ".hxx": FileType.HEADER,
    ".inl": FileType.HEADER,
    ".c": FileType.SOURCE,
    ".cpp": FileType.SOURCE,
    ".cxx": FileType.SOURCE,
    ".cc": FileType.SOURCE,
    ".bison": FileType.GRAMMAR,
    ".y": FileType.GRAMMAR,
    ".rc": FileType.RESOURCES,
    ".natvis": FileType.NATVIS,
}


def file_type_for_path(path: Path) -> FileType:
    if path.name == BUILD_SCRIPT_NAME:
        return FileType.BUILD_SCRIPT
    return _EXTENSION_TYPES.get(path.suffix.lower(), FileType.UNKNOWN)


class _ScanKind(enum.Enum):
    PRIVATE = "private"
    PUBLIC = "public"
    MEDIA = "media"
    RESOURCES = "resources"


@dataclass(eq=False)
class ResolvedProject:
    """A project of the active build, owned by a ProjectCollection."""

    record: ProjectRecord
    module: ModuleRecord | None
    root_path: Path
    files: list[ProjectFile] = field(default_factory=list)
    dependencies: list[ResolvedProject] = field(default_factory=list)
    libraries: list[LibraryRecord] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def type(self) -> ProjectType:
        return self.record.type

    @property
    def is_local(self) -> bool:
        return self.module.local if self.module is not None else True

    def __repr__(self) -> str:
        return f"ResolvedProject({self.name!r}, {self.type.value})"

    # -- content scanning ---------------------------------------------------

    def scan_content(self) -> int:
        """Discover the project's files on disk and return how many were found.

        Raises ResolutionError listing every file that is not allowed where
        it was found.
        """
        self.files = []
        problems: list[str] = []
        seen: set[Path] = set()
        root = self.root_path

        if self.record.third_party:
            self._scan_dir(root, root, _ScanKind.PRIVATE, True, seen, problems)
        else:
            self._scan_dir(root / "include", root / "include", _ScanKind.PUBLIC, True, seen, problems)
            self._scan_dir(root / "src", root / "src", _ScanKind.PRIVATE, True, seen, problems)
            self._scan_dir(root / "natvis", root / "natvis", _ScanKind.PRIVATE, True, seen, problems)
            self._scan_dir(root / "media", root / "media", _ScanKind.MEDIA, True, seen, problems)
            self._scan_dir(root / "res", root / "res", _ScanKind.RESOURCES, True, seen, problems)
            self._scan_dir(root, root, _ScanKind.PRIVATE, False, seen, problems)

        if problems:
            raise ResolutionError(problems)

        logger.debug("Project '%s': %d file(s)", self.name, len(self.files))
        return len(self.files)

    def _scan_dir(
        self,
        scan_root: Path,
        directory: Path,
        kind: _ScanKind,
        recursive: bool,
        seen: set[Path],
        problems: list[str],
    ) -> None:
        if not directory.is_dir():
            return
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            problems.append(f"Could not scan {directory}: {e}")
            return

        for entry in entries:
            if entry.is_dir():
                if recursive:
                    self._scan_dir(scan_root, entry, kind, recursive, seen, problems)
            elif entry.is_file():
                self._add_file(scan_root, entry, kind, seen, problems)

    def _add_file(
        self,
        scan_root: Path,
        path: Path,
        kind: _ScanKind,
        seen: set[Path],
        problems: list[str],
    ) -> None:
        if path in seen:
            return

        file_type = FileType.MEDIA if kind is _ScanKind.MEDIA else file_type_for_path(path)
        if file_type is FileType.UNKNOWN:
            if kind is not _ScanKind.RESOURCES:
                logger.warning("Unknown file type for %s", path)
            return

        if kind is _ScanKind.PUBLIC and file_type is not FileType.HEADER:
            problems.append(
                f"Public files directory (include/) can only host header files, "
                f"file {path} is not a header"
            )
            return

        seen.add(path)
        filter_path = path.parent.relative_to(self.root_path).as_posix()
        self.files.append(
            ProjectFile(
                name=path.name,
                absolute_path=path,
                type=file_type,
                filter_path="" if filter_path == "." else filter_path,
                scan_relative_path=path.relative_to(scan_root).as_posix(),
                project_relative_path=path.relative_to(self.root_path).as_posix(),
            )
        )
