"""External library registry.

Libraries can come from a small, closed set of sources. Each source variant
only knows how to answer ``resolve(name)``; the registry asks them in
priority order and remembers the first answer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from layerbuild.errors import ManifestError
from layerbuild.model import LibraryRecord

logger = logging.getLogger(__name__)

LIBRARY_MANIFEST_NAME = "library.yaml"


@dataclass
class PackSource:
    """A directory holding one sub-directory (with a library.yaml) per library."""

    path: Path
    _records: dict[str, LibraryRecord] | None = field(default=None, repr=False)

    def resolve(self, name: str) -> LibraryRecord | None:
        if self._records is None:
            self._records = _scan_library_pack(self.path)
        return self._records.get(name)


@dataclass
class StaticSource:
    """Libraries given directly, e.g. prebuilt SDKs described in code."""

    records: dict[str, LibraryRecord] = field(default_factory=dict)

    def resolve(self, name: str) -> LibraryRecord | None:
        return self.records.get(name)


LibrarySource = PackSource | StaticSource


class LibraryRegistry:
    """Find libraries by name across sources, first source wins."""

    def __init__(self, sources: list[LibrarySource] | None = None):
        self._sources: list[LibrarySource] = list(sources or [])
        self._cache: dict[str, LibraryRecord | None] = {}

    @classmethod
    def from_paths(cls, paths: list[Path]) -> LibraryRegistry:
        return cls([PackSource(Path(p)) for p in paths])

    def add_source(self, source: LibrarySource) -> None:
        self._sources.append(source)
        self._cache.clear()

    def find(self, name: str) -> LibraryRecord | None:
        if name not in self._cache:
            found = None
            for source in self._sources:
                found = source.resolve(name)
                if found is not None:
                    break
            self._cache[name] = found
        return self._cache[name]


def _scan_library_pack(path: Path) -> dict[str, LibraryRecord]:
    """Load every library manifest found directly below *path*."""
    records: dict[str, LibraryRecord] = {}
    if not path.is_dir():
        logger.warning("Library pack %s does not exist", path)
        return records

    logger.info("Scanning for libraries at %s", path)
    for child in sorted(path.iterdir()):
        manifest = child / LIBRARY_MANIFEST_NAME
        if not child.is_dir() or not manifest.is_file():
            continue
        record = load_library_manifest(manifest)
        if record.name in records:
            logger.warning(
                "Library '%s' is already defined, skipping second definition",
                record.name,
            )
            continue
        records[record.name] = record

    logger.debug("Found %d libraries in %s", len(records), path)
    return records


def load_library_manifest(manifest: Path) -> LibraryRecord:
    try:
        with open(manifest) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(f"Could not parse library manifest {manifest}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Library manifest {manifest} must be a mapping")

    root = manifest.parent
    name = data.get("name") or root.name
    return LibraryRecord(
        name=str(name),
        root_path=root,
        include_paths=tuple(root / p for p in data.get("include_paths", ["include"])),
        link_files=tuple(root / p for p in data.get("link", [])),
        deploy_files=tuple(root / p for p in data.get("deploy", [])),
    )
