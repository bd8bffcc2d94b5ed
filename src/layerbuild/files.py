"""Resolution of named tool assets (bundled test frameworks, generator tools)."""

from __future__ import annotations

import logging
from pathlib import Path

from layerbuild.errors import AssetNotFoundError

logger = logging.getLogger(__name__)


class FileRepository:
    """Map asset paths like ``tools/gtest/include`` to real locations.

    Roots are searched in the order given; the first one holding the asset
    wins.
    """

    def __init__(self, roots: list[Path] | None = None):
        self._roots = [Path(r) for r in roots or []]

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    def resolve_file(self, local_path: str) -> Path:
        for root in self._roots:
            candidate = root / local_path
            if candidate.is_file():
                logger.debug("Resolved asset %s to %s", local_path, candidate)
                return candidate
        raise AssetNotFoundError(local_path)

    def resolve_directory(self, local_path: str) -> Path:
        for root in self._roots:
            candidate = root / local_path
            if candidate.is_dir():
                return candidate
        raise AssetNotFoundError(local_path)
