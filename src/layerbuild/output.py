"""In-memory collection of generated files, written to disk in one go."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class GeneratedFile:
    path: Path
    lines: list[str] = field(default_factory=list)

    def extend(self, lines: list[str]) -> None:
        self.lines.extend(lines)

    @property
    def content(self) -> str:
        return "\n".join(self.lines) + "\n" if self.lines else ""


class FileGenerator:
    """Collects generated files; safe to append to from worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._files: list[GeneratedFile] = []

    @property
    def files(self) -> list[GeneratedFile]:
        with self._lock:
            return list(self._files)

    def create_file(self, path: Path) -> GeneratedFile:
        generated = GeneratedFile(Path(path))
        with self._lock:
            self._files.append(generated)
        return generated

    def find(self, path: Path) -> GeneratedFile | None:
        path = Path(path)
        with self._lock:
            for generated in self._files:
                if generated.path == path:
                    return generated
        return None

    def save_files(self) -> int:
        """Write every file whose content changed; return how many were written."""
        saved = 0
        for generated in self.files:
            content = generated.content
            try:
                if generated.path.is_file() and generated.path.read_text() == content:
                    continue
                generated.path.parent.mkdir(parents=True, exist_ok=True)
                generated.path.write_text(content)
            except OSError as e:
                logger.error("Failed to save %s: %s", generated.path, e)
                raise
            logger.debug("Saved %s", generated.path)
            saved += 1

        logger.info("Saved %d files (%d total)", saved, len(self._files))
        return saved
