"""Renderer protocol: every build backend conforms to this interface."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from layerbuild.output import FileGenerator
from layerbuild.solution import SolutionGraph


class Renderer(Protocol):
    """Protocol for build system backends."""

    def generate_solution(self, graph: SolutionGraph, files: FileGenerator) -> Path:
        """Emit the top-level solution file and return its path."""
        ...

    def generate_projects(self, graph: SolutionGraph, files: FileGenerator) -> None:
        """Emit one project file per buildable node."""
        ...
