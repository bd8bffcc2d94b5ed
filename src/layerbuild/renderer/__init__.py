"""Build system backends."""

from __future__ import annotations

from layerbuild.config import Configuration
from layerbuild.renderer.base import Renderer
from layerbuild.renderer.cmake import CMakeRenderer
from layerbuild.renderer.vs import VisualStudioRenderer


def create_renderer(config: Configuration) -> Renderer:
    """Return the backend matching ``config.generator``."""
    if config.generator == "vs2022":
        return VisualStudioRenderer(config)
    return CMakeRenderer(config)
