"""Meta-build tool: module graph resolution and build solution generation."""

__version__ = "0.1.0"
