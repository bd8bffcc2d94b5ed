"""Build configuration: defaults, per-module config files and CLI overrides."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path

from layerbuild.errors import ManifestError

logger = logging.getLogger(__name__)

PLATFORMS = ("linux", "windows", "darwin")
GENERATORS = ("cmake", "vs2022")
CONFIGURATIONS = ("debug", "checked", "release", "profile", "final")
BUILD_TYPES = ("dev", "shipment")
LIBRARY_TYPES = ("static", "shared")

CONFIG_FILE_NAME = ".layerbuild.toml"


@dataclass
class Configuration:
    """Everything the pipeline needs to know about the requested build."""

    module_path: Path
    platform: str = "linux"
    generator: str = "cmake"
    configuration: str = "release"
    build: str = "dev"
    libs: str = "static"
    static_build: bool = False
    output_path: Path | None = None
    cache_path: Path | None = None
    tool_paths: list[Path] = field(default_factory=list)
    library_paths: list[Path] = field(default_factory=list)
    reflection_tool: str | None = None
    parser_generator: str | None = None
    workers: int | None = None

    def __post_init__(self) -> None:
        self.module_path = Path(self.module_path).resolve()
        if self.output_path is None:
            self.output_path = self.module_path / ".build"
        if self.cache_path is None:
            self.cache_path = self.module_path / ".cache"
        self.output_path = Path(self.output_path)
        self.cache_path = Path(self.cache_path)
        self.tool_paths = [Path(p) for p in self.tool_paths]
        self.library_paths = [Path(p) for p in self.library_paths]
        self.validate()

    def validate(self) -> None:
        for key, allowed in (
            ("platform", PLATFORMS),
            ("generator", GENERATORS),
            ("configuration", CONFIGURATIONS),
            ("build", BUILD_TYPES),
            ("libs", LIBRARY_TYPES),
        ):
            value = getattr(self, key)
            if value not in allowed:
                raise ManifestError(
                    f"Invalid {key} '{value}', expected one of: {', '.join(allowed)}"
                )

    @property
    def is_development(self) -> bool:
        return self.build == "dev"

    @property
    def merged_name(self) -> str:
        """E.g. ``linux.cmake.dev.release``."""
        return f"{self.platform}.{self.generator}.{self.build}.{self.configuration}"

    @property
    def solution_path(self) -> Path:
        return self.output_path / self.merged_name / "build"

    @property
    def binary_path(self) -> Path:
        return self.output_path / self.merged_name / "bin"

    @property
    def generated_path(self) -> Path:
        return self.solution_path / "generated"

    @property
    def shared_glue_path(self) -> Path:
        return self.generated_path / "_shared"

    @property
    def worker_count(self) -> int:
        return max(1, self.workers or os.cpu_count() or 1)


def load_configuration(module_path: Path, **overrides) -> Configuration:
    """Build a Configuration for *module_path*.

    Values come from, in increasing priority: built-in defaults, the
    ``[layerbuild]`` table of ``.layerbuild.toml`` (or ``[tool.layerbuild]`` in
    ``pyproject.toml``), and *overrides* whose value is not None.
    """
    module_path = Path(module_path).resolve()
    values = _read_config_table(module_path)

    known = {f.name for f in fields(Configuration)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ManifestError(f"Unknown configuration keys: {', '.join(unknown)}")

    # relative paths in config files are relative to the module directory
    for key in ("output_path", "cache_path"):
        if key in values:
            values[key] = module_path / values[key]
    for key in ("tool_paths", "library_paths"):
        if key in values:
            values[key] = [module_path / p for p in values[key]]

    values.update({k: v for k, v in overrides.items() if v is not None})
    values["module_path"] = module_path

    config = Configuration(**values)
    logger.debug("Configuration: %s", config)
    return config


def _read_config_table(module_path: Path) -> dict:
    """Read the layerbuild table from .layerbuild.toml or pyproject.toml."""
    config_toml = module_path / CONFIG_FILE_NAME
    if config_toml.exists():
        try:
            with open(config_toml, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ManifestError(f"Could not parse {config_toml}: {e}") from e
        return dict(data.get("layerbuild", {}))

    pyproject = module_path / "pyproject.toml"
    if pyproject.exists():
        try:
            with open(pyproject, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("Could not parse pyproject.toml: %s", e)
            return {}
        return dict(data.get("tool", {}).get("layerbuild", {}))

    return {}
