"""External generator tools: the grammar parser generator and the reflection tool."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from layerbuild.config import Configuration
from layerbuild.errors import AssetNotFoundError, ToolError
from layerbuild.files import FileRepository

logger = logging.getLogger(__name__)

TOOL_TIMEOUT = 600


def is_source_newer(source: Path, target: Path) -> bool:
    if not target.exists():
        return True
    return source.stat().st_mtime > target.stat().st_mtime


def _run_tool(args: list[str], *, cwd: Path | None = None, what: str) -> subprocess.CompletedProcess:
    logger.debug("Running %s", " ".join(args))
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=TOOL_TIMEOUT,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        raise ToolError(f"{what} not found: {args[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise ToolError(f"{what} timed out after {TOOL_TIMEOUT}s") from e
    if result.returncode != 0:
        msg = result.stderr.strip() or result.stdout.strip()
        raise ToolError(f"{what} failed with exit code {result.returncode}: {msg}")
    return result


class ParserGenerator:
    """Bison compatible parser generator."""

    def __init__(self, executable: Path | str, platform: str = "linux"):
        self.executable = Path(executable)
        self.platform = platform

    @classmethod
    def locate(cls, config: Configuration, file_repository: FileRepository) -> ParserGenerator:
        """Explicit configuration first, then the bundled tool, then the PATH."""
        if config.parser_generator:
            return cls(config.parser_generator, config.platform)

        script = "win_bison.exe" if config.platform == "windows" else "run_bison.sh"
        try:
            tool_dir = file_repository.resolve_directory(f"tools/bison/{config.platform}")
        except AssetNotFoundError:
            found = shutil.which("bison")
            if found is None:
                raise ToolError("No parser generator available, install bison") from None
            return cls(found, config.platform)
        return cls(tool_dir / script, config.platform)

    def generate(self, grammar: Path, parser_file: Path, symbols_file: Path, report_file: Path) -> bool:
        """Regenerate outputs of *grammar* if stale; return whether the tool ran."""
        if not (is_source_newer(grammar, parser_file) or is_source_newer(grammar, symbols_file)):
            logger.info("Parser generation skipped because '%s' is up to date", parser_file)
            return False

        parser_file.parent.mkdir(parents=True, exist_ok=True)
        header_flag = "--header" if self.platform == "darwin" else "--defines"
        args = [
            str(self.executable),
            str(grammar),
            f"-o{parser_file}",
            f"{header_flag}={symbols_file}",
            f"--report-file={report_file}",
            "--verbose",
        ]
        cwd = self.executable.parent if self.executable.parent != Path() else None
        _run_tool(args, cwd=cwd, what="Parser generator")
        logger.info("Parser generator finished and generated %s", parser_file)
        return True


class ReflectionTool(Protocol):
    """Produces a reflection unit from a node's sources."""

    def run_static(self, sources: list[Path], project: str, namespace: str, output: Path) -> None: ...


class CommandReflectionTool:
    """Reflection tool invoked as an external command."""

    def __init__(self, command: str | None):
        self.command = command

    def run_static(self, sources: list[Path], project: str, namespace: str, output: Path) -> None:
        if not self.command:
            raise ToolError("No reflection tool configured for static builds")
        output.parent.mkdir(parents=True, exist_ok=True)
        args = [
            self.command,
            f"-project={project}",
            f"-namespace={namespace}",
            f"-output={output}",
            *(str(s) for s in sources),
        ]
        _run_tool(args, what="Reflection tool")
