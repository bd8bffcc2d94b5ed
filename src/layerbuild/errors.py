"""Exception hierarchy shared by every pipeline stage.

Each error carries the list of diagnostics it was raised with so that the
driver can report all of them at once instead of only the first one.
"""

from __future__ import annotations


class LayerbuildError(Exception):
    """Base class for all layerbuild failures."""

    def __init__(self, messages: str | list[str]):
        if isinstance(messages, str):
            messages = [messages]
        self.messages: list[str] = list(messages)
        super().__init__("\n".join(self.messages))


class ManifestError(LayerbuildError):
    """A manifest or configuration file is missing or malformed."""


class ResolutionError(LayerbuildError):
    """One or more references could not be resolved."""


class UnresolvedDependencyError(ResolutionError):
    """A required dependency name matches no project."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unresolved dependency on '{name}'")


class NotLinkableError(ResolutionError):
    """A dependency name matches a project that cannot be linked against."""

    def __init__(self, name: str, project_type: str):
        self.name = name
        super().__init__(
            f"Project '{name}' ({project_type}) is not a library: "
            "dependency target is not linkable"
        )


class CycleError(LayerbuildError):
    """The dependency graph contains a cycle."""

    def __init__(self, chain: list[str], path: list[str] | None = None):
        self.chain = list(chain)
        self.path = list(path) if path is not None else list(chain)
        self.cycles: list[list[str]] = []
        super().__init__(
            "Recursive project dependencies: " + " -> ".join(self.chain + self.chain[:1])
        )


class AssetNotFoundError(LayerbuildError):
    """A named tool asset is not available in the file repository."""

    def __init__(self, local_path: str):
        self.local_path = local_path
        super().__init__(f"Tool asset '{local_path}' not found")


class ToolError(LayerbuildError):
    """An external tool could not be run or reported a failure."""


class GenerationError(LayerbuildError):
    """Automatic code generation failed for one or more nodes."""

    def __init__(self, failures: dict[str, list[str]]):
        self.failures = failures
        messages = []
        for name, problems in failures.items():
            for problem in problems:
                messages.append(f"[{name}] {problem}")
        super().__init__(messages)


class PipelineError(LayerbuildError):
    """Aggregate of every diagnostic produced by a failed pipeline run."""
