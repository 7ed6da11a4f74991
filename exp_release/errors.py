"""Error types raised by the release workflow.

Every error the workflow can surface derives from ReleaseError, so the CLI
entry point can catch one type, report it and exit with code 1.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class ReleaseError(Exception):
    """Base class for all release workflow errors."""


class ConfigError(ReleaseError):
    """release.toml could not be read or failed validation."""


class CommandError(ReleaseError):
    """An external command exited with a non-zero status.

    Attributes:
        argv: The full argv that was run.
        returncode: The process exit code.
        stderr: Captured stderr, empty when output was streamed.
    """

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(f"`{' '.join(self.argv)}` exited with code {returncode}")

    def details(self) -> str:
        """Return the message plus any captured stderr."""
        if self.stderr:
            return f"{self}\n{self.stderr}"
        return str(self)


class DescriptorNotFoundError(ReleaseError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"No package.json found in {path}")


class DescriptorMalformedError(ReleaseError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Malformed package.json in {path}: {reason}")


class DuplicatePackageError(ReleaseError):
    def __init__(self, name: str, paths: Sequence[Path]) -> None:
        self.name = name
        self.paths = list(paths)
        where = ", ".join(str(p) for p in self.paths)
        super().__init__(f"Package name {name!r} is declared more than once ({where})")


class InvalidVersionError(ReleaseError):
    def __init__(self, version: str, package: str | None = None) -> None:
        self.version = version
        self.package = package
        owner = f" for {package}" if package else ""
        super().__init__(f"Invalid semantic version{owner}: {version!r}")


class BuildFailure(ReleaseError):
    """A build stage failed. Fatal: nothing after it runs."""


class VersionConfirmationDeclined(ReleaseError):
    """The operator rejected the planned versions before publishing."""

    def __init__(self) -> None:
        super().__init__("Version check failed")


class PublishFailure(ReleaseError):
    """Publishing a single package failed.

    Captured per package by the publisher and never raised past it.
    """

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Failed to publish {name}: {reason}")


class ResetFailure(ReleaseError):
    """Discarding working-tree changes failed; repository state is unknown."""


class CommitOrPushFailure(ReleaseError):
    """Committing or pushing the version bump failed after publishing."""


class WorkflowStateError(ReleaseError):
    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Illegal workflow transition: {current} -> {requested}")


class IncompleteRunError(ReleaseError):
    """A workflow step ran before the data it depends on was produced."""

    def __init__(self, missing: str, state: str) -> None:
        self.missing = missing
        self.state = state
        super().__init__(f"No {missing} available in state {state}")
