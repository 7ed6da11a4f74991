"""Shell and git utilities.

Provides a thin wrapper around subprocess calls bound to one project root,
plus the output helpers used to report progress to the operator.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click

from .errors import CommandError

# Exit status reported when a command could not be started at all
LAUNCH_FAILED = 127


class Shell:
    """Runs external commands from a fixed project root.

    One instance is created per workflow run and passed to every component,
    so nothing depends on the process working directory.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def git(self, *args: str, check: bool = True) -> str:
        """Run a git command in the project root and return stripped stdout.

        Args:
            *args: Arguments to pass to git (e.g., "rev-parse", "HEAD").
            check: If True (default), raise CommandError on non-zero exit.

        Raises:
            CommandError: If git cannot be launched, or exits non-zero and
                check is set.
        """
        argv = ["git", *args]
        try:
            result = subprocess.run(argv, cwd=self.root, capture_output=True, text=True)
        except OSError as exc:
            raise CommandError(argv, LAUNCH_FAILED, str(exc)) from exc
        if check and result.returncode != 0:
            raise CommandError(argv, result.returncode, result.stderr)
        return result.stdout.strip()

    def run(
        self, *args: str, cwd: Path | None = None, check: bool = True
    ) -> subprocess.CompletedProcess[bytes]:
        """Run an arbitrary command, streaming its output to the terminal.

        Args:
            *args: Command and arguments (e.g., "npm", "publish").
            cwd: Directory to run in, defaults to the project root.
            check: If True (default), raise CommandError on non-zero exit.

        Raises:
            CommandError: If the command cannot be launched, or exits non-zero
                and check is set.
        """
        try:
            result = subprocess.run(args, cwd=cwd or self.root)
        except OSError as exc:
            raise CommandError(args, LAUNCH_FAILED, str(exc)) from exc
        if check and result.returncode != 0:
            raise CommandError(args, result.returncode)
        return result


def step(msg: str) -> None:
    """Print a visually distinct step header."""
    click.echo(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def info(msg: str) -> None:
    click.echo(f"  {msg}")


def warn(msg: str) -> None:
    click.echo(click.style(f"WARNING: {msg}", fg="yellow"), err=True)


def error(msg: str) -> None:
    click.echo(click.style(f"ERROR: {msg}", fg="red"), err=True)


def pkg(name: str) -> str:
    """Style a package name for terminal output."""
    return click.style(name, fg="blue")


def ver(version: str) -> str:
    """Style a version string for terminal output."""
    return click.style(version, fg="green")
