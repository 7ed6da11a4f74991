"""Shared test fixtures."""

from __future__ import annotations

import json
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from exp_release.errors import CommandError
from exp_release.models import BuildConfig, BuildStage, ReleaseConfig, WorkflowRun
from exp_release.shell import Shell


def write_package(directory: Path, doc: dict[str, Any]) -> Path:
    """Write a package.json the way npm formats it."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.json").write_text(json.dumps(doc, indent=2) + "\n")
    return directory


def read_package(directory: Path) -> dict[str, Any]:
    return json.loads((directory / "package.json").read_text())


class FakeShell(Shell):
    """Records commands instead of running them.

    git answers the two rev-parse queries the workflow makes; "checkout ."
    calls on_checkout so tests can emulate restoring the working tree.
    """

    def __init__(
        self,
        root: Path,
        *,
        sha: str = "abcdef",
        branch: str = "main",
        fail_git: Sequence[str] = (),
        fail_run: Callable[[tuple[str, ...], Path | None], bool] | None = None,
        on_checkout: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(root)
        self.sha = sha
        self.branch = branch
        self.fail_git = set(fail_git)
        self.fail_run = fail_run
        self.on_checkout = on_checkout
        self.git_calls: list[tuple[str, ...]] = []
        self.run_calls: list[tuple[tuple[str, ...], Path | None]] = []

    def git(self, *args: str, check: bool = True) -> str:
        self.git_calls.append(args)
        if args[0] in self.fail_git:
            raise CommandError(["git", *args], 128, f"fatal: {args[0]} failed")
        if args[:2] == ("rev-parse", "--short"):
            return self.sha
        if args[:2] == ("rev-parse", "--abbrev-ref"):
            return self.branch
        if args == ("checkout", ".") and self.on_checkout:
            self.on_checkout()
        return ""

    def run(
        self, *args: str, cwd: Path | None = None, check: bool = True
    ) -> subprocess.CompletedProcess[bytes]:
        self.run_calls.append((args, cwd))
        if self.fail_run and self.fail_run(args, cwd):
            raise CommandError(args, 1)
        return subprocess.CompletedProcess(args, 0)


class ScriptedConfirmer:
    """Answers confirmation prompts from a fixed list and records them."""

    def __init__(self, *answers: bool) -> None:
        self.answers = list(answers)
        self.prompts: list[str] = []

    def confirm(self, message: str, default: bool) -> bool:
        self.prompts.append(message)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {message}")
        return self.answers.pop(0)


class Workspace:
    """A temporary monorepo with an umbrella package and two exp packages."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.umbrella = write_package(
            root / "packages-exp" / "firebase-exp",
            {
                "name": "firebase-exp",
                "version": "1.2.3",
                "private": True,
                "scripts": {"build:release": "rollup -c"},
                "dependencies": {"@x/a-exp": "0.5.0", "@x/b-exp": "0.5.0"},
            },
        )
        self.a = write_package(
            root / "packages-exp" / "a-exp",
            {
                "name": "@x/a-exp",
                "version": "0.5.0",
                "private": True,
                "dependencies": {"@x/b-exp": "^0.5.0", "tslib": "^2.1.0"},
                "devDependencies": {"@x/b-exp": "^0.5.0", "typescript": "4.2.2"},
            },
        )
        self.b = write_package(
            root / "packages-exp" / "b-exp",
            {
                "name": "@x/b-exp",
                "version": "0.5.0",
                "private": True,
                "peerDependencies": {"firebase-exp": "*"},
            },
        )
        (root / "yarn.lock").write_text("# yarn lockfile v1\n")
        self._saved = self.snapshot()

    @property
    def package_dirs(self) -> list[Path]:
        return [self.a, self.b, self.umbrella]

    def snapshot(self) -> dict[Path, str]:
        return {d: (d / "package.json").read_text() for d in self.package_dirs}

    def restore(self) -> None:
        """Emulate `git checkout .` by restoring the initial descriptors."""
        for d, text in self._saved.items():
            (d / "package.json").write_text(text)


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path)


@pytest.fixture
def release_config() -> ReleaseConfig:
    """Config matching the Workspace layout with a short build pipeline."""
    return ReleaseConfig(
        umbrella_package="firebase-exp",
        workspaces=["packages-exp/*"],
        extra_packages=[],
        build=BuildConfig(
            runner=["yarn", "lerna", "run"],
            stale_outputs=["packages/installations/dist"],
            stages=[
                BuildStage(scopes=["@x/*-exp"], target="build:release"),
                BuildStage(scopes=["firebase-exp"], target="build:release"),
            ],
        ),
    )


@pytest.fixture
def fake_shell(workspace: Workspace) -> FakeShell:
    return FakeShell(workspace.root, on_checkout=workspace.restore)


@pytest.fixture
def release_run(
    workspace: Workspace, release_config: ReleaseConfig, fake_shell: FakeShell
) -> WorkflowRun:
    return WorkflowRun(root=workspace.root, config=release_config, shell=fake_shell)
