"""Tests for exp_release.reconcile."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from conftest import FakeShell, Workspace, read_package

from exp_release.errors import CommitOrPushFailure, ResetFailure
from exp_release.models import PUBLISH_REWRITE, VersionPlan, WorkflowRun
from exp_release.reconcile import (
    commit_and_push,
    files_to_stage,
    reconcile,
    reset_working_tree,
)
from exp_release.rewrite import rewrite_packages

PLAN = VersionPlan(
    versions={
        "@x/a-exp": "0.5.0-exp.abcdef",
        "@x/b-exp": "0.5.0-exp.abcdef",
        "firebase-exp": "1.2.4",
    }
)


@pytest.fixture
def run_with_paths(release_run: WorkflowRun, workspace: Workspace) -> WorkflowRun:
    release_run.paths = workspace.package_dirs
    return release_run


class TestResetWorkingTree:
    def test_checks_out_everything(self, release_run: WorkflowRun) -> None:
        reset_working_tree(release_run)

        shell = release_run.shell
        assert isinstance(shell, FakeShell)
        assert shell.git_calls == [("checkout", ".")]

    def test_failure_is_reset_failure(
        self, workspace: Workspace, release_run: WorkflowRun
    ) -> None:
        release_run.shell = FakeShell(workspace.root, fail_git=["checkout"])

        with pytest.raises(ResetFailure, match="inconsistent"):
            reset_working_tree(release_run)


class TestReconcile:
    @patch("exp_release.reconcile.step")
    def test_round_trip_restores_everything_but_umbrella_version(
        self, mock_step: MagicMock, workspace: Workspace, run_with_paths: WorkflowRun
    ) -> None:
        before = {d: read_package(d) for d in workspace.package_dirs}
        rewrite_packages(workspace.package_dirs, PLAN, PUBLISH_REWRITE, run_with_paths.channel)

        reconcile(run_with_paths, [workspace.umbrella], PLAN["firebase-exp"])

        for d in (workspace.a, workspace.b):
            assert read_package(d) == before[d]
        umbrella = read_package(workspace.umbrella)
        assert umbrella["version"] == "1.2.4"
        assert {**umbrella, "version": "1.2.3"} == before[workspace.umbrella]

    @patch("exp_release.reconcile.step")
    def test_reset_failure_skips_reapply(
        self, mock_step: MagicMock, workspace: Workspace, run_with_paths: WorkflowRun
    ) -> None:
        run_with_paths.shell = FakeShell(workspace.root, fail_git=["checkout"])

        with pytest.raises(ResetFailure):
            reconcile(run_with_paths, [workspace.umbrella], "1.2.4")

        assert read_package(workspace.umbrella)["version"] == "1.2.3"


class TestCommitAndPush:
    def test_files_to_stage(self, run_with_paths: WorkflowRun) -> None:
        assert files_to_stage(run_with_paths) == [
            "packages-exp/a-exp/package.json",
            "packages-exp/b-exp/package.json",
            "packages-exp/firebase-exp/package.json",
            "yarn.lock",
        ]

    def test_lockfile_skipped_when_missing(
        self, workspace: Workspace, run_with_paths: WorkflowRun
    ) -> None:
        (workspace.root / "yarn.lock").unlink()
        assert "yarn.lock" not in files_to_stage(run_with_paths)

    @patch("exp_release.reconcile.step")
    def test_git_sequence(
        self, mock_step: MagicMock, run_with_paths: WorkflowRun
    ) -> None:
        branch = commit_and_push(run_with_paths, "1.2.4")

        shell = run_with_paths.shell
        assert isinstance(shell, FakeShell)
        assert branch == "main"
        assert shell.git_calls == [
            ("add", "--", *files_to_stage(run_with_paths)),
            ("commit", "-m", "Publish firebase@exp 1.2.4"),
            ("rev-parse", "--abbrev-ref", "HEAD"),
            ("push", "origin", "main", "--no-verify", "-u"),
        ]

    @patch("exp_release.reconcile.step")
    def test_push_failure(
        self, mock_step: MagicMock, workspace: Workspace, run_with_paths: WorkflowRun
    ) -> None:
        run_with_paths.shell = FakeShell(workspace.root, fail_git=["push"])

        with pytest.raises(CommitOrPushFailure, match="Publish firebase@exp 1.2.4"):
            commit_and_push(run_with_paths, "1.2.4")

    @patch("exp_release.reconcile.step")
    def test_commit_failure_stops_before_push(
        self, mock_step: MagicMock, workspace: Workspace, run_with_paths: WorkflowRun
    ) -> None:
        shell = FakeShell(workspace.root, fail_git=["commit"])
        run_with_paths.shell = shell

        with pytest.raises(CommitOrPushFailure):
            commit_and_push(run_with_paths, "1.2.4")

        assert [c[0] for c in shell.git_calls] == ["add", "commit"]
