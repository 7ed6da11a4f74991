"""Post-publish repository reconciliation.

The publish-mode rewrite is not cleanly invertible, so the working tree is
hard-reset from version control instead of undone field by field. Only the
umbrella package's patch bump is then re-applied and, optionally, committed.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .descriptor import descriptor_path
from .errors import CommandError, CommitOrPushFailure, ResetFailure
from .models import VERSION_ONLY_REWRITE, VersionPlan, WorkflowRun
from .rewrite import rewrite_packages
from .shell import info, step


def reset_working_tree(run: WorkflowRun) -> None:
    """Discard every uncommitted working-tree change.

    Raises:
        ResetFailure: If git cannot restore the tree.
    """
    info("Resetting working tree")
    try:
        run.shell.git("checkout", ".")
    except CommandError as exc:
        raise ResetFailure(
            f"Failed to reset the working tree, repository state may be "
            f"inconsistent: {exc.details()}"
        ) from exc


def reapply_umbrella_version(
    run: WorkflowRun, umbrella_paths: Sequence[Path], umbrella_version: str
) -> None:
    """Write the new umbrella version onto the restored descriptors.

    Names keep their channel suffix and the packages stay private.
    """
    plan = VersionPlan(versions={run.config.umbrella_package: umbrella_version})
    rewrite_packages(umbrella_paths, plan, VERSION_ONLY_REWRITE, run.channel)


def reconcile(
    run: WorkflowRun, umbrella_paths: Sequence[Path], umbrella_version: str
) -> None:
    """Reset the working tree, then re-apply only the umbrella version bump."""
    step("Reconciling repository state")
    reset_working_tree(run)
    reapply_umbrella_version(run, umbrella_paths, umbrella_version)


def files_to_stage(run: WorkflowRun) -> list[str]:
    """Every working-set descriptor plus the lock file, relative to the root."""
    files = [str(descriptor_path(p).relative_to(run.root)) for p in run.paths]
    if (run.root / run.config.lockfile).exists():
        files.append(run.config.lockfile)
    return files


def commit_and_push(run: WorkflowRun, umbrella_version: str) -> str:
    """Commit the version bump and push the current branch upstream.

    Pre-push hooks are skipped: the code being pushed was just built and
    published.

    Returns:
        The branch that was pushed.

    Raises:
        CommitOrPushFailure: If any git command fails. Published packages
            stay published; the operator has to follow up by hand.
    """
    step("Committing and pushing version update")
    message = run.config.commit_message.format(version=umbrella_version)
    try:
        run.shell.git("add", "--", *files_to_stage(run))
        run.shell.git("commit", "-m", message)
        branch = run.shell.git("rev-parse", "--abbrev-ref", "HEAD")
        run.shell.git("push", run.config.remote, branch, "--no-verify", "-u")
    except CommandError as exc:
        raise CommitOrPushFailure(
            f"Failed to commit and push {message!r}: {exc.details()}"
        ) from exc

    info(f"Pushed {branch} to {run.config.remote}")
    return branch
