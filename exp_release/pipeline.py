"""Release workflow: prepare → build → plan → publish → reconcile → push.

This module drives the exp release as an explicit state machine:
1. Discover the working set and the current revision
2. Build every package in dependency order (fail-fast)
3. Plan versions: patch bump for the umbrella package, prereleases for the rest
4. Ask the operator to confirm the versions
5. Rewrite descriptors for the registry and publish each package (failures
   are isolated per package)
6. Ask whether to reset the working tree; if so, restore it from git and
   re-apply the umbrella version bump
7. Unless this is a dry run, ask whether to commit and push the bump

Every state change goes through WorkflowRun.transition, so the run's history
records exactly which gates were reached.
"""

from __future__ import annotations

from .build import build_packages
from .errors import (
    CommitOrPushFailure,
    ConfigError,
    VersionConfirmationDeclined,
)
from .models import PUBLISH_REWRITE, WorkflowRun, WorkflowState
from .prompts import Confirmer
from .publish import publish_packages
from .reconcile import commit_and_push, reconcile
from .rewrite import rewrite_packages
from .shell import info, pkg, step, ver, warn
from .versions import plan_versions, resolve_build_id
from .workspace import discover_packages, find_umbrella_paths, load_working_set


def prepare(run: WorkflowRun) -> None:
    """Discover the working set and resolve the build identifier."""
    run.transition(WorkflowState.PREPARING)
    step(f"Welcome to the {run.channel.name} packages release CLI! dry run: {run.dry_run}")

    run.paths = discover_packages(run.root, run.config)
    run.descriptors = load_working_set(run.paths)

    umbrella = run.config.umbrella_package
    if not find_umbrella_paths(run.descriptors, umbrella):
        raise ConfigError(f"Umbrella package {umbrella!r} is not in the working set")

    run.build_id = resolve_build_id(run.shell)
    for d in run.descriptors:
        info(f"{pkg(d.name)} {ver(d.version)} ({d.path.relative_to(run.root)})")
    info(f"Revision: {run.build_id}")


def build(run: WorkflowRun) -> None:
    run.transition(WorkflowState.BUILDING)
    build_packages(run)


def plan(run: WorkflowRun) -> None:
    """Compute the version plan from the descriptors read while preparing."""
    run.set_plan(
        plan_versions(
            run.descriptors, run.config.umbrella_package, run.channel.name, run.revision()
        )
    )
    run.transition(WorkflowState.VERSION_PLANNED)


def confirm_versions(run: WorkflowRun, confirmer: Confirmer) -> None:
    """Block until the operator accepts the planned versions.

    Raises:
        VersionConfirmationDeclined: If the operator says no. Nothing has
            been written or published at that point.
    """
    versions = run.planned()
    run.transition(WorkflowState.AWAITING_PUBLISH_CONFIRMATION)

    message = "\nAre you sure these are the versions you want to publish?\n"
    for name, version in versions.items():
        message += f"{name} : {version}\n"

    if not confirmer.confirm(message, False):
        run.transition(WorkflowState.ABORTED)
        raise VersionConfirmationDeclined()


def publish(run: WorkflowRun) -> None:
    """Rewrite descriptors into their registry form and publish them."""
    versions = run.planned()
    run.transition(WorkflowState.PUBLISHING)

    step("Updating package names and versions")
    rewrite_packages(run.paths, versions, PUBLISH_REWRITE, run.channel)

    run.publish_report = publish_packages(run, run.paths)
    if run.publish_report.failed:
        warn(f"Failed to publish: {', '.join(run.publish_report.failed)}")


def reset(run: WorkflowRun, confirmer: Confirmer) -> bool:
    """Offer to restore the working tree and re-apply the umbrella bump.

    Returns:
        False if the operator chose to keep the rewritten tree.
    """
    versions = run.planned()
    run.transition(WorkflowState.AWAITING_RESET_CONFIRMATION)
    if not confirmer.confirm("Do you want to reset the working tree?", True):
        run.transition(WorkflowState.EXITED)
        return False

    run.transition(WorkflowState.RESETTING)
    umbrella = run.config.umbrella_package
    reconcile(run, find_umbrella_paths(run.descriptors, umbrella), versions[umbrella])
    return True


def push(run: WorkflowRun, confirmer: Confirmer) -> None:
    """Offer to commit and push the umbrella bump. Never offered on dry runs.

    A commit or push failure is reported, not raised: the packages are
    already published and stay that way.
    """
    versions = run.planned()
    if run.dry_run:
        run.transition(WorkflowState.DONE)
        return

    run.transition(WorkflowState.AWAITING_PUSH_CONFIRMATION)
    if not confirmer.confirm(
        f"Do you want to commit and push the {run.channel.name} version update to remote?",
        True,
    ):
        run.transition(WorkflowState.DONE)
        return

    run.transition(WorkflowState.COMMITTING)
    try:
        commit_and_push(run, versions[run.config.umbrella_package])
    except CommitOrPushFailure as exc:
        run.push_error = str(exc)
        warn(run.push_error)
    run.transition(WorkflowState.DONE)


def print_summary(run: WorkflowRun) -> None:
    step(f"Release finished: {run.state.value}")
    report = run.publish_report
    if report is not None:
        for outcome in report.outcomes:
            mark = "published" if outcome.ok else "FAILED"
            label = f"{outcome.name}@{outcome.version}" if outcome.version else outcome.name
            info(f"{label}: {mark}")
            if outcome.error:
                info(f"    {outcome.error}")
    if run.push_error:
        warn("Version update was not pushed; commit and push it manually.")


def run_release(run: WorkflowRun, confirmer: Confirmer) -> WorkflowState:
    """Execute the full release workflow.

    Args:
        run: Fresh run in the IDLE state.
        confirmer: Answers the operator confirmation gates.

    Returns:
        The terminal state reached: DONE, or EXITED if the operator chose
        not to reset the working tree.

    Raises:
        VersionConfirmationDeclined: If the operator rejected the versions
            (the run ends ABORTED).
        ReleaseError: Any other fatal error (the run ends FAILED).
    """
    try:
        prepare(run)
        build(run)
        plan(run)
        confirm_versions(run, confirmer)
        publish(run)
        if reset(run, confirmer):
            push(run, confirmer)
    except Exception:
        if not run.is_terminal:
            run.transition(WorkflowState.FAILED)
        raise

    print_summary(run)
    return run.state
