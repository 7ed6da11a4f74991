"""Publishing to the npm registry.

Publishing is the one irreversible step, so each package is attempted
independently: a failure is recorded and the next package still runs. The
operator can then retry just the failed subset.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import click

from .descriptor import read_descriptor
from .errors import (
    CommandError,
    DescriptorMalformedError,
    DescriptorNotFoundError,
    PublishFailure,
)
from .models import PublishOutcome, PublishReport, WorkflowRun
from .shell import info, pkg, step, ver


def publish_command(run: WorkflowRun) -> list[str]:
    """Return the publish argv shared by every package."""
    args = [
        *run.config.publish.command,
        "--access",
        run.config.access,
        "--tag",
        run.channel.dist_tag,
    ]
    if run.dry_run:
        args.append("--dry-run")
    return args


def publish_package(run: WorkflowRun, path: Path, name: str) -> None:
    """Publish a single package directory.

    Raises:
        PublishFailure: If the publish command fails.
    """
    try:
        run.shell.run(*publish_command(run), cwd=path)
    except CommandError as exc:
        raise PublishFailure(name, exc.details()) from exc


def publish_packages(run: WorkflowRun, paths: Sequence[Path]) -> PublishReport:
    """Publish every package in order, isolating failures per package.

    Returns:
        A report with one outcome per path, in the order given.
    """
    step("Publishing packages to npm" + (" (dry run)" if run.dry_run else ""))

    report = PublishReport()
    for path in paths:
        report.outcomes.append(_publish_one(run, path))
    return report


def _publish_one(run: WorkflowRun, path: Path) -> PublishOutcome:
    try:
        descriptor = read_descriptor(path)
    except (DescriptorNotFoundError, DescriptorMalformedError) as exc:
        info(f"{click.style('✖', fg='red')} 📦  {pkg(path.name)}")
        return PublishOutcome(name=path.name, path=path, ok=False, error=str(exc))

    title = f"📦  {pkg(descriptor.name)}@{ver(descriptor.version)}"
    try:
        publish_package(run, path, descriptor.name)
    except PublishFailure as exc:
        info(f"{click.style('✖', fg='red')} {title}")
        return PublishOutcome(
            name=descriptor.name,
            version=descriptor.version,
            path=path,
            ok=False,
            error=exc.reason,
        )

    info(f"{click.style('✔', fg='green')} {title}")
    return PublishOutcome(
        name=descriptor.name, version=descriptor.version, path=path, ok=True
    )
