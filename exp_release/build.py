"""Dependency-ordered build.

The build runner (lerna by default) is invoked once per configured stage.
Stage order encodes real dependency edges: each stage reads artifacts the
previous ones produced, so a failing stage stops the release.
"""

from __future__ import annotations

import shutil

from .errors import BuildFailure, CommandError
from .models import BuildStage, WorkflowRun
from .shell import info, step


def stage_command(runner: list[str], stage: BuildStage) -> list[str]:
    """Return the argv for one stage: <runner> --scope a --scope b <target>."""
    args = list(runner)
    for scope in stage.scopes:
        args.extend(["--scope", scope])
    args.append(stage.target)
    return args


def remove_stale_outputs(run: WorkflowRun) -> None:
    """Delete build output of non-channel siblings.

    Channel packages that depend on a sibling would otherwise resolve against
    the stale non-channel artifact.
    """
    for rel in run.config.build.stale_outputs:
        path = run.root / rel
        if path.exists():
            info(f"Removing stale build output {rel}")
            shutil.rmtree(path)


def build_packages(run: WorkflowRun) -> None:
    """Run every build stage in order.

    Raises:
        BuildFailure: On the first stage that exits non-zero. Later stages
            are not attempted.
    """
    build = run.config.build
    umbrella = run.config.umbrella_package
    step(f"Building packages ({len(build.stages)} stages)")

    cleaned = False
    for index, stage in enumerate(build.stages, start=1):
        if not cleaned and umbrella in stage.scopes:
            remove_stale_outputs(run)
            cleaned = True

        scopes = ", ".join(stage.scopes)
        info(f"[{index}/{len(build.stages)}] {stage.target}: {scopes}")
        try:
            run.shell.run(*stage_command(build.runner, stage))
        except CommandError as exc:
            raise BuildFailure(
                f"Build stage {index} ({stage.target} for {scopes}) failed: {exc}"
            ) from exc

    info("✅ Build complete")
