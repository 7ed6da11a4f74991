"""CLI entry point for exp-release."""

from __future__ import annotations

import sys
import traceback
from pathlib import Path

import click

from .config import load_config
from .errors import CommandError, ReleaseError
from .models import WorkflowRun, WorkflowState
from .pipeline import run_release
from .prompts import ClickConfirmer
from .shell import Shell, error


@click.command()
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Publish with --dry-run and never commit or push.",
)
def cli(dry_run: bool) -> None:
    """Build and publish the exp packages under the exp distribution tag.

    Exits 0 when the release completes or the operator stops before the
    working tree is reset, and 1 on any error.
    """
    root = Path.cwd()
    try:
        run = WorkflowRun(
            root=root, config=load_config(root), shell=Shell(root), dry_run=dry_run
        )
        state = run_release(run, ClickConfirmer())
    except CommandError as exc:
        error(exc.details())
        sys.exit(1)
    except ReleaseError as exc:
        error(str(exc))
        sys.exit(1)
    except Exception:
        error("Unexpected error during release")
        click.echo(traceback.format_exc(), err=True)
        sys.exit(1)

    sys.exit(0 if state in (WorkflowState.DONE, WorkflowState.EXITED) else 1)
