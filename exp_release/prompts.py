"""Operator confirmation gates.

The workflow only needs a yes/no answer, so the terminal is hidden behind a
small protocol. Tests and scripted runs supply their own implementation.
"""

from __future__ import annotations

from typing import Protocol

import click


class Confirmer(Protocol):
    def confirm(self, message: str, default: bool) -> bool: ...


class ClickConfirmer:
    """Ask on the terminal with click.confirm."""

    def confirm(self, message: str, default: bool) -> bool:
        return click.confirm(message, default=default)
