"""
Human-readable and JSON output formatting.

Centralizes all CLI output so commands stay thin.
"""
from __future__ import annotations

import json
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..models import ImageReference, UpgradeRecord

_console = Console()
_err_console = Console(stderr=True)

_TYPE_STYLES = {
    "major": "bold red",
    "minor": "green",
    "digest": "cyan",
    "pin": "yellow",
}


def print_upgrades(reference: ImageReference, upgrades: List[UpgradeRecord], verbose: bool = False) -> None:
    """
    Print proposed upgrades as a table.

    Args:
        reference: Reference the upgrades were computed for
        upgrades: Proposed upgrades
        verbose: Also show digests and the full new reference
    """
    if not upgrades:
        _console.print(f"No upgrades found for [bold]{reference.current_from}[/]")
        return

    table = Table(title=f"Upgrades for {reference.current_from}")
    table.add_column("Type")
    table.add_column("New value", style="bold")
    table.add_column("Major")
    if verbose:
        table.add_column("Digest", style="dim")
        table.add_column("New reference")

    for upgrade in upgrades:
        kind = upgrade.type.value
        if upgrade.is_range:
            kind += " (range)"
        row = [
            f"[{_TYPE_STYLES[upgrade.type.value]}]{kind}[/]",
            upgrade.new_value,
            upgrade.new_major or "-",
        ]
        if verbose:
            row += [upgrade.new_digest or "-", upgrade.new_from]
        table.add_row(*row)

    _console.print(table)


def print_upgrades_json(upgrades: List[UpgradeRecord]) -> None:
    """Print upgrades as a JSON list with camelCase keys."""
    typer.echo(json.dumps([u.to_dict() for u in upgrades], indent=2))


def print_digest(reference: ImageReference, digest: Optional[str], as_json: bool = False) -> None:
    tag = reference.current_tag or "latest"
    if as_json:
        typer.echo(json.dumps({"depName": reference.dep_name, "tag": tag, "digest": digest}))
        return
    if digest is None:
        _console.print(f"[yellow]No digest found for {reference.dep_name}:{tag}[/]")
    else:
        typer.echo(digest)


def print_error(exc: BaseException) -> None:
    _err_console.print(f"[red]Error:[/] {exc}")
