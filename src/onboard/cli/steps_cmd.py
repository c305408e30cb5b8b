"""``onboard steps``: show the declared wizard order."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

console = Console()


def list_steps() -> None:
    """List the declared step order with URL fragments."""
    from onboard.models.steps import STEP_ORDER
    from onboard.settings import get_settings

    namespace = get_settings().wizard.namespace
    table = Table(title="Wizard steps")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("URL")
    for d in STEP_ORDER:
        table.add_row(str(d.position + 1), d.name.value, f"{namespace}{d.fragment}")
    console.print(table)


def register_steps(app: typer.Typer) -> None:
    app.command("steps")(list_steps)
