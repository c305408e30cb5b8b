"""``onboard run``: drive the wizard for one stored user."""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

console = Console()


def _print_outcome(result, as_json: bool) -> None:  # type: ignore[no-untyped-def]
    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
        return
    colour = "green" if result.ok else "red"
    table = Table(title="Run outcome", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Status", f"[{colour}]{result.status.value}[/{colour}]")
    table.add_row("Stage", result.stage)
    if result.error_code:
        table.add_row("Error", result.error_code)
        table.add_row("Evidence", result.evidence or "")
    table.add_row("URL", result.url)
    for name, path in result.screenshots.items():
        if path:
            table.add_row(f"Screenshot {name}", path)
    console.print(table)


async def _execute(user_id: int, options, settings):  # type: ignore[no-untyped-def]
    from onboard.otp.base import build_otp_chain
    from onboard.store import build_user_store
    from onboard.wizard.runner import ProfileRun

    store = build_user_store(settings.storage.sqlite_path)
    otp = build_otp_chain(settings)
    try:
        return await ProfileRun(user_id, store, otp, settings).execute(options)
    finally:
        await otp.aclose()


def run_user(
    user_id: int = typer.Argument(..., help="Id of the stored user to onboard."),
    upload_only: bool = typer.Option(False, "--upload-only", help="Verify existing data instead of re-entering it."),
    skip_otp: bool = typer.Option(False, "--skip-otp", help="Skip phone verification and go straight to submit."),
    skip_location: bool = typer.Option(False, "--skip-location", help="Stop before the location screen."),
    step: Optional[str] = typer.Option(None, "--step", help="Jump straight to this step before running."),
    restore_session: bool = typer.Option(False, "--restore-session", help="Reuse the saved browser session."),
    headful: bool = typer.Option(False, "--headful", help="Show the browser window."),
    as_json: bool = typer.Option(False, "--json", help="Print the outcome as JSON."),
) -> None:
    """Run the profile wizard for USER_ID and print the outcome."""
    from onboard.models.options import RunOptions
    from onboard.models.steps import StepName
    from onboard.settings import get_settings

    force_step = None
    if step:
        try:
            force_step = StepName(step.replace("-", "_"))
        except ValueError:
            valid = ", ".join(s.value for s in StepName)
            raise typer.BadParameter(f"Unknown step {step!r}; expected one of: {valid}", param_hint="--step")

    options = RunOptions(
        upload_only=upload_only,
        skip_otp=skip_otp,
        skip_location=skip_location,
        force_step=force_step,
        restore_session=restore_session,
    )
    settings = get_settings()
    if headful:
        settings = settings.model_copy(update={"browser": settings.browser.model_copy(update={"headless": False})})

    result = asyncio.run(_execute(user_id, options, settings))
    _print_outcome(result, as_json)
    if not result.ok:
        raise typer.Exit(code=1)


def register_run(app: typer.Typer) -> None:
    app.command("run")(run_user)
