"""CLI commands for inspecting onboard settings."""

from __future__ import annotations

import json

import typer
from rich.console import Console

settings_app = typer.Typer(help="Inspect and validate onboard configuration.")
console = Console()


@settings_app.command("show")
def show_settings() -> None:
    """Display the currently resolved settings (secrets masked)."""
    from onboard.settings import get_settings

    settings = get_settings()
    console.print_json(json.dumps(settings.masked_dump(), indent=2, default=str))


@settings_app.command("validate")
def validate_settings() -> None:
    """Validate settings and report any issues."""
    from onboard.settings import get_settings

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"[red]✗[/red] Settings validation failed: {e}")
        raise typer.Exit(code=1)
    console.print("[green]✓[/green] Settings are valid.")
    console.print(f"  Environment: {settings.env}")
    console.print(f"  Wizard: {settings.wizard_url}")
    console.print(f"  Database: {settings.storage.sqlite_path}")
    otp = settings.otp
    providers = [name for name, key in (("smspool", otp.smspool_api_key), ("sms-man", otp.smsman_api_key)) if key]
    console.print(f"  OTP providers: {', '.join(providers) or 'none'}")
