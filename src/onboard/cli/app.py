"""Unified CLI entry point for the onboarding runner.

Config precedence: settings.default.toml -> settings.{env}.toml -> settings.local.toml -> env vars (ONBOARD_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import logging
import sys

import typer

from onboard.cli.run_cmd import register_run
from onboard.cli.settings_cmd import settings_app
from onboard.cli.steps_cmd import register_steps
from onboard.cli.users_cmd import users_app

try:
    from importlib.metadata import version

    VERSION = version("onboard")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "onboard - drive the profile-creation wizard for stored users. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (ONBOARD_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.add_typer(users_app, name="users")
app.add_typer(settings_app, name="settings")
register_run(app)
register_steps(app)


def configure_logging(level: str) -> None:
    """Configure root logging once for the CLI process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stderr,
    )
    # Quieten noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)."),
) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"onboard {VERSION}")
        raise typer.Exit()
    configure_logging(log_level)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
