"""CLI commands for managing stored users."""

from __future__ import annotations

from datetime import date
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

users_app = typer.Typer(help="Manage stored user records.")
console = Console()


def _store():  # type: ignore[no-untyped-def]
    from onboard.settings import get_settings
    from onboard.store import build_user_store

    return build_user_store(get_settings().storage.sqlite_path)


@users_app.command("add")
def add_user(
    email: str = typer.Argument(..., help="Login email."),
    first_name: str = typer.Option(..., "--first-name", help="First name."),
    last_name: str = typer.Option(..., "--last-name", help="Last name."),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Login password."),
    country: str = typer.Option("US", "--country", help="ISO country code."),
    phone: Optional[str] = typer.Option(None, "--phone", help="Phone number (digits)."),
    birth_date: Optional[str] = typer.Option(None, "--birth-date", help="Date of birth, YYYY-MM-DD."),
) -> None:
    """Add a user record."""
    dob = None
    if birth_date:
        try:
            dob = date.fromisoformat(birth_date)
        except ValueError:
            raise typer.BadParameter("Expected YYYY-MM-DD", param_hint="--birth-date")
    user_id = _store().create_user(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=password,
        country_code=country,
        phone=phone,
        birth_date=dob,
    )
    console.print(f"[green]✓[/green] Created user {user_id} ({email})")


@users_app.command("list")
def list_users(
    pending: bool = typer.Option(False, "--pending", help="Only users not yet onboarded."),
    limit: int = typer.Option(50, "--limit", "-n", help="Max rows to show."),
) -> None:
    """List stored users."""
    users = _store().list_users(pending_only=pending, limit=limit)
    if not users:
        console.print("[yellow]No users found.[/yellow]")
        return
    table = Table(title="Users")
    table.add_column("ID", justify="right")
    table.add_column("Email")
    table.add_column("Country")
    table.add_column("Attempts", justify="right")
    table.add_column("Last error")
    table.add_column("Done")
    for u in users:
        table.add_row(
            str(u.id),
            u.email,
            u.country_code,
            str(u.attempt_count),
            u.last_error_code or "",
            "✓" if u.success_at else "",
        )
    console.print(table)


@users_app.command("show")
def show_user(user_id: int = typer.Argument(..., help="User id.")) -> None:
    """Show one user record (password and session blob hidden)."""
    user = _store().get_user(user_id)
    if user is None:
        console.print(f"[red]User {user_id} not found[/red]")
        raise typer.Exit(code=1)
    data = user.model_dump(mode="json", exclude={"password", "last_session_state"})
    data["has_saved_session"] = bool(user.last_session_state)
    table = Table(title=f"User {user_id}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)
