"""The ``sessions`` command group: list, inspect and clean up Copilot sessions."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Annotated

import typer

from copilot_helpers import opts
from copilot_helpers.cli import app as main_app
from copilot_helpers.cli import get_settings
from copilot_helpers.commands._common import run_with_client
from copilot_helpers.core.utils import console, print_error_message, print_with_style
from copilot_helpers.sessions import (
    cleanup_old_sessions,
    delete_session,
    get_foreground_session_id,
    get_last_session_id,
    get_sessions,
    list_sessions,
    session_summary,
    set_foreground_session_id,
)

app = typer.Typer(
    name="sessions",
    help="List, inspect and clean up Copilot sessions.",
    no_args_is_help=True,
)
main_app.add_typer(app, name="sessions")


@app.command("list")
def list_command(
    ctx: typer.Context,
    json_output: bool = opts.JSON_OUTPUT,
) -> None:
    """List all sessions known to the Copilot CLI."""
    settings = get_settings(ctx)
    if json_output:
        sessions = run_with_client(settings, get_sessions)
        if sessions is None:
            raise typer.Exit(1)
        print(json.dumps([session_summary(s) for s in sessions], indent=2))
        return
    run_with_client(settings, lambda client: list_sessions(console, client))


@app.command("last")
def last(ctx: typer.Context) -> None:
    """Print the ID of the most recently used session."""
    session_id = run_with_client(get_settings(ctx), get_last_session_id)
    if session_id is None:
        print_error_message("No sessions found.")
        raise typer.Exit(1)
    print(session_id)


@app.command("delete")
def delete(
    ctx: typer.Context,
    session_id: Annotated[str, typer.Argument(help="ID of the session to delete.")],
) -> None:
    """Delete a session permanently."""
    deleted = run_with_client(get_settings(ctx), lambda client: delete_session(session_id, client))
    if not deleted:
        print_error_message(f"Could not delete session {session_id}.")
        raise typer.Exit(1)
    print_with_style(f"🗑️  Deleted session {session_id}")


@app.command("cleanup")
def cleanup(
    ctx: typer.Context,
    older_than_days: Annotated[
        float,
        typer.Option(
            "--older-than-days",
            "-d",
            min=0,
            help="Delete sessions not modified within this many days.",
        ),
    ] = 30.0,
) -> None:
    """Delete sessions that have not been used for a while."""
    older_than = timedelta(days=older_than_days)
    count = run_with_client(get_settings(ctx), lambda client: cleanup_old_sessions(older_than, client))
    print_with_style(f"🧹 Deleted {count} session(s) older than {older_than_days:g} day(s).")


@app.command("foreground")
def foreground(
    ctx: typer.Context,
    session_id: Annotated[
        str | None,
        typer.Argument(help="Session to bring to the foreground. Omit to show the current one."),
    ] = None,
) -> None:
    """Show or switch the session displayed in the Copilot TUI (server mode only)."""
    settings = get_settings(ctx)
    if session_id is None:
        current = run_with_client(settings, get_foreground_session_id)
        if current is None:
            print_error_message("No foreground session (is the CLI running with --ui-server?).")
            raise typer.Exit(1)
        print(current)
        return

    if not run_with_client(settings, lambda client: set_foreground_session_id(session_id, client)):
        print_error_message(f"Could not switch the foreground session to {session_id}.")
        raise typer.Exit(1)
    print_with_style(f"✅ Foreground session is now {session_id}")
