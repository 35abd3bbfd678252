"""Commands that inspect the local Copilot CLI: ``check``, ``status`` and ``models``."""

from __future__ import annotations

import asyncio
import json

import typer
from rich.table import Table

from copilot_helpers import opts
from copilot_helpers.cli import app, get_settings
from copilot_helpers.cli_checker import check_copilot_status, is_ready
from copilot_helpers.commands._common import run_with_client
from copilot_helpers.core.utils import console, print_error_message
from copilot_helpers.model_selector import get_model_infos
from copilot_helpers.sessions import show_cli_status


@app.command("check")
def check(ctx: typer.Context) -> None:
    """Check that the Copilot CLI is installed and you are signed in."""
    settings = get_settings(ctx)
    console.print("🔍 Checking prerequisites...\n")
    status = asyncio.run(
        check_copilot_status(
            console,
            command=settings.copilot_command,
            timeout=settings.timeout,
        ),
    )
    if not is_ready(status):
        raise typer.Exit(1)


@app.command("status")
def status(ctx: typer.Context) -> None:
    """Show the Copilot CLI version and protocol version."""
    settings = get_settings(ctx)
    if run_with_client(settings, lambda client: show_cli_status(console, client)) is None:
        raise typer.Exit(1)


@app.command("models")
def models(
    ctx: typer.Context,
    json_output: bool = opts.JSON_OUTPUT,
) -> None:
    """List the models offered by the Copilot CLI with their pricing tier."""
    settings = get_settings(ctx)
    infos = asyncio.run(get_model_infos(command=settings.copilot_command, timeout=settings.timeout))
    if not infos:
        print_error_message(
            "Could not fetch models from Copilot CLI.",
            f"Make sure '{settings.copilot_command}' is installed and working.",
        )
        raise typer.Exit(1)

    if json_output:
        print(json.dumps([{"name": m.name, "pricing_tier": m.pricing_tier} for m in infos], indent=2))
        return

    table = Table(title="🤖 Available models")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Model", style="bold cyan")
    table.add_column("Pricing")
    for i, info in enumerate(infos, start=1):
        table.add_row(str(i), info.name, info.pricing_tier)
    console.print(table)
