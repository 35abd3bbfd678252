"""Shared CLI options for the copilot-helpers commands."""

from __future__ import annotations

import typer

# --- General Options ---
CONFIG_FILE = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to a TOML config file.",
)
LOG_LEVEL = typer.Option(
    None,
    "--log-level",
    help="Logging level (debug, info, warning, error).",
)
LOG_FILE = typer.Option(
    None,
    "--log-file",
    help="Also write log records to this file.",
)
TIMEOUT = typer.Option(
    None,
    "--timeout",
    "-t",
    help="Seconds to wait for the Copilot CLI before giving up.",
)
COPILOT_COMMAND = typer.Option(
    None,
    "--copilot-command",
    help="Name or path of the Copilot CLI executable.",
)

# --- Output Options ---
JSON_OUTPUT = typer.Option(
    False,  # noqa: FBT003
    "--json",
    help="Print machine-readable JSON instead of formatted text.",
)

# --- Chat Options ---
MODEL = typer.Option(
    None,
    "--model",
    "-m",
    help="Model to chat with. Prompts for one when omitted.",
)
RESUME = typer.Option(
    False,  # noqa: FBT003
    "--resume",
    help="Resume the most recently used session instead of starting a new one.",
)
