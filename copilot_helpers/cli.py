"""Shared CLI functionality for the copilot-helpers tools."""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from copilot_helpers import opts
from copilot_helpers.config import HelpersConfig, load_config, load_settings
from copilot_helpers.core.utils import console, err_console

app = typer.Typer(
    name="copilot-helpers",
    help="Check, configure and chat with the GitHub Copilot CLI.",
    add_completion=True,
    no_args_is_help=True,
)


def setup_logging(log_level: str, log_file: str | None, *, quiet: bool = False) -> None:
    """Route log records to a Rich handler on stderr and optionally a file."""
    handlers: list[logging.Handler] = []
    if not quiet:
        handlers.append(
            RichHandler(
                console=err_console,
                show_time=True,
                show_level=True,
                show_path=False,
                rich_tracebacks=True,
            ),
        )
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        )
        handlers.append(file_handler)
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


def set_config_defaults(ctx: typer.Context, config_file: str | None) -> None:
    """Feed ``[defaults]`` and the invoked command's table into ``default_map``."""
    config = load_config(config_file)
    wildcard_config = config.get("defaults", {})
    subcommand = ctx.invoked_subcommand

    if not subcommand:
        ctx.default_map = wildcard_config
        return

    command_config = config.get(subcommand, {})
    ctx.default_map = {
        **(ctx.default_map or {}),
        subcommand: {**wildcard_config, **command_config},
    }


def get_settings(ctx: typer.Context) -> HelpersConfig:
    """Return the settings stored by the main callback."""
    settings = ctx.find_object(HelpersConfig)
    return settings if settings is not None else HelpersConfig()


@app.callback()
def main(
    ctx: typer.Context,
    config_file: str | None = opts.CONFIG_FILE,
    log_level: str | None = opts.LOG_LEVEL,
    log_file: str | None = opts.LOG_FILE,
    timeout: float | None = opts.TIMEOUT,
    copilot_command: str | None = opts.COPILOT_COMMAND,
) -> None:
    """Helpers for the GitHub Copilot CLI and SDK."""
    import dotenv  # noqa: PLC0415

    dotenv.load_dotenv()

    try:
        settings = load_settings(config_file)
        overrides = {
            "log_level": log_level,
            "timeout": timeout,
            "copilot_command": copilot_command,
        }
        settings = HelpersConfig(
            **{**settings.model_dump(), **{k: v for k, v in overrides.items() if v is not None}},
        )
    except ValueError as e:
        err_console.print(f"[bold red]Invalid settings:[/bold red] {e}")
        raise typer.Exit(1) from e

    setup_logging(settings.log_level, log_file)
    set_config_defaults(ctx, config_file)
    ctx.obj = settings


# Import commands from other modules to register them
from copilot_helpers.commands import chat, check, sessions  # noqa: E402, F401

__all__ = ["app", "console", "get_settings", "set_config_defaults", "setup_logging"]
