"""Helpers shared by the command modules."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

import typer

from copilot_helpers.client import client_scope
from copilot_helpers.core.utils import print_error_message

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from copilot import CopilotClient

    from copilot_helpers.config import HelpersConfig

T = TypeVar("T")


def run_with_client(
    settings: HelpersConfig,
    action: Callable[[CopilotClient], Awaitable[T]],
) -> T:
    """Start one SDK client for the whole command and run ``action`` with it."""

    async def _run() -> T:
        async with client_scope(cli_path=settings.cli_path) as client:
            return await action(client)

    try:
        return asyncio.run(_run())
    except Exception as e:
        print_error_message(f"Could not talk to the Copilot CLI: {e}", "Run `copilot-helpers check` for details.")
        raise typer.Exit(1) from e
