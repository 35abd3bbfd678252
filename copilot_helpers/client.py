"""Creation and lifetime handling of the Copilot SDK client."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from copilot import CopilotClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def create_client(cli_path: str | None = None) -> CopilotClient:
    """Create an SDK client, optionally pointing it at a specific CLI binary."""
    if cli_path:
        return CopilotClient({"cli_path": cli_path})
    return CopilotClient()


async def stop_client(client: CopilotClient) -> None:
    """Stop ``client``, falling back to a forced stop if cleanup fails."""
    try:
        errors = await client.stop()
    except Exception:
        logger.warning("Failed to stop Copilot CLI cleanly, force stopping", exc_info=True)
        await client.force_stop()
        return
    for error in errors or ():
        logger.debug("Error during Copilot client shutdown: %s", error)


@asynccontextmanager
async def client_scope(
    client: CopilotClient | None = None,
    *,
    cli_path: str | None = None,
) -> AsyncIterator[CopilotClient]:
    """Yield a started client.

    A caller-supplied client is started (a no-op if it already is) and left
    running. Without one, a fresh client is created and stopped on exit.
    """
    if client is not None:
        await client.start()
        yield client
        return

    owned = create_client(cli_path)
    try:
        await owned.start()
        yield owned
    finally:
        await stop_client(owned)
