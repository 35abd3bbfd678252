"""Interactive chat with Copilot in the terminal.

Runs the checks, lets you pick a model, starts a streaming session and then
reads prompts until you type ``exit`` or ``quit``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import typer

from copilot_helpers import opts
from copilot_helpers.chat import send_message_and_stream_response
from copilot_helpers.cli import app, get_settings
from copilot_helpers.cli_checker import check_copilot_status, is_ready
from copilot_helpers.client import create_client, stop_client
from copilot_helpers.core.utils import console, print_error_message, run_with_status
from copilot_helpers.model_selector import select_model
from copilot_helpers.sessions import resume_last_session

if TYPE_CHECKING:
    from copilot import CopilotClient, CopilotSession
    from rich.console import Console

    from copilot_helpers.config import HelpersConfig

LOGGER = logging.getLogger(__name__)

EXIT_WORDS = frozenset({"exit", "quit"})


async def _open_session(
    client: CopilotClient,
    model: str,
    *,
    resume: bool,
    out: Console,
) -> CopilotSession:
    """Resume the last session or create a fresh streaming one."""
    if resume:
        session = await run_with_status(
            "Resuming last session",
            resume_last_session(client, {"model": model, "streaming": True}),
            target=out,
        )
        if session is not None:
            return session
        out.print("[yellow]No session to resume, starting a new one.[/yellow]")
    return await run_with_status(
        f"Creating session with {model}",
        client.create_session({"model": model, "streaming": True}),
        target=out,
    )


async def chat_loop(session: CopilotSession, out: Console) -> None:
    """Read prompts from the terminal and stream each reply."""
    out.print("[yellow]💬 Interactive Chat - Type 'exit' to quit[/yellow]\n")
    while True:
        try:
            line = await asyncio.to_thread(out.input, "[cyan]You: [/cyan]")
        except EOFError:
            out.print()
            break
        prompt = line.strip()
        if not prompt:
            continue
        if prompt.lower() in EXIT_WORDS:
            out.print("\n👋 Goodbye!")
            break
        await send_message_and_stream_response(session, prompt, out)


async def run_chat(
    settings: HelpersConfig,
    model: str | None,
    *,
    resume: bool,
    out: Console,
) -> bool:
    """The whole interactive flow; returns False when prerequisites are missing."""
    out.print("🔍 Checking prerequisites...\n")
    status = await check_copilot_status(out, command=settings.copilot_command, timeout=settings.timeout)
    if not is_ready(status):
        return False

    if model is None:
        model = await select_model(out, command=settings.copilot_command, timeout=settings.timeout)
        if model is None:
            return False
        out.print()

    client = create_client(settings.cli_path)
    session: CopilotSession | None = None
    try:
        await run_with_status("Starting Copilot client", client.start(), target=out)
        session = await _open_session(client, model, resume=resume, out=out)
        out.print(f"[dim]   Session ID: {session.session_id}[/dim]\n")
        await chat_loop(session, out)
    finally:
        if session is not None:
            try:
                await session.destroy()
            except Exception:
                LOGGER.debug("Destroying session failed", exc_info=True)
        await stop_client(client)
        out.print("\n🛑 Client stopped.")
    return True


@app.command("chat")
def chat(
    ctx: typer.Context,
    model: str | None = opts.MODEL,
    resume: bool = opts.RESUME,
) -> None:
    """Chat with Copilot interactively, streaming replies to the terminal."""
    settings = get_settings(ctx)
    try:
        ready = asyncio.run(run_chat(settings, model, resume=resume, out=console))
    except KeyboardInterrupt:
        console.print("\n👋 Goodbye!")
        return
    except Exception as e:
        LOGGER.debug("Chat failed", exc_info=True)
        print_error_message(f"Error: {e}")
        raise typer.Exit(1) from e
    if not ready:
        raise typer.Exit(1)
