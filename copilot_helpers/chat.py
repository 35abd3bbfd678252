"""Send a prompt to a Copilot session and consume the streamed reply."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rich.text import Text

if TYPE_CHECKING:
    from collections.abc import Callable

    from copilot import CopilotSession
    from rich.console import Console

logger = logging.getLogger(__name__)

MESSAGE_DELTA = "assistant.message_delta"
MESSAGE = "assistant.message"
SESSION_IDLE = "session.idle"
SESSION_ERROR = "session.error"


def event_type(event: Any) -> str:
    """Return the event type as its dotted string name."""
    return event.type.value if hasattr(event.type, "value") else str(event.type)


def _data_field(event: Any, field: str, default: str = "") -> str:
    value = getattr(event.data, field, None)
    return default if value is None else str(value)


class _Turn:
    """Tracks one prompt/reply exchange and signals when it is over."""

    def __init__(
        self,
        on_text: Callable[[str], None],
        on_error: Callable[[str], None] | None = None,
        on_idle: Callable[[], None] | None = None,
    ) -> None:
        self._on_text = on_text
        self._on_error = on_error
        self._on_idle = on_idle
        self._loop = asyncio.get_running_loop()
        self.done = asyncio.Event()
        self.saw_delta = False
        self.error: str | None = None

    def _finish(self) -> None:
        # SDK handlers may run off the event loop thread
        self._loop.call_soon_threadsafe(self.done.set)

    def handle(self, event: Any) -> None:
        kind = event_type(event)
        if kind == MESSAGE_DELTA:
            self.saw_delta = True
            self._on_text(_data_field(event, "delta_content"))
        elif kind == MESSAGE:
            # With streaming on, the full message repeats the deltas
            if not self.saw_delta:
                self._on_text(_data_field(event, "content"))
        elif kind == SESSION_IDLE:
            if self._on_idle:
                self._on_idle()
            self._finish()
        elif kind == SESSION_ERROR:
            self.error = _data_field(event, "message", "Unknown error")
            if self._on_error:
                self._on_error(self.error)
            self._finish()
        else:
            logger.debug("Ignoring event %s", kind)


async def _run_turn(
    session: CopilotSession,
    message: str,
    turn: _Turn,
    timeout: float | None,
) -> None:
    unsubscribe = session.on(turn.handle)
    try:
        await session.send({"prompt": message})
        await asyncio.wait_for(turn.done.wait(), timeout=timeout)
    finally:
        unsubscribe()


async def send_message_with_callbacks(
    session: CopilotSession,
    message: str,
    on_delta: Callable[[str], None],
    on_complete: Callable[[], None] | None = None,
    on_error: Callable[[str], None] | None = None,
    *,
    timeout: float | None = None,
) -> None:
    """Send ``message`` and report the reply through callbacks.

    ``on_delta`` receives each piece of text (or the whole reply when the
    session does not stream). ``on_complete`` fires when the session goes
    idle, ``on_error`` with the message of a session error.
    """
    turn = _Turn(on_delta, on_error=on_error, on_idle=on_complete)
    await _run_turn(session, message, turn, timeout)


async def send_message_and_get_response(
    session: CopilotSession,
    message: str,
    *,
    timeout: float | None = None,
) -> str | None:
    """Send ``message`` and return the full reply, or ``None`` on a session error."""
    parts: list[str] = []
    turn = _Turn(parts.append)
    await _run_turn(session, message, turn, timeout)
    if turn.error is not None:
        logger.debug("Session error: %s", turn.error)
        return None
    return "".join(parts)


@dataclass
class ConsoleSink:
    """Where a streamed reply is rendered, plus whether it has begun."""

    console: Console
    prefix: str = "Copilot: "
    started: bool = False

    def write(self, text: str) -> None:
        """Print a piece of the reply, after the prefix on first use."""
        if not self.started:
            self.console.print()
            self.console.print(Text(self.prefix, style="green"), end="")
            self.started = True
        self.console.print(text, end="", markup=False, highlight=False, soft_wrap=True)

    def error(self, message: str) -> None:
        """Print a session error on its own line."""
        self.console.print()
        self.console.print(Text(f"❌ Error: {message}", style="red"))

    def close(self) -> None:
        """End the reply with a blank line."""
        self.console.print("\n")


async def send_message_and_stream_response(
    session: CopilotSession,
    message: str,
    console: Console,
    *,
    timeout: float | None = None,
) -> ConsoleSink:
    """Send ``message`` and stream the reply to ``console`` as it arrives."""
    sink = ConsoleSink(console)
    turn = _Turn(sink.write, on_error=sink.error)
    await _run_turn(session, message, turn, timeout)
    sink.close()
    return sink
