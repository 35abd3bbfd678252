"""Session management on top of the Copilot SDK client.

Every helper accepts an optional client. Without one a temporary client is
started for the call and stopped afterwards. SDK failures are logged and
turned into ``None``, ``False`` or ``0``; they are not raised.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from copilot_helpers.client import client_scope

if TYPE_CHECKING:
    from datetime import timedelta

    from copilot import CopilotClient, CopilotSession
    from copilot.types import GetStatusResponse, ResumeSessionConfig, SessionMetadata
    from rich.console import Console

logger = logging.getLogger(__name__)

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO 8601 session timestamp into an aware UTC datetime."""
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _format_timestamp(value: str | datetime) -> str:
    try:
        return parse_timestamp(value).strftime(_TIME_FORMAT)
    except ValueError:
        return str(value)


async def get_sessions(client: CopilotClient | None = None) -> list[SessionMetadata] | None:
    """Return the metadata of every known session."""
    try:
        async with client_scope(client) as active:
            return await active.list_sessions()
    except Exception:
        logger.debug("Listing sessions failed", exc_info=True)
        return None


async def list_sessions(
    console: Console,
    client: CopilotClient | None = None,
) -> list[SessionMetadata] | None:
    """Print every session to ``console`` and return them."""
    sessions = await get_sessions(client)
    if not sessions:
        console.print("[yellow]No sessions found.[/yellow]")
        return None

    console.print(f"[cyan]📋 Found {len(sessions)} session(s):[/cyan]\n")
    for i, session in enumerate(sessions, start=1):
        console.print(f"  [yellow]{i}. {session.sessionId}[/yellow]", highlight=False)
        details = [
            f"Started: {_format_timestamp(session.startTime)}",
            f"Modified: {_format_timestamp(session.modifiedTime)}",
            f"Remote: {'Yes' if session.isRemote else 'No'}",
        ]
        if session.summary:
            details.append(f"Summary: {session.summary}")
        for line in details:
            console.print(f"     {line}", style="dim", markup=False, highlight=False)
        console.print()
    return sessions


def most_recent_session(sessions: list[SessionMetadata]) -> SessionMetadata | None:
    """Pick the session with the latest modification time."""
    dated: list[tuple[datetime, SessionMetadata]] = []
    for session in sessions:
        try:
            dated.append((parse_timestamp(session.modifiedTime), session))
        except ValueError:
            logger.debug("Ignoring session %s with bad timestamp", session.sessionId)
    if not dated:
        return None
    return max(dated, key=lambda item: item[0])[1]


async def get_last_session_id(client: CopilotClient | None = None) -> str | None:
    """Return the ID of the most recently used session."""
    sessions = await get_sessions(client)
    if not sessions:
        return None
    last = most_recent_session(sessions)
    return last.sessionId if last else None


async def resume_last_session(
    client: CopilotClient,
    config: ResumeSessionConfig | None = None,
) -> CopilotSession | None:
    """Resume the most recently used session, if there is one."""
    last_id = await get_last_session_id(client)
    if not last_id:
        return None
    try:
        return await client.resume_session(last_id, config)
    except Exception:
        logger.debug("Resuming session %s failed", last_id, exc_info=True)
        return None


async def delete_session(session_id: str, client: CopilotClient | None = None) -> bool:
    """Delete a session permanently."""
    try:
        async with client_scope(client) as active:
            await active.delete_session(session_id)
    except Exception:
        logger.debug("Deleting session %s failed", session_id, exc_info=True)
        return False
    return True


def _is_older_than(session: SessionMetadata, threshold: datetime) -> bool:
    try:
        return parse_timestamp(session.modifiedTime) < threshold
    except ValueError:
        logger.debug("Skipping session %s with bad timestamp", session.sessionId)
        return False


async def cleanup_old_sessions(older_than: timedelta, client: CopilotClient | None = None) -> int:
    """Delete sessions not modified within ``older_than``; returns how many went."""
    threshold = datetime.now(UTC) - older_than
    deleted = 0
    try:
        async with client_scope(client) as active:
            sessions = await active.list_sessions()
            for session in sessions:
                if not _is_older_than(session, threshold):
                    continue
                try:
                    await active.delete_session(session.sessionId)
                except Exception:
                    # Keep going, one bad session should not block the rest
                    logger.warning("Could not delete session %s", session.sessionId, exc_info=True)
                    continue
                deleted += 1
    except Exception:
        logger.debug("Session cleanup failed", exc_info=True)
    return deleted


async def get_cli_status(client: CopilotClient | None = None) -> GetStatusResponse | None:
    """Return the CLI version and protocol version."""
    try:
        async with client_scope(client) as active:
            return await active.get_status()
    except Exception:
        logger.debug("Fetching CLI status failed", exc_info=True)
        return None


async def show_cli_status(
    console: Console,
    client: CopilotClient | None = None,
) -> GetStatusResponse | None:
    """Print the CLI status to ``console`` and return it."""
    status = await get_cli_status(client)
    if status is None:
        console.print("[red]❌ Could not retrieve CLI status.[/red]")
        return None

    console.print("[cyan]ℹ️  Copilot CLI Status:[/cyan]")  # noqa: RUF001
    console.print(f"   Version: {status.version}", style="dim", highlight=False)
    console.print(f"   Protocol Version: {status.protocolVersion}", style="dim", highlight=False)
    console.print()
    return status


async def get_foreground_session_id(client: CopilotClient | None = None) -> str | None:
    """Return the session shown in the TUI (TUI+server mode only)."""
    try:
        async with client_scope(client) as active:
            return await active.get_foreground_session_id()
    except Exception:
        logger.debug("Fetching foreground session failed", exc_info=True)
        return None


async def set_foreground_session_id(session_id: str, client: CopilotClient | None = None) -> bool:
    """Ask the TUI to switch to ``session_id`` (TUI+server mode only)."""
    try:
        async with client_scope(client) as active:
            await active.set_foreground_session_id(session_id)
    except Exception:
        logger.debug("Setting foreground session %s failed", session_id, exc_info=True)
        return False
    return True


def session_summary(session: SessionMetadata) -> dict[str, Any]:
    """Plain-data view of a session, used for JSON output."""
    return {
        "session_id": session.sessionId,
        "start_time": session.startTime,
        "modified_time": session.modifiedTime,
        "is_remote": session.isRemote,
        "summary": session.summary,
    }
