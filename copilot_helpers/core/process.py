"""Run external programs with a bounded wait and full output capture.

Both pipes of the child are drained by independent tasks that start right
after the process is spawned, so a child filling one pipe buffer can never
stall while we wait on the other. The wait for exit races a timeout; on
expiry the child (and its process group on POSIX) is killed.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import re
import shlex
import signal
import subprocess
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from copilot_helpers import constants

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

_QUOTED_TOKEN = re.compile(r'"([^"]*)"')
_READ_CHUNK_SIZE = 64 * 1024
# Extra time allowed for the pipes to reach EOF once the child is gone
_DRAIN_GRACE_SECONDS = 1.0


class ProcessOutcome(enum.Enum):
    """Why an invocation ended the way it did."""

    OK = "ok"
    NOT_FOUND = "not_found"
    START_FAILED = "start_failed"
    NON_ZERO_EXIT = "non_zero_exit"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ProcessInvocationRequest:
    """A single program invocation: what to run and how long to wait."""

    executable: str
    args: tuple[str, ...] = ()
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        """Reject timeouts that could never be honoured."""
        if not self.timeout > 0:
            msg = f"timeout must be positive, got {self.timeout!r}"
            raise ValueError(msg)
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, "args", tuple(self.args))

    @classmethod
    def from_command_line(
        cls,
        executable: str,
        arguments: str = "",
        timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
    ) -> ProcessInvocationRequest:
        """Build a request from an argument string.

        The string is only tokenized (``shlex.split``); it never reaches a shell.
        An unbalanced quote raises ``ValueError``.
        """
        return cls(executable, tuple(shlex.split(arguments)), timeout)


@dataclass(frozen=True)
class ProcessInvocationResult:
    """Captured output and exit status of one invocation."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    timed_out: bool = False
    error: str | None = None
    missing_executable: bool = False

    @property
    def success(self) -> bool:
        """True only for a zero exit code that was not preceded by a timeout."""
        return self.exit_code == 0 and not self.timed_out

    @property
    def outcome(self) -> ProcessOutcome:
        """Classify the result so callers can tell failure causes apart."""
        if self.missing_executable:
            return ProcessOutcome.NOT_FOUND
        if self.error is not None:
            return ProcessOutcome.START_FAILED
        if self.timed_out:
            return ProcessOutcome.TIMED_OUT
        if self.exit_code != 0:
            return ProcessOutcome.NON_ZERO_EXIT
        return ProcessOutcome.OK


def _spawn_options() -> dict[str, Any]:
    """Platform-specific keyword arguments for process creation."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NO_WINDOW}
    # Own process group, so a timeout kill also reaches grandchildren
    return {"start_new_session": True}


def _kill(proc: asyncio.subprocess.Process) -> None:
    """Forcefully terminate the child (and its process group on POSIX)."""
    try:
        if sys.platform == "win32":
            proc.kill()
        else:
            os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug("Process %d already gone", proc.pid)


async def _drain(stream: asyncio.StreamReader | None, chunks: list[bytes]) -> None:
    """Read ``stream`` to EOF, appending every chunk as it arrives."""
    if stream is None:
        return
    while chunk := await stream.read(_READ_CHUNK_SIZE):
        chunks.append(chunk)


async def _join_drains(
    proc: asyncio.subprocess.Process,
    drains: Sequence[asyncio.Task[None]],
    timeout: float,
) -> bool:
    """Wait for both drains; returns False if output had to be cut short."""
    _, pending = await asyncio.wait(drains, timeout=timeout)
    if not pending:
        return True
    # The child exited but something still holds the pipes open
    logger.warning("Output pipes of process %d still open, killing its group", proc.pid)
    _kill(proc)
    _, pending = await asyncio.wait(drains, timeout=_DRAIN_GRACE_SECONDS)
    for task in pending:
        task.cancel()
    return not pending


async def _release(
    proc: asyncio.subprocess.Process,
    drains: Sequence[asyncio.Task[None]],
) -> None:
    """Make sure neither the child nor the drain tasks outlive the call."""
    for task in drains:
        if not task.done():
            task.cancel()
    # Cancelled drains raise CancelledError here; that is the expected end state
    await asyncio.gather(*drains, return_exceptions=True)
    if proc.returncode is None:
        _kill(proc)
        await proc.wait()


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")


async def invoke(request: ProcessInvocationRequest) -> ProcessInvocationResult:
    """Run ``request`` and return its captured output.

    Never raises for expected failures: a missing binary, a start error,
    a non-zero exit or a timeout are all reported through the result.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + request.timeout
    try:
        proc = await asyncio.create_subprocess_exec(
            request.executable,
            *request.args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            **_spawn_options(),
        )
    except FileNotFoundError as e:
        logger.debug("Executable %r not found: %s", request.executable, e)
        return ProcessInvocationResult(error=str(e), missing_executable=True)
    except (OSError, ValueError) as e:
        logger.debug("Could not start %r: %s", request.executable, e)
        return ProcessInvocationResult(error=str(e))

    stdout_chunks: list[bytes] = []
    stderr_chunks: list[bytes] = []
    drains = (
        asyncio.create_task(_drain(proc.stdout, stdout_chunks)),
        asyncio.create_task(_drain(proc.stderr, stderr_chunks)),
    )
    timed_out = False
    try:
        try:
            await asyncio.wait_for(proc.wait(), timeout=request.timeout)
        except TimeoutError:
            timed_out = True
            logger.warning(
                "%s did not exit within %.1fs, killing it",
                request.executable,
                request.timeout,
            )
            _kill(proc)
            await proc.wait()

        remaining = max(deadline - loop.time(), 0.0) + _DRAIN_GRACE_SECONDS
        if not await _join_drains(proc, drains, remaining):
            logger.warning("Output of %s was truncated", request.executable)
    finally:
        await _release(proc, drains)

    result = ProcessInvocationResult(
        stdout=_decode(stdout_chunks),
        stderr=_decode(stderr_chunks),
        exit_code=None if timed_out else proc.returncode,
        timed_out=timed_out,
    )
    logger.debug(
        "%s %s finished: %s (exit code %s)",
        request.executable,
        shlex.join(request.args),
        result.outcome.value,
        result.exit_code,
    )
    return result


async def run_command(
    executable: str,
    arguments: str = "",
    *,
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
) -> ProcessInvocationResult:
    """Shorthand for ``invoke`` with an argument string.

    Raises ``ValueError`` if ``arguments`` cannot be tokenized.
    """
    return await invoke(ProcessInvocationRequest.from_command_line(executable, arguments, timeout))


def extract_quoted_tokens(
    text: str,
    start_marker: str,
    section_marker: str = constants.CHOICES_MARKER,
    end_marker: str = constants.NEXT_FLAG_MARKER,
) -> list[str]:
    """Pull the double-quoted tokens out of a marked section of ``text``.

    ``start_marker`` and ``section_marker`` are matched case-insensitively,
    the section marker only after the start marker. The section runs until
    ``end_marker`` or the end of the text. A missing marker gives ``[]``.
    """
    start = re.search(re.escape(start_marker), text, flags=re.IGNORECASE)
    if start is None:
        return []
    section = re.compile(re.escape(section_marker), flags=re.IGNORECASE).search(
        text,
        start.start(),
    )
    if section is None:
        return []
    end = text.find(end_marker, section.start() + 1)
    if end < 0:
        end = len(text)
    return _QUOTED_TOKEN.findall(text[section.start() : end])
