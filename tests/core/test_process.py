"""Tests for the external process invoker."""

from __future__ import annotations

import asyncio
import os
import sys
import time
from pathlib import Path

import pytest

from copilot_helpers.core.process import (
    ProcessInvocationRequest,
    ProcessInvocationResult,
    ProcessOutcome,
    extract_quoted_tokens,
    invoke,
    run_command,
)

PYTHON = sys.executable
posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups")


def _python(code: str, timeout: float = 10.0) -> ProcessInvocationRequest:
    return ProcessInvocationRequest(PYTHON, ("-c", code), timeout)


def _open_fds() -> int:
    return len(os.listdir("/proc/self/fd"))


class TestRequest:
    """Tests for ProcessInvocationRequest."""

    def test_defaults(self) -> None:
        request = ProcessInvocationRequest("copilot")
        assert request.args == ()
        assert request.timeout == 10.0

    def test_args_stored_as_tuple(self) -> None:
        request = ProcessInvocationRequest("copilot", ["--help"])  # type: ignore[arg-type]
        assert request.args == ("--help",)

    @pytest.mark.parametrize("timeout", [0, -1.5, float("nan")])
    def test_rejects_non_positive_timeout(self, timeout: float) -> None:
        with pytest.raises(ValueError, match="timeout must be positive"):
            ProcessInvocationRequest("copilot", (), timeout)

    def test_from_command_line_splits_without_shell(self) -> None:
        request = ProcessInvocationRequest.from_command_line("git", 'log --format="%h %s" -n 3', 2.0)
        assert request.args == ("log", "--format=%h %s", "-n", "3")
        assert request.timeout == 2.0

    def test_from_command_line_unbalanced_quote(self) -> None:
        with pytest.raises(ValueError, match="No closing quotation"):
            ProcessInvocationRequest.from_command_line("git", "commit -m \"oops")


class TestResult:
    """Tests for the result classification."""

    def test_success_requires_zero_exit(self) -> None:
        assert ProcessInvocationResult(exit_code=0).success
        assert not ProcessInvocationResult(exit_code=1).success
        assert not ProcessInvocationResult().success

    def test_timeout_is_never_success(self) -> None:
        result = ProcessInvocationResult(exit_code=0, timed_out=True)
        assert not result.success
        assert result.outcome is ProcessOutcome.TIMED_OUT

    def test_outcomes(self) -> None:
        assert ProcessInvocationResult(exit_code=0).outcome is ProcessOutcome.OK
        assert ProcessInvocationResult(exit_code=2).outcome is ProcessOutcome.NON_ZERO_EXIT
        assert ProcessInvocationResult(error="boom").outcome is ProcessOutcome.START_FAILED
        missing = ProcessInvocationResult(error="nope", missing_executable=True)
        assert missing.outcome is ProcessOutcome.NOT_FOUND


@pytest.mark.asyncio
async def test_captures_stdout_and_stderr() -> None:
    """Both streams are captured separately."""
    result = await invoke(_python("import sys; print('out'); print('err', file=sys.stderr)"))
    assert result.success
    assert result.outcome is ProcessOutcome.OK
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"


@pytest.mark.asyncio
async def test_large_output_on_both_streams_does_not_deadlock() -> None:
    """128 KB on each pipe is more than the OS buffers, yet nothing stalls."""
    code = (
        "import sys\n"
        "for _ in range(128):\n"
        "    sys.stdout.write('o' * 1024)\n"
        "    sys.stderr.write('e' * 1024)\n"
        "sys.stdout.flush(); sys.stderr.flush()\n"
    )
    start = time.monotonic()
    result = await invoke(_python(code, timeout=10.0))
    assert time.monotonic() - start < 10.0
    assert result.success
    assert result.stdout == "o" * 128 * 1024
    assert result.stderr == "e" * 128 * 1024


@pytest.mark.asyncio
@posix_only
async def test_timeout_kills_process_ignoring_sigterm() -> None:
    """A child that ignores SIGTERM is still stopped at the timeout."""
    code = "import signal, time\nsignal.signal(signal.SIGTERM, signal.SIG_IGN)\ntime.sleep(30)\n"
    start = time.monotonic()
    result = await invoke(_python(code, timeout=0.5))
    elapsed = time.monotonic() - start
    assert result.timed_out
    assert result.exit_code is None
    assert not result.success
    assert result.outcome is ProcessOutcome.TIMED_OUT
    assert elapsed < 3.0


@pytest.mark.asyncio
async def test_timeout_keeps_partial_output() -> None:
    """Output written before the kill is still reported."""
    code = "import sys, time\nprint('started', flush=True)\ntime.sleep(30)\n"
    result = await invoke(_python(code, timeout=1.0))
    assert result.timed_out
    assert "started" in result.stdout


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [0, 3])
async def test_exit_code_is_reported(code: int) -> None:
    """The exit code is passed through and only zero counts as success."""
    result = await invoke(_python(f"import sys; sys.exit({code})"))
    assert result.exit_code == code
    assert result.success is (code == 0)
    assert not result.timed_out


@pytest.mark.asyncio
async def test_missing_executable() -> None:
    """A binary that does not exist is a failure result, not an exception."""
    result = await invoke(ProcessInvocationRequest("copilot-helpers-no-such-binary", ("--version",)))
    assert not result.success
    assert result.missing_executable
    assert result.exit_code is None
    assert result.error
    assert result.outcome is ProcessOutcome.NOT_FOUND


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("executable", "args"),
    [("py\x00thon", ()), (PYTHON, ("-c", "print(1)\x00"))],
)
async def test_null_byte_is_a_start_failure(executable: str, args: tuple[str, ...]) -> None:
    """Arguments the OS cannot accept are reported, not raised."""
    result = await invoke(ProcessInvocationRequest(executable, args, 2.0))
    assert not result.success
    assert result.outcome is ProcessOutcome.START_FAILED
    assert "null byte" in (result.error or "")


@pytest.mark.asyncio
@posix_only
async def test_permission_denied(tmp_path: Path) -> None:
    """A path that cannot be executed is reported as a start failure."""
    result = await invoke(ProcessInvocationRequest(str(tmp_path), ("--version",)))
    assert not result.success
    assert not result.missing_executable
    assert result.outcome is ProcessOutcome.START_FAILED


@pytest.mark.asyncio
async def test_repeated_invocations_are_equal() -> None:
    """The same deterministic program gives the same result twice."""
    request = _python("import sys; print('hello'); print('world', file=sys.stderr); sys.exit(4)")
    first = await invoke(request)
    second = await invoke(request)
    assert first == second
    assert first.exit_code == 4


@pytest.mark.asyncio
async def test_concurrent_invocations() -> None:
    """Invocations running at the same time do not mix up their output."""
    results = await asyncio.gather(*(invoke(_python(f"print({i})")) for i in range(5)))
    assert [r.stdout.strip() for r in results] == [str(i) for i in range(5)]
    assert all(r.success for r in results)


@pytest.mark.asyncio
@pytest.mark.skipif(not Path("/proc/self/fd").exists(), reason="needs /proc")
async def test_no_file_descriptors_leak() -> None:
    """Pipes and process handles are closed after every kind of outcome."""
    await invoke(_python("print('warmup')"))
    await asyncio.sleep(0.1)
    before = _open_fds()
    for _ in range(5):
        await invoke(_python("print('ok')"))
        await invoke(_python("import sys; sys.exit(1)"))
        await invoke(_python("import time; time.sleep(30)", timeout=0.2))
        await invoke(ProcessInvocationRequest("copilot-helpers-no-such-binary"))
    await asyncio.sleep(0.1)
    assert _open_fds() <= before + 2


@pytest.mark.asyncio
@posix_only
async def test_grandchild_holding_pipes_does_not_hang() -> None:
    """A background grandchild keeping stdout open is killed with the group."""
    code = (
        "import subprocess, sys\n"
        "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
        "print('parent done', flush=True)\n"
    )
    start = time.monotonic()
    result = await invoke(_python(code, timeout=1.0))
    assert time.monotonic() - start < 6.0
    assert result.exit_code == 0
    assert result.stdout.strip() == "parent done"


@pytest.mark.asyncio
async def test_run_command_tokenizes_arguments() -> None:
    """The argument string is split like a shell would, without a shell."""
    result = await run_command(PYTHON, "-c \"import sys; print(sys.argv[1:])\" 'a b' c")
    assert result.success
    assert result.stdout.strip() == "['a b', 'c']"


class TestExtractQuotedTokens:
    """Tests for extract_quoted_tokens."""

    def test_model_choices(self) -> None:
        text = '--model <model>\n      Model choices: "a", "b", "c"\n  --other'
        assert extract_quoted_tokens(text, "--model", "choices:", "\n  --") == ["a", "b", "c"]

    def test_uses_default_markers(self) -> None:
        text = '--model <model>\n      Model choices: "a", "b", "c"\n  --other "x"'
        assert extract_quoted_tokens(text, "--model") == ["a", "b", "c"]

    def test_no_choices_section(self) -> None:
        assert extract_quoted_tokens('--model <model>  "a" "b"\n  --other', "--model") == []

    def test_no_start_marker(self) -> None:
        assert extract_quoted_tokens('choices: "a", "b"', "--model") == []

    def test_empty_text(self) -> None:
        assert extract_quoted_tokens("", "--model") == []

    def test_markers_are_case_insensitive(self) -> None:
        text = '--MODEL <model> (Choices: "x", "y")\n  --next'
        assert extract_quoted_tokens(text, "--model") == ["x", "y"]

    def test_section_runs_to_end_of_text(self) -> None:
        text = '--model <model> (choices: "a",\n   "b", "c")'
        assert extract_quoted_tokens(text, "--model") == ["a", "b", "c"]

    def test_choices_before_start_marker_are_ignored(self) -> None:
        text = '--color (choices: "red")\n  --model <model> (choices: "a")\n  --next'
        assert extract_quoted_tokens(text, "--model") == ["a"]

    def test_keeps_order_and_duplicates(self) -> None:
        text = '--model (choices: "b", "a", "b")'
        assert extract_quoted_tokens(text, "--model") == ["b", "a", "b"]

    def test_empty_quotes(self) -> None:
        text = '--model (choices: "", "a")'
        assert extract_quoted_tokens(text, "--model") == ["", "a"]
