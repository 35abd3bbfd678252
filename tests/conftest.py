"""Shared test fixtures and configuration."""

from __future__ import annotations

import contextlib
import io
from unittest.mock import AsyncMock

import pytest
from rich.console import Console


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Set default timeout for all tests."""
    for item in items:
        with contextlib.suppress(AttributeError):
            item.add_marker(pytest.mark.timeout(15))


@pytest.fixture
def mock_console() -> Console:
    """Provide a console that writes to a StringIO for testing."""
    return Console(file=io.StringIO(), width=120, force_terminal=False, color_system=None)


@pytest.fixture
def fake_client() -> AsyncMock:
    """An SDK client double whose coroutines succeed by default."""
    client = AsyncMock()
    client.stop.return_value = []
    client.list_sessions.return_value = []
    return client


@pytest.fixture
def help_text() -> str:
    """A trimmed ``copilot --help`` output."""
    return (
        "Usage: copilot [options] [command]\n"
        "\n"
        "GitHub Copilot CLI - An AI-powered coding assistant\n"
        "\n"
        "Options:\n"
        "  --banner                      Show the startup banner\n"
        "  --model <model>               Set the AI model to use (choices:\n"
        '                                "claude-sonnet-4.5", "claude-haiku-4.5",\n'
        '                                "gpt-5", "my-new-model")\n'
        "  --no-color                    Disable all color output\n"
        "  -h, --help                    display help for command\n"
    )
