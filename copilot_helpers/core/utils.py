"""Shared console objects and small output helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from rich.console import Console
from rich.text import Text

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)


def print_with_style(message: str, style: str = "bold green", *, target: Console | None = None) -> None:
    """Print a message in a single style, without markup interpretation."""
    (target or console).print(Text(message, style=style))


def print_error_message(message: str, suggestion: str | None = None, *, target: Console | None = None) -> None:
    """Print an error message, optionally followed by a dimmed suggestion."""
    out = target or err_console
    out.print(Text(f"❌ {message}", style="bold red"))
    if suggestion:
        out.print(Text(f"   {suggestion}", style="dim"))


def print_hint_block(title: str, lines: list[str], *, target: Console | None = None) -> None:
    """Print an indented block of hints under a title."""
    out = target or console
    out.print()
    out.print(f"   {title}", markup=False)
    for line in lines:
        out.print(f"   {line}", markup=False, highlight=False)


async def run_with_status(message: str, awaitable: Awaitable[T], *, target: Console | None = None) -> T:
    """Await ``awaitable`` behind a spinner, then leave a ✓ or ✗ line behind.

    The spinner is stopped before this returns or raises.
    """
    out = target or console
    try:
        with out.status(f"{message}..."):
            result = await awaitable
    except Exception:
        out.print(f"[red]✗[/red] {message}", highlight=False)
        raise
    out.print(f"[green]✓[/green] {message}", highlight=False)
    return result
