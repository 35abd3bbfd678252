"""Check that the Copilot CLI is installed and the user is authenticated."""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from copilot_helpers import constants
from copilot_helpers.client import client_scope
from copilot_helpers.core.process import ProcessInvocationRequest, ProcessOutcome, invoke
from copilot_helpers.core.utils import print_hint_block

if TYPE_CHECKING:
    from copilot import CopilotClient
    from rich.console import Console

    from copilot_helpers.core.process import ProcessInvocationResult

logger = logging.getLogger(__name__)


class CopilotState(enum.Enum):
    """Overall readiness of the Copilot CLI."""

    READY = "ready"
    NOT_INSTALLED = "not_installed"
    NOT_AUTHENTICATED = "not_authenticated"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class CopilotStatus:
    """Result of the readiness check."""

    is_installed: bool
    is_token_set: bool
    is_authenticated: bool
    error_message: str | None
    state: CopilotState


def is_ready(status: CopilotStatus) -> bool:
    """Installed and either authenticated or holding a token."""
    return status.is_installed and (status.is_token_set or status.is_authenticated)


def _token_is_set() -> bool:
    return bool(os.environ.get(constants.GH_TOKEN_ENV_VAR))


async def check_copilot_installed(
    *,
    command: str = constants.COPILOT_COMMAND,
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
) -> ProcessInvocationResult:
    """Run ``copilot --version``; the result's ``success`` tells if it is usable."""
    return await invoke(ProcessInvocationRequest(command, ("--version",), timeout))


async def check_copilot_auth(
    client: CopilotClient | None = None,
    *,
    cli_path: str | None = None,
) -> tuple[bool, str | None]:
    """Ask the SDK for the auth status; a login name means authenticated."""
    try:
        async with client_scope(client, cli_path=cli_path) as active:
            auth = await active.get_auth_status()
    except Exception as e:
        logger.debug("Authentication check failed", exc_info=True)
        return False, str(e)
    return bool(auth.login), auth.statusMessage


def _not_installed_status(result: ProcessInvocationResult, is_token_set: bool) -> CopilotStatus:
    if result.outcome is ProcessOutcome.TIMED_OUT:
        return CopilotStatus(
            is_installed=False,
            is_token_set=is_token_set,
            is_authenticated=False,
            error_message="Copilot CLI did not respond in time.",
            state=CopilotState.TIMEOUT,
        )
    return CopilotStatus(
        is_installed=False,
        is_token_set=is_token_set,
        is_authenticated=False,
        error_message="Copilot CLI is not installed.",
        state=CopilotState.NOT_INSTALLED,
    )


async def check_copilot_status(
    console: Console | None = None,
    *,
    client: CopilotClient | None = None,
    command: str = constants.COPILOT_COMMAND,
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
) -> CopilotStatus:
    """Check installation, ``GH_TOKEN`` and authentication.

    With a ``console`` the progress of each check and the install or login
    hints are printed to it. Without one the check is silent.
    """
    is_token_set = _token_is_set()

    if console:
        console.print("   Checking for Copilot CLI... ", end="")
    installed = await check_copilot_installed(command=command, timeout=timeout)

    if not installed.success:
        status = _not_installed_status(installed, is_token_set)
        if console:
            label = "Timed out!" if status.state is CopilotState.TIMEOUT else "Not found!"
            console.print(f"[red]❌ {label}[/red]")
            print_hint_block(
                "Please install Copilot CLI:",
                [f"{f'{where}:':<13}{how}" for where, how in constants.INSTALL_HINTS],
                target=console,
            )
        return status

    if console:
        console.print("[green]✅ Installed[/green]")
        console.print(f"   Checking {constants.GH_TOKEN_ENV_VAR} environment variable... ", end="")
        if is_token_set:
            console.print("[green]✅ Set[/green]")
        else:
            console.print("[dim]○ Not set (will use interactive auth)[/dim]")
        console.print("   Checking authentication... ", end="")

    cli_path = command if command != constants.COPILOT_COMMAND else None
    is_authenticated, message = await check_copilot_auth(client, cli_path=cli_path)

    if console:
        if is_authenticated:
            console.print("[green]✅ Authenticated[/green]")
        else:
            console.print("[red]❌ Not authenticated[/red]")
            print_hint_block("Please authenticate with Copilot:", list(constants.LOGIN_HINTS), target=console)
        console.print()

    ready = is_token_set or is_authenticated
    return CopilotStatus(
        is_installed=True,
        is_token_set=is_token_set,
        is_authenticated=is_authenticated,
        error_message=message,
        state=CopilotState.READY if ready else CopilotState.NOT_AUTHENTICATED,
    )
