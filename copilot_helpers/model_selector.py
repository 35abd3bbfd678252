"""Discover the models offered by the Copilot CLI and pick one.

The CLI has no machine-readable model listing, so the names are scraped from
the ``--model`` section of ``copilot --help``. If the help text changes shape
the scrape simply finds nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.prompt import Prompt

from copilot_helpers import constants
from copilot_helpers.core.process import ProcessInvocationRequest, extract_quoted_tokens, invoke

if TYPE_CHECKING:
    from rich.console import Console

logger = logging.getLogger(__name__)

UNKNOWN_TIER = "unknown"

# Premium request multipliers: 1x standard, 0.33x discounted (mini/haiku class)
MODEL_PRICING_TIERS: dict[str, str] = {
    # Claude models
    "claude-opus-4.5": "1x",
    "claude-sonnet-4.5": "1x",
    "claude-sonnet-4": "1x",
    "claude-haiku-4.5": "0.33x",
    # GPT-5 models
    "gpt-5.2-codex": "1x",
    "gpt-5.2": "1x",
    "gpt-5.1-codex-max": "1x",
    "gpt-5.1-codex": "1x",
    "gpt-5.1": "1x",
    "gpt-5": "1x",
    "gpt-5.1-codex-mini": "0.33x",
    "gpt-5-mini": "0.33x",
    "gpt-4.1": "0.33x",
    # Gemini models
    "gemini-3-pro-preview": "1x",
}


@dataclass(frozen=True)
class ModelInfo:
    """A model name together with its pricing tier."""

    name: str
    pricing_tier: str = UNKNOWN_TIER


def pricing_tier(model: str) -> str:
    """Return the known pricing tier of ``model`` or ``"unknown"``."""
    return MODEL_PRICING_TIERS.get(model, UNKNOWN_TIER)


def parse_models_from_help(help_text: str) -> list[str]:
    """Extract the ``--model`` choices from ``copilot --help`` output."""
    return extract_quoted_tokens(
        help_text,
        constants.MODEL_FLAG_MARKER,
        constants.CHOICES_MARKER,
        constants.NEXT_FLAG_MARKER,
    )


async def get_models_from_cli(
    *,
    command: str = constants.COPILOT_COMMAND,
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
) -> list[str] | None:
    """Fetch the model names from the CLI, or ``None`` if unavailable."""
    result = await invoke(ProcessInvocationRequest(command, ("--help",), timeout))
    if not result.success:
        logger.debug("Could not read %s --help: %s", command, result.outcome.value)
        return None
    models = parse_models_from_help(result.stdout)
    if not models:
        logger.debug("No model choices found in %s --help output", command)
        return None
    return models


async def get_models_with_pricing(
    *,
    command: str = constants.COPILOT_COMMAND,
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
) -> dict[str, str] | None:
    """Map every available model to its pricing tier."""
    models = await get_models_from_cli(command=command, timeout=timeout)
    if not models:
        return None
    return {model: pricing_tier(model) for model in models}


async def get_model_infos(
    *,
    command: str = constants.COPILOT_COMMAND,
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
) -> list[ModelInfo] | None:
    """Like ``get_models_with_pricing`` but as ordered ``ModelInfo`` records."""
    pricing = await get_models_with_pricing(command=command, timeout=timeout)
    if pricing is None:
        return None
    return [ModelInfo(name, tier) for name, tier in pricing.items()]


def choose_from(models: list[str], choice: str | None) -> str:
    """Resolve a 1-based menu choice, falling back to the first model."""
    try:
        index = int((choice or "").strip())
    except ValueError:
        index = 1
    if index < 1 or index > len(models):
        index = 1
    return models[index - 1]


async def select_model(
    console: Console,
    *,
    command: str = constants.COPILOT_COMMAND,
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
) -> str | None:
    """Let the user pick a model from a numbered list on ``console``."""
    console.print("[dim]   Fetching available models from Copilot CLI...[/dim]")
    models = await get_models_from_cli(command=command, timeout=timeout)

    if not models:
        console.print("[red]❌ Could not fetch models from Copilot CLI.[/red]")
        console.print(f"[red]   Make sure '{command}' is installed and working.[/red]")
        return None

    console.print("[yellow]🤖 Select a model:[/yellow]")
    for i, model in enumerate(models, start=1):
        console.print(f"   {i}. {model} [dim]({pricing_tier(model)})[/dim]", highlight=False)

    choice = Prompt.ask(
        escape(f"\nEnter choice (1-{len(models)}) [default: 1]"),
        console=console,
        default="",
        show_default=False,
    )
    selected = choose_from(models, choice)
    console.print(f"[green]✅ Selected: {selected}[/green]")
    return selected


async def select_model_by_index(
    index: int,
    *,
    command: str = constants.COPILOT_COMMAND,
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
) -> str | None:
    """Return the model at a 0-based ``index``, or ``None`` when out of range."""
    models = await get_models_from_cli(command=command, timeout=timeout)
    if not models or index < 0 or index >= len(models):
        return None
    return models[index]


async def get_default_model(
    *,
    command: str = constants.COPILOT_COMMAND,
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS,
) -> str | None:
    """Return the first model the CLI offers."""
    return await select_model_by_index(0, command=command, timeout=timeout)
