"""Config file loading and the validated settings model."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, field_validator

from copilot_helpers import constants
from copilot_helpers.core.utils import err_console

CONFIG_PATH = Path.home() / ".config" / "copilot-helpers" / "config.toml"
CONFIG_PATH_2 = Path("copilot-helpers-config.toml")


def _replace_dashed_keys_recursive(d: dict[str, Any]) -> dict[str, Any]:
    """Recursively replace dashed keys with underscores in a dictionary."""
    new_dict = {}
    for k, v in d.items():
        new_key = k.replace("-", "_")
        if isinstance(v, dict):
            new_dict[new_key] = _replace_dashed_keys_recursive(v)
        else:
            new_dict[new_key] = v
    return new_dict


def load_config(config_path_str: str | None = None) -> dict[str, Any]:
    """Load the TOML configuration file with dashed keys normalized."""
    if config_path_str:
        config_path = Path(config_path_str)
    elif CONFIG_PATH.exists():
        config_path = CONFIG_PATH
    elif CONFIG_PATH_2.exists():
        config_path = CONFIG_PATH_2
    else:
        return {}

    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                return _replace_dashed_keys_recursive(tomllib.load(f))
        except tomllib.TOMLDecodeError as e:
            err_console.print(
                f"[bold red]Error parsing config file {config_path}: {e}[/bold red]",
            )
            return {}

    # Report error only if an explicit path was given
    err_console.print(f"[bold red]Config file not found at {config_path_str}[/bold red]")
    return {}


class HelpersConfig(BaseModel):
    """Settings shared by every command (the ``[settings]`` table)."""

    copilot_command: str = constants.COPILOT_COMMAND
    timeout: float = constants.DEFAULT_TIMEOUT_SECONDS
    log_level: str = "warning"

    @property
    def cli_path(self) -> str | None:
        """Explicit CLI path for the SDK client, or None to use its default."""
        if self.copilot_command == constants.COPILOT_COMMAND:
            return None
        return self.copilot_command

    @field_validator("timeout")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if not v > 0:
            msg = "timeout must be a positive number of seconds"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, v: str) -> str:
        level = v.lower()
        if level not in {"debug", "info", "warning", "error", "critical"}:
            msg = f"Unknown log level: {v}"
            raise ValueError(msg)
        return level


def load_settings(config_path_str: str | None = None) -> HelpersConfig:
    """Return the validated ``[settings]`` table, or defaults."""
    return HelpersConfig(**load_config(config_path_str).get("settings", {}))
