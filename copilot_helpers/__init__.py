"""Helpers for checking, configuring and chatting with the GitHub Copilot CLI."""

from __future__ import annotations

__version__ = "0.1.0"
