"""Tests for copilot-helpers."""
