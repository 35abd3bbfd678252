"""Tests for copilot_helpers.core."""
