"""Command implementations registered on the main ``copilot-helpers`` app."""
