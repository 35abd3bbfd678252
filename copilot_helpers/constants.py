"""Default configuration settings for the copilot-helpers package."""

from __future__ import annotations

# --- Copilot CLI ---
COPILOT_COMMAND = "copilot"
DEFAULT_TIMEOUT_SECONDS = 10.0
GH_TOKEN_ENV_VAR = "GH_TOKEN"

# --- Help text scraping ---
MODEL_FLAG_MARKER = "--model"
CHOICES_MARKER = "choices:"
NEXT_FLAG_MARKER = "\n  --"

INSTALL_HINTS = (
    ("macOS/Linux", "brew install copilot-cli"),
    ("Windows", "winget install GitHub.Copilot"),
    ("npm", "npm install -g @github/copilot"),
    ("Script", "curl -fsSL https://gh.io/copilot-install | bash"),
)

LOGIN_HINTS = (
    "Run: copilot",
    "Then type: /login",
    "Or set GH_TOKEN environment variable with a token that has 'Copilot Requests' permission.",
)
