"""Terminal UI and user interaction."""

from .terminal import TerminalUI
from .prompts import ConfirmationPrompt, ConfirmationResult

__all__ = ["TerminalUI", "ConfirmationPrompt", "ConfirmationResult"]
