"""
Questions CORA asks the user: yes/no confirmations before a command runs
or a file is saved, and free text such as a missing file name.
"""

from enum import Enum
from typing import Optional

from prompt_toolkit import prompt
from prompt_toolkit.validation import ValidationError, Validator
from rich.console import Console
from rich.text import Text


YES_ANSWERS = ("y", "yes")
NO_ANSWERS = ("n", "no")


class ConfirmationResult(Enum):
    """Answer to a yes/no question. CANCELLED counts as no."""
    YES = "yes"
    NO = "no"
    CANCELLED = "cancelled"


class YesNoValidator(Validator):
    """Accepts y/yes/n/no in any case, or an empty answer."""

    def validate(self, document):
        answer = document.text.strip().lower()
        if answer and answer not in YES_ANSWERS + NO_ANSWERS:
            raise ValidationError(message="Answer 'y' or 'n', or press Enter for the default")


class ConfirmationPrompt:
    """Reads answers from the terminal with prompt_toolkit."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _ask(self, text: str, **kwargs) -> Optional[str]:
        # None means the user pressed Ctrl-C or closed the input
        try:
            return prompt(text, **kwargs).strip()
        except KeyboardInterrupt:
            self.console.print(Text("Cancelled", style="dim"))
            return None
        except EOFError:
            return None

    def confirm(self, message: str, default: bool = False) -> ConfirmationResult:
        """Ask a yes/no question; an empty answer picks ``default``."""
        hint = "Y/n" if default else "y/N"
        answer = self._ask(
            f"{message} [{hint}]: ",
            validator=YesNoValidator(),
            validate_while_typing=False,
        )

        if answer is None:
            return ConfirmationResult.CANCELLED
        if not answer:
            answer = "y" if default else "n"
        if answer.lower() in YES_ANSWERS:
            return ConfirmationResult.YES
        return ConfirmationResult.NO

    def get_input(self, message: str, default: Optional[str] = None) -> Optional[str]:
        """
        Read a line of text.

        Returns:
            The stripped answer, ``default`` for an empty answer, or None
        """
        label = f"{message} [{default}]: " if default else f"{message}: "
        answer = self._ask(label)
        if answer is None:
            return None
        return answer or default or None
