"""
User-driven retry around a language model round-trip.
"""

import logging
from typing import Callable, Optional, TypeVar

from .errors import ErrorBoundary, ErrorCategory, format_error_for_log, format_error_for_user
from .ui.prompts import ConfirmationPrompt, ConfirmationResult
from .ui.terminal import TerminalUI

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecoveryLoop:
    """
    Repeats a request until it succeeds or the user gives up.

    There is no retry limit; every failure is shown and the user decides.

    Usage:
        action = recovery.run(lambda: client.respond(prompt))
        if action is None:
            # user chose to stop
    """

    def __init__(
        self,
        ui: TerminalUI,
        prompts: ConfirmationPrompt,
        question: str = "Would you like to try again?"
    ):
        self.ui = ui
        self.prompts = prompts
        self.question = question
        self.attempts = 0

    def run(self, request: Callable[[], T], operation: str = "model_request") -> Optional[T]:
        """
        Call request until it returns.

        Returns:
            The request's result, or None if the user declined to retry
        """
        self.attempts = 0

        while True:
            self.attempts += 1

            with ErrorBoundary(
                operation,
                show_technical_details=self.ui.debug_output,
                default_category=ErrorCategory.MODEL
            ) as boundary:
                result = request()

            if not boundary.has_error:
                return result

            error_ctx = boundary.error_context
            logger.warning("Attempt %d failed\n%s", self.attempts, format_error_for_log(error_ctx))
            self.ui.print_error(format_error_for_user(error_ctx))

            if self.prompts.confirm(self.question) != ConfirmationResult.YES:
                return None
