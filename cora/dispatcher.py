"""
Action dispatch for CORA.

Performs the side effects of one Action returned by the language model:
confirming and running commands (with automatic error explanation),
offering generated files for saving, switching debug output, quitting and
showing messages. Errors raised while handling an action are trapped here
so a single bad action never ends the session.
"""

import logging
from typing import Optional

from .actions import Action, DebugMode, DisplayMessage, GenerateFile, Quit, RunCommand, SetDebugMode
from .audit import AuditLogger
from .errors import (
    CommandTimeoutError,
    CoraError,
    ErrorBoundary,
    ErrorCategory,
    FileOperationError,
    ModelError,
    ShellIOError,
    format_error_for_log,
    format_error_for_user,
)
from .files import FileWriter
from .providers.base import BaseClient
from .shell import CommandResult, ShellSession
from .ui.prompts import ConfirmationPrompt, ConfirmationResult
from .ui.terminal import TerminalUI

logger = logging.getLogger(__name__)


class ActionDispatcher:
    """Interprets actions produced by the model client."""

    def __init__(
        self,
        shell: ShellSession,
        client: BaseClient,
        ui: TerminalUI,
        prompts: ConfirmationPrompt,
        file_writer: Optional[FileWriter] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.shell = shell
        self.client = client
        self.ui = ui
        self.prompts = prompts
        self.file_writer = file_writer or FileWriter()
        self.audit = audit

    def dispatch(self, action: Action) -> bool:
        """
        Perform one action.

        Returns:
            False if the session should stop after this turn, True otherwise
        """
        keep_running = True

        with ErrorBoundary(
            "dispatch_action",
            show_technical_details=self.ui.debug_output,
            default_category=ErrorCategory.INTERNAL
        ) as boundary:
            keep_running = self._dispatch(action)

        if boundary.has_error:
            error_ctx = boundary.error_context
            logger.error(format_error_for_log(error_ctx))

            if error_ctx.category == ErrorCategory.USER_INPUT:
                self.ui.print_system(error_ctx.user_message)
            else:
                self.ui.print_error(
                    f"Internal error while handling {type(action).__name__}. "
                    + format_error_for_user(error_ctx)
                )

            if self.audit:
                self.audit.log_error(
                    f"Error: {error_ctx.operation}",
                    error_ctx.technical_message,
                    details={"action": repr(action)}
                )

        return keep_running

    def _dispatch(self, action: Action) -> bool:
        if isinstance(action, RunCommand):
            self._run_command(action.command)
        elif isinstance(action, GenerateFile):
            self._generate_file(action)
        elif isinstance(action, SetDebugMode):
            self._set_debug_mode(action.mode)
        elif isinstance(action, Quit):
            return False
        elif isinstance(action, DisplayMessage):
            self.ui.print_chat(action.text)
        else:
            raise TypeError(f"Unknown action: {action!r}")
        return True

    def _run_command(self, command: str) -> None:
        """Confirm, execute, and explain a failing command."""
        self.ui.print_system("I believe the command you are looking for is:")
        self.ui.print_command(command)
        self.ui.print_newline()

        answer = self.prompts.confirm("Shall I execute it for you?")
        if answer != ConfirmationResult.YES:
            if self.audit:
                self.audit.log_command_declined(command)
            return

        result = self.execute_command(command)
        if result is None:
            return

        self.client.add_history("assistant", f"Executed command: {command}")
        self.ui.print_command_output(result.output)

        if result.has_error:
            self.ui.print_command_error(result.error)
            self.ui.print_system("It looks like the command encountered a problem. Investigating...")

            try:
                explanation = self.client.explain_error(command, result.error)
            except ModelError as e:
                self.ui.print_error(f"Could not get an explanation: {e.user_message}")
                return

            self.ui.print_chat(explanation)

    def execute_command(self, command: str) -> Optional[CommandResult]:
        """
        Run a command in the shell, resetting it when it has failed.

        Returns:
            The result, or None if the command could not be completed
        """
        if not self.shell.running:
            self.ui.print_system("The shell has stopped. Starting a new one...")
            if not self.reset_shell("shell was not running"):
                return None

        self.ui.print_debug(f"command: {command}")

        try:
            result = self.shell.execute(command)
        except ShellIOError as e:
            self.ui.print_error(e.user_message)
            self.ui.print_system("Starting a new shell. Working directory and variables were reset.")
            self.reset_shell(str(e))
            return None
        except CommandTimeoutError as e:
            self.ui.print_error(e.user_message)
            if self.reset_shell(str(e)):
                self.ui.print_system(e.suggested_action)
            return None
        except KeyboardInterrupt:
            self.ui.print_system("Command interrupted. Starting a new shell...")
            self.reset_shell("command interrupted")
            return None

        self.ui.print_debug(f"stdout: {result.output}")
        self.ui.print_debug(f"stderr: {result.error}")

        if self.audit:
            self.audit.log_command(command, result.output, result.error)

        return result

    def reset_shell(self, reason: str) -> bool:
        """Replace the shell with a fresh one. Returns False if that failed."""
        try:
            self.shell.reset()
        except CoraError as e:
            logger.error("Shell reset failed: %s", e)
            self.ui.print_error(f"Could not restart the shell: {e.user_message}")
            return False

        if self.audit:
            self.audit.log_shell_reset(reason)
        return True

    def _generate_file(self, action: GenerateFile) -> None:
        """Show generated content and offer to save it."""
        self.ui.print_system("I've generated the following:")
        self.ui.print_chat(action.content)
        self.client.add_history("assistant", action.content)

        if action.file_name:
            question = f"Would you like to save the file '{action.file_name}'?"
        else:
            question = "Would you like to save the file?"

        if self.prompts.confirm(question) == ConfirmationResult.YES:
            self._save_file(action.file_name, action.content)

        if action.description:
            self.ui.print_chat(action.description)

    def _save_file(self, file_name: Optional[str], content: str) -> None:
        if not file_name:
            file_name = self.prompts.get_input("Please enter a file name")
            if not file_name:
                self.ui.print_system("No file name provided. The file will not be saved.")
                return

        # TODO: resolve relative names against the shell's working directory, not CORA's
        try:
            path = self.file_writer.write(file_name, content)
        except FileOperationError as e:
            self.ui.print_command_error(f"Could not save file {file_name}: {e.user_message}")
            if self.audit:
                self.audit.log_file_write(file_name, success=False, error=str(e))
            return

        self.ui.print_system(f"File {path} saved.")
        if self.audit:
            self.audit.log_file_write(str(path), success=True)

    def _set_debug_mode(self, mode: DebugMode) -> None:
        if mode is DebugMode.ON:
            self.ui.debug_output = True
        elif mode is DebugMode.OFF:
            self.ui.debug_output = False
        else:
            self.ui.debug_output = not self.ui.debug_output
        self.ui.print_status(self.ui.debug_output)
