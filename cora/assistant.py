"""
The interactive CORA session.

Reads requests from the user, sends them to the language model through the
RecoveryLoop and hands the resulting actions to the ActionDispatcher.
Lines starting with '/' are built-in commands handled locally.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory

from . import __version__
from .audit import AuditLogger
from .config import CoraConfig, ensure_config_dirs, get_config, get_config_dir, validate_config
from .dispatcher import ActionDispatcher
from .errors import CoraError
from .providers import BaseClient, create_client
from .recovery import RecoveryLoop
from .shell import ShellSession
from .ui import ConfirmationPrompt, TerminalUI

logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(config: CoraConfig) -> None:
    """Route the ``cora`` loggers according to the logging config.

    Debug level logs to stderr; otherwise records go to ``cora.log`` next
    to the audit log so the terminal stays clean.
    """
    level = logging.DEBUG if config.logging.level == "debug" else logging.INFO
    root = logging.getLogger("cora")
    root.setLevel(level)
    root.propagate = False

    for handler in list(root.handlers):
        root.removeHandler(handler)

    if level == logging.DEBUG:
        handler: logging.Handler = logging.StreamHandler()
    elif config.logging.enabled:
        log_file = Path(config.logging.path).expanduser().parent / "cora.log"
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError:
            handler = logging.NullHandler()
    else:
        handler = logging.NullHandler()

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


@dataclass
class SlashCommand:
    """A built-in command typed as /name."""
    name: str
    description: str
    handler: Callable[[], bool]


class Assistant:
    """The main CORA interactive session."""

    def __init__(
        self,
        config: Optional[CoraConfig] = None,
        ui: Optional[TerminalUI] = None,
        prompts: Optional[ConfirmationPrompt] = None,
        audit: Optional[AuditLogger] = None,
    ):
        """Initialize the assistant. Nothing is started until start()."""
        self.config = config or get_config()

        self.ui = ui or TerminalUI(
            use_colors=self.config.ui.use_colors,
            debug=self.config.ui.debug
        )
        self.prompts = prompts or ConfirmationPrompt(self.ui.console)
        self.audit = audit or AuditLogger.from_config(self.config)
        self.recovery = RecoveryLoop(self.ui, self.prompts)

        self.client: Optional[BaseClient] = None
        self.shell: Optional[ShellSession] = None
        self.dispatcher: Optional[ActionDispatcher] = None
        self.running = False

        self.commands = {
            command.name: command
            for command in (
                SlashCommand("help", "Show the available commands", self._command_help),
                SlashCommand("debug", "Toggle debug output", self._command_debug),
                SlashCommand("reset", "Restart the shell (working directory and variables are lost)",
                             self._command_reset),
                SlashCommand("exit", "Exit CORA", self._command_exit),
            )
        }

    def start(self, client: Optional[BaseClient] = None, shell: Optional[ShellSession] = None) -> None:
        """
        Create the model client and the shell session.

        Raises:
            ConfigurationError: If the configuration is incomplete
            ProcessStartError: If the shell cannot be started
        """
        if client is None:
            validate_config(self.config)
            client = create_client(self.config)
        self.client = client

        if shell is None:
            shell_config = self.config.shell
            shell = ShellSession.create(
                dialect=shell_config.dialect,
                process_name=shell_config.process_name,
                stderr_idle_timeout=shell_config.stderr_idle_timeout,
                command_timeout=shell_config.command_timeout,
            )
        self.shell = shell

        self.dispatcher = ActionDispatcher(
            shell=self.shell,
            client=self.client,
            ui=self.ui,
            prompts=self.prompts,
            audit=self.audit,
        )
        logger.info("Session started with %s and %s", self.shell.process_name, self.client.get_model())

    def shutdown(self) -> None:
        """Stop the shell. Safe to call more than once."""
        if self.shell is not None:
            self.shell.terminate()

    def handle_input(self, user_input: str) -> bool:
        """
        Process one line of user input.

        Returns:
            False if the session should stop
        """
        text = user_input.strip()

        if not text:
            self.ui.print_system("Use /help to see a list of commands.")
            return True

        if text.startswith("/"):
            return self._handle_slash_command(text[1:].strip())

        self.audit.log_user_query(text)
        self.ui.print_system("Let me think about that for a moment...")
        self.ui.print_debug(f"executing prompt: {text}")

        action = self.recovery.run(lambda: self.client.respond(text))
        if action is None:
            return False

        self.ui.print_debug(f"response: {action!r}")
        return self.dispatcher.dispatch(action)

    def _handle_slash_command(self, name: str) -> bool:
        command = self.commands.get(name.lower())
        if command is None:
            self.ui.print_system(f"Unknown command: {name}")
            self.ui.print_system("Use /help to see a list of commands.")
            return True
        return command.handler()

    def _command_help(self) -> bool:
        self.ui.print_help((c.name, c.description) for c in self.commands.values())
        return True

    def _command_debug(self) -> bool:
        self.ui.debug_output = not self.ui.debug_output
        self.ui.print_status(self.ui.debug_output)
        return True

    def _command_reset(self) -> bool:
        if self.dispatcher.reset_shell("requested by user"):
            self.ui.print_system("The shell was restarted.")
        return True

    def _command_exit(self) -> bool:
        return False

    def run(self) -> int:
        """
        Run the interactive loop.

        Returns:
            Exit code (0 for success)
        """
        try:
            self.start()
        except CoraError as e:
            self.ui.print_error(e.user_message)
            if e.suggested_action:
                self.ui.print_system(e.suggested_action)
            return 1

        ensure_config_dirs()
        history = FileHistory(str(get_config_dir() / "history"))
        prompt_session = PromptSession(history=history)

        self.ui.print_welcome(__version__, self.shell.process_name, self.client.get_model())
        self.running = True

        try:
            while self.running:
                self.ui.print_system("Please tell me what you would like to do?")
                try:
                    user_input = prompt_session.prompt("> ")
                except KeyboardInterrupt:
                    self.ui.print_system("Use /exit to quit, or Ctrl+D")
                    continue
                except EOFError:
                    break

                self.running = self.handle_input(user_input)
        finally:
            self.shutdown()

        self.ui.print_system("Goodbye!")
        return 0

    def run_once(self, prompt: str) -> int:
        """Handle a single request and exit."""
        try:
            self.start()
        except CoraError as e:
            self.ui.print_error(e.user_message)
            return 1

        try:
            self.handle_input(prompt)
        finally:
            self.shutdown()
        return 0
