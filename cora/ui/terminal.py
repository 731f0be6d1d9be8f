"""
Terminal UI for CORA.

Renders the categories of text CORA produces (system messages, model
replies, commands, command output and errors, debug traces) with the
'rich' library.
"""

from typing import Iterable, Optional, Tuple

from rich.box import ROUNDED
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text


# Category styles
SYSTEM_STYLE = "white"
CHAT_STYLE = "bright_black"
COMMAND_STYLE = "green"
OUTPUT_STYLE = "yellow"
COMMAND_ERROR_STYLE = "red"
DEBUG_STYLE = "dim"


class TerminalUI:
    """Rich terminal interface for CORA."""

    def __init__(
        self,
        use_colors: bool = True,
        debug: bool = False,
        console: Optional[Console] = None,
    ):
        """Initialize the terminal UI."""
        self.console = console or Console(
            color_system="auto" if use_colors else None,
            highlight=False,
        )
        self.debug_output = debug

    def _print(self, text: str, style: str) -> None:
        # Command output and model text may contain [brackets]; never parse markup
        self.console.print(Text(text, style=style))

    def print_system(self, message: str) -> None:
        """Print a message from CORA itself."""
        self._print(message, SYSTEM_STYLE)

    def print_chat(self, text: str) -> None:
        """Print a reply from the language model."""
        self._print(text, CHAT_STYLE)

    def print_command(self, command: str) -> None:
        """Print a proposed command."""
        self._print(command, COMMAND_STYLE)

    def print_command_output(self, output: str) -> None:
        """Print what a command wrote to stdout."""
        if not output.strip():
            return
        self._print(output, OUTPUT_STYLE)

    def print_command_error(self, error: str) -> None:
        """Print what a command wrote to stderr."""
        self._print(error.rstrip("\n"), COMMAND_ERROR_STYLE)

    def print_debug(self, message: str) -> None:
        """Print a diagnostic trace when debug output is on."""
        if self.debug_output:
            self._print(f"[debug] {message}", DEBUG_STYLE)

    def print_error(self, message: str, technical_details: Optional[str] = None) -> None:
        """Print an error that is not a command's own stderr."""
        line = Text("✗ ", style="bold red")
        line.append(message, style="bold red")
        self.console.print(line)
        if technical_details and self.debug_output:
            self._print(technical_details, DEBUG_STYLE)

    def print_newline(self) -> None:
        self.console.print()

    def print_welcome(self, version: str, shell_name: str, model: str) -> None:
        """Print the welcome banner."""
        body = Text()
        body.append("CORA", style="bold cyan")
        body.append(f"  v{version}\n", style="dim")
        body.append("Command-line Operations & Recovery Assistant\n\n", style="dim")
        body.append(" Shell  ", style="cyan")
        body.append(f"{shell_name}\n", style="white")
        body.append(" Model  ", style="cyan")
        body.append(f"{model}\n\n", style="white")
        body.append("Describe what you want to do, or type ", style="dim")
        body.append("/help", style="cyan")
        body.append(" for commands.", style="dim")

        self.console.print(Panel(body, border_style="blue", box=ROUNDED, padding=(0, 1)))
        self.console.print()

    def print_help(self, commands: Iterable[Tuple[str, str]]) -> None:
        """Print the list of slash commands."""
        table = Table(title="Commands", box=ROUNDED, show_header=False, border_style="dim")
        table.add_column("Command", style="cyan")
        table.add_column("Description")
        for name, description in commands:
            table.add_row(f"/{name}", description)
        self.console.print(table)

    def print_status(self, debug: bool) -> None:
        state = "on" if debug else "off"
        self.print_system(f"Debug output is {state}.")
