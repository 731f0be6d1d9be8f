"""
Sentinel-framed command execution.

A shell running behind plain pipes gives no message boundaries. Every
command is therefore followed by a sentinel on stdout (printed by the
prompt, or by an appended ``echo``); stdout is read until that sentinel
appears, and stderr is drained until it stays quiet for a short interval.
"""

import logging
import queue
import time
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from ..errors import CommandTimeoutError, ShellIOError
from .profiles import ShellProfile

if TYPE_CHECKING:
    from .session import PipeReader, ShellProcess

logger = logging.getLogger(__name__)


# Seconds of stderr silence that end a command's error output
DEFAULT_STDERR_IDLE_TIMEOUT = 0.5


@dataclass(frozen=True)
class CommandResult:
    """Output of one command run in the persistent shell."""
    output: str
    error: str

    @property
    def has_error(self) -> bool:
        """Whether the command wrote anything to stderr."""
        return bool(self.error)


def normalize_newlines(text: str) -> str:
    """Convert CRLF line endings to LF."""
    return text.replace("\r\n", "\n")


def strip_sentinel(text: str, sentinel: str) -> str:
    """
    Remove the sentinel line and the trailing prompt fragment from stdout.

    ``text`` holds everything read for one command, up to and possibly a
    little past ``sentinel + "\\n"``. The sentinel occurrence is removed and
    the last remaining line (the bare next prompt, or the empty line left
    by the command's final newline) is dropped.
    """
    marker = f"{sentinel}\n"
    index = text.find(marker)
    if index < 0:
        return text

    before = text[:index]
    after = text[index + len(marker):]

    # Marker printed mid-line: the command's last line had no newline and
    # anything after the marker is the next prompt
    if before and not before.endswith("\n"):
        return before

    head, separator, _ = (before + after).rpartition("\n")
    return head if separator else ""


class CommandExecutor:
    """Runs one command line through a ShellProcess and frames its output."""

    def __init__(
        self,
        profile: ShellProfile,
        sentinel: str,
        stderr_idle_timeout: float = DEFAULT_STDERR_IDLE_TIMEOUT,
        command_timeout: Optional[float] = None,
        command_prefix: str = "",
    ):
        """
        Initialize the executor.

        Args:
            profile: Dialect profile supplying the command suffix
            sentinel: Token that marks the end of a command's stdout
            stderr_idle_timeout: Seconds of stderr silence ending the drain
            command_timeout: Seconds to wait for the sentinel; None waits forever
            command_prefix: Text written before every command
        """
        self.profile = profile
        self.sentinel = sentinel
        self.stderr_idle_timeout = stderr_idle_timeout
        self.command_timeout = command_timeout
        self.command_prefix = command_prefix

    def run(self, process: "ShellProcess", command: str) -> CommandResult:
        """
        Submit a command and collect its output.

        The caller is responsible for the in-flight guard.

        Raises:
            ShellIOError: If the shell's pipes are broken or it exits
            CommandTimeoutError: If command_timeout elapses before the sentinel
        """
        line = self.profile.compose(command, prefix=self.command_prefix)
        logger.debug("Submitting to shell: %r", line)

        process.write(line)

        output = self._read_until_sentinel(process.stdout_reader)
        error = self._drain(process.stderr_reader)

        return CommandResult(output=output, error=error)

    def _read_until_sentinel(self, reader: "PipeReader") -> str:
        """Read stdout until the sentinel line has been seen."""
        marker = f"{self.sentinel}\n"
        deadline = None
        if self.command_timeout is not None:
            deadline = time.monotonic() + self.command_timeout

        # Normalized text so far; a trailing "\r" is held back until the next
        # chunk shows whether it starts a CRLF pair
        parts = []
        tail = ""
        pending_cr = ""
        while True:
            timeout = None
            if deadline is not None:
                timeout = max(0.0, deadline - time.monotonic())

            try:
                chunk = reader.get(timeout=timeout)
            except queue.Empty:
                raise CommandTimeoutError(
                    f"No prompt marker after {self.command_timeout} seconds",
                    user_message=(
                        f"The command did not finish within {self.command_timeout:g} seconds."
                    ),
                ) from None

            if chunk is None:
                raise ShellIOError(
                    "Shell closed stdout before the prompt marker",
                    user_message="The shell exited while running the command.",
                )

            text = pending_cr + chunk
            pending_cr = ""
            if text.endswith("\r"):
                text, pending_cr = text[:-1], "\r"
            text = normalize_newlines(text)
            parts.append(text)

            # Only the new text plus a marker-length overlap can hold a new match
            window = tail + text
            if marker in window:
                return strip_sentinel("".join(parts), self.sentinel)
            tail = window[-(len(marker) - 1):] if len(marker) > 1 else ""

    def _drain(self, reader: "PipeReader") -> str:
        """Collect stderr until it is exhausted or idle for the timeout."""
        parts = []
        while True:
            try:
                chunk = reader.get(timeout=self.stderr_idle_timeout)
            except queue.Empty:
                break
            if chunk is None:
                break
            parts.append(chunk)
        return normalize_newlines("".join(parts))
