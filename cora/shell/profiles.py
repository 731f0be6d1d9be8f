"""
Shell dialect profiles.

A profile knows how to make a given shell announce the end of every
command on stdout: either by embedding the sentinel in the prompt, or by
appending an explicit ``echo`` of the sentinel to each submitted command.
"""

from dataclasses import dataclass
from enum import Enum
import sys
from pathlib import PurePath
from typing import Optional, Tuple

from ..errors import ConfigurationError


SENTINEL = "CoraShellPromptMarker"


class Dialect(Enum):
    """Supported shell dialects."""
    BASH = "bash"
    CMD = "cmd"
    POWERSHELL = "powershell"


@dataclass(frozen=True)
class ShellProfile:
    """Immutable per-dialect knowledge about prompt framing."""
    dialect: Dialect
    executable: str
    prompt_setup: Optional[str] = None
    command_suffix: str = ""
    arguments: Tuple[str, ...] = ()

    @property
    def needs_suffix(self) -> bool:
        """Whether each command must echo the sentinel itself."""
        return bool(self.command_suffix)

    def compose(self, command: str, prefix: str = "") -> str:
        """Build the exact line written to the shell's stdin."""
        return f"{prefix}{command}{self.command_suffix}\n"


def build_profile(dialect: Dialect, sentinel: str = SENTINEL) -> ShellProfile:
    """Create the profile for a dialect using the given sentinel."""
    if dialect is Dialect.BASH:
        # A non-interactive bash never prints PS1, so the marker is echoed explicitly.
        # It goes on its own line so trailing comments and "&" cannot swallow it.
        return ShellProfile(
            dialect=dialect,
            executable="bash",
            command_suffix=f"\necho {sentinel}",
        )

    if dialect is Dialect.CMD:
        # $_ is a line break, $P the current directory, $G '>'
        return ShellProfile(
            dialect=dialect,
            executable="cmd.exe",
            prompt_setup=f"prompt {sentinel}$_$P$G",
        )

    if dialect is Dialect.POWERSHELL:
        return ShellProfile(
            dialect=dialect,
            executable="powershell.exe",
            prompt_setup=(
                f'function prompt {{ "{sentinel}`n'
                '$($executionContext.SessionState.Path.CurrentLocation)'
                "$('>' * ($nestedPromptLevel + 1)) \" }"
            ),
            arguments=("-NoLogo",),
        )

    raise ConfigurationError(f"Unknown shell dialect: {dialect!r}")


def parse_dialect(name: str) -> Dialect:
    """
    Resolve a dialect name.

    Raises:
        ConfigurationError: If the name is not a supported dialect
    """
    key = (name or "").strip().lower()
    for dialect in Dialect:
        if dialect.value == key:
            return dialect
    raise ConfigurationError(
        f"Unknown shell dialect: {name!r}",
        user_message=f"Unknown shell dialect '{name}'. Supported: bash, cmd, powershell.",
    )


def dialect_for_process(process_name: str) -> Dialect:
    """
    Infer the dialect from a shell executable name or path.

    Raises:
        ConfigurationError: If the executable is not a recognized shell
    """
    if not process_name or not process_name.strip():
        raise ConfigurationError("Shell process name is not set")

    # PurePath keeps Windows-style names like "C:\\...\\cmd.exe" usable on POSIX
    base = PurePath(process_name.replace("\\", "/")).name.lower()
    stem = base[:-4] if base.endswith(".exe") else base

    if stem in ("bash", "sh", "zsh", "dash") or "bash" in stem:
        return Dialect.BASH
    if stem == "cmd":
        return Dialect.CMD
    if stem in ("powershell", "pwsh"):
        return Dialect.POWERSHELL

    raise ConfigurationError(
        f"Unknown shell name: {process_name}",
        user_message=f"Unknown shell '{process_name}'. Use bash, cmd.exe or powershell.exe.",
    )


def default_process_name() -> str:
    """Shell executable used when none is configured."""
    if sys.platform == "win32":
        return "cmd.exe"
    return "bash"


def get_profile(dialect, sentinel: str = SENTINEL) -> ShellProfile:
    """Get the profile for a Dialect or a dialect name."""
    if not isinstance(dialect, Dialect):
        dialect = parse_dialect(dialect)
    return build_profile(dialect, sentinel)
