"""Persistent shell session and sentinel-framed command execution."""

from .profiles import SENTINEL, Dialect, ShellProfile, get_profile, dialect_for_process
from .executor import CommandExecutor, CommandResult, strip_sentinel
from .session import ShellSession, ShellProcess

__all__ = [
    "SENTINEL",
    "Dialect",
    "ShellProfile",
    "get_profile",
    "dialect_for_process",
    "CommandExecutor",
    "CommandResult",
    "strip_sentinel",
    "ShellSession",
    "ShellProcess",
]
