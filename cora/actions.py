"""
Actions the language model can ask CORA to perform.

The set is closed: every model response is turned into exactly one of the
types below and handed to the ActionDispatcher, which consumes it once.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class DebugMode(Enum):
    """Requested change to the debug-output flag."""
    ON = "on"
    OFF = "off"
    TOGGLE = "toggle"


@dataclass(frozen=True)
class RunCommand:
    """Run a command in the persistent shell (after confirmation)."""
    command: str


@dataclass(frozen=True)
class GenerateFile:
    """Offer generated content to be saved as a file."""
    content: str
    file_name: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class SetDebugMode:
    mode: DebugMode


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class DisplayMessage:
    text: str


Action = Union[RunCommand, GenerateFile, SetDebugMode, Quit, DisplayMessage]
