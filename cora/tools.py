"""
Tool definitions for the language model.

Each tool corresponds to one Action. Tool calls in a model response are
converted into Action values by ToolHandler; nothing is executed here.
"""

import logging
from typing import Any, Callable, Dict, List

from .actions import Action, DebugMode, GenerateFile, Quit, RunCommand, SetDebugMode
from .errors import ModelError

logger = logging.getLogger(__name__)


# Tool definitions in Anthropic format (converted for OpenAI by the client)
BUILTIN_TOOLS = [
    {
        "name": "run_command",
        "description": """Execute a command in the user's shell. Use this when the user asks about a shell or CLI command.
The user is always asked to confirm before the command runs.
Ask the user for any missing parameters instead of guessing them.""",
        "input_schema": {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The exact command line to execute"
                }
            },
            "required": ["command"]
        }
    },
    {
        "name": "generate_file",
        "description": """Generate a file, template or script for the user.
Explain the file in the description but do not repeat its content in your reply.""",
        "input_schema": {
            "type": "object",
            "properties": {
                "file_name": {
                    "type": "string",
                    "description": "Suggested file name"
                },
                "content": {
                    "type": "string",
                    "description": "The full content of the file"
                },
                "description": {
                    "type": "string",
                    "description": "Plain-text explanation of what the file is and how it works (no Markdown)"
                }
            },
            "required": ["content"]
        }
    },
    {
        "name": "enable_debug",
        "description": "Enable debug output",
        "input_schema": {"type": "object", "properties": {}}
    },
    {
        "name": "disable_debug",
        "description": "Disable debug output",
        "input_schema": {"type": "object", "properties": {}}
    },
    {
        "name": "toggle_debug",
        "description": "Toggle debug output on or off",
        "input_schema": {"type": "object", "properties": {}}
    },
    {
        "name": "exit_assistant",
        "description": "Exit CORA when the user asks to quit",
        "input_schema": {"type": "object", "properties": {}}
    },
]


def _run_command(tool_input: dict[str, Any]) -> Action:
    command = tool_input.get("command")
    if not isinstance(command, str) or not command.strip():
        raise ModelError(
            "run_command called without a command",
            user_message="The model asked to run a command but did not say which one.",
        )
    return RunCommand(command=command.strip())


def _generate_file(tool_input: dict[str, Any]) -> Action:
    content = tool_input.get("content")
    if not isinstance(content, str):
        raise ModelError(
            "generate_file called without content",
            user_message="The model tried to generate a file but returned no content.",
        )
    return GenerateFile(
        content=content,
        file_name=tool_input.get("file_name") or None,
        description=tool_input.get("description") or None,
    )


class ToolHandler:
    """Maps tool names to functions that build Action values."""

    def __init__(self):
        self._handlers: Dict[str, Callable[[dict], Action]] = {}
        self._tool_definitions: List[Dict[str, Any]] = []

        for tool in BUILTIN_TOOLS:
            self._tool_definitions.append(tool)

        self.register("run_command", _run_command)
        self.register("generate_file", _generate_file)
        self.register("enable_debug", lambda _: SetDebugMode(DebugMode.ON))
        self.register("disable_debug", lambda _: SetDebugMode(DebugMode.OFF))
        self.register("toggle_debug", lambda _: SetDebugMode(DebugMode.TOGGLE))
        self.register("exit_assistant", lambda _: Quit())

    def register(self, tool_name: str, handler: Callable[[dict], Action]) -> None:
        """Register a handler function for a tool."""
        self._handlers[tool_name] = handler

    def get_all_tools(self) -> List[Dict[str, Any]]:
        """Get all tool definitions."""
        return list(self._tool_definitions)

    def to_action(self, tool_name: str, tool_input: Any) -> Action:
        """
        Convert one tool call into an Action.

        Raises:
            ModelError: If the tool is unknown or its input is malformed
        """
        handler = self._handlers.get(tool_name)
        if handler is None:
            raise ModelError(
                f"Unknown tool: {tool_name}",
                user_message=f"The model asked for an unknown action '{tool_name}'.",
            )

        if not isinstance(tool_input, dict):
            tool_input = {}

        action = handler(tool_input)
        logger.debug("Tool %s -> %r", tool_name, action)
        return action
