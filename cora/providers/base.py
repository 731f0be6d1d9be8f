"""
Base client interface for LLM providers.

A client turns one prompt into one Action: the first tool call in the
model's reply becomes the corresponding Action, and a plain text reply
becomes a DisplayMessage. Conversation history is plain role-tagged text,
bounded to the most recent ``history_size`` messages.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from ..actions import Action, DisplayMessage
from ..errors import ModelError
from ..tools import ToolHandler

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are CORA, a command-line assistant who guides users with the {shell} shell and executes commands on their behalf.
You provide commands, scripts, configuration files and explanations.
Call the run_command tool when the user asks about a shell or CLI command. Ask the user for missing parameters.
Call the generate_file tool when you need to generate code, a script or a file. Explain the file but do not repeat it to the user.
Keep answers short and use plain text."""

EXPLAIN_ERROR_PROMPT = "Explain why the command `{command}` encountered the following error:\n{error}\n"


@dataclass
class AssistantResponse:
    """Unified response format for all providers."""
    text: str
    tool_calls: list[dict[str, Any]] = field(default_factory=list)  # [{id, name, input}, ...]


class BaseClient(ABC):
    """Abstract base class for LLM provider clients.

    Subclasses implement ``_complete`` for their API; history handling and
    the conversion of replies into actions are shared.
    """

    provider_name = "unknown"

    def __init__(
        self,
        model: str,
        tool_handler: Optional[ToolHandler] = None,
        history_size: int = 10,
        shell_name: str = "bash",
    ):
        self.model = model
        self.tool_handler = tool_handler or ToolHandler()
        self.history_size = history_size
        self.system_prompt = SYSTEM_PROMPT.format(shell=shell_name)
        self.conversation_history: list[dict[str, str]] = []

    @abstractmethod
    def _complete(self, messages: list[dict[str, str]], use_tools: bool) -> AssistantResponse:
        """Send the messages to the provider.

        Args:
            messages: Role-tagged messages, oldest first, ending with the user prompt
            use_tools: Whether tool definitions are offered to the model

        Raises:
            ModelError: If the request fails
        """
        ...

    def get_model(self) -> str:
        """Get the current model ID."""
        return self.model

    def add_history(self, role: str, text: str) -> None:
        """Append a message to the conversation history."""
        if not text:
            return
        self.conversation_history.append({"role": role, "content": text})
        self._trim_history()

    def clear_history(self) -> None:
        """Clear the conversation history."""
        self.conversation_history = []

    def _trim_history(self) -> None:
        if self.history_size <= 0:
            self.conversation_history = []
        elif len(self.conversation_history) > self.history_size:
            self.conversation_history = self.conversation_history[-self.history_size:]

    def _build_messages(self, prompt: str) -> list[dict[str, str]]:
        """Build the request messages: bounded history plus the new prompt.

        Consecutive messages from the same role are merged and the list
        always starts with a user message.
        """
        messages: list[dict[str, str]] = []
        for entry in self.conversation_history + [{"role": "user", "content": prompt}]:
            if not messages and entry["role"] != "user":
                continue
            if messages and messages[-1]["role"] == entry["role"]:
                messages[-1] = {
                    "role": entry["role"],
                    "content": f"{messages[-1]['content']}\n\n{entry['content']}",
                }
            else:
                messages.append(dict(entry))
        return messages

    def respond(self, prompt: str, use_tools: bool = True) -> Action:
        """
        Send a prompt and convert the reply into an Action.

        Raises:
            ModelError: If the round-trip fails or the reply is malformed
        """
        messages = self._build_messages(prompt)
        logger.debug("Sending %d messages to %s (tools=%s)", len(messages), self.model, use_tools)

        response = self._complete(messages, use_tools)

        self.add_history("user", prompt)
        if response.text:
            self.add_history("assistant", response.text)

        if use_tools and response.tool_calls:
            if len(response.tool_calls) > 1:
                logger.warning(
                    "Model returned %d tool calls; only %s is used",
                    len(response.tool_calls), response.tool_calls[0]["name"]
                )
            call = response.tool_calls[0]
            return self.tool_handler.to_action(call["name"], call.get("input"))

        if not response.text:
            raise ModelError(
                "Model returned neither text nor a tool call",
                user_message="The model returned an empty response.",
            )
        return DisplayMessage(response.text)

    def explain_error(self, command: str, error: str) -> str:
        """Ask the model why a command failed. Tools are not offered."""
        action = self.respond(
            EXPLAIN_ERROR_PROMPT.format(command=command, error=error),
            use_tools=False,
        )
        if isinstance(action, DisplayMessage):
            return action.text
        raise ModelError(f"Expected an explanation, got {action!r}")
