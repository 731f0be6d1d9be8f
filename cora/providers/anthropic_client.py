"""
Anthropic Claude client for CORA.

Handles communication with the Anthropic Messages API and converts
Claude's tool calls into actions.
"""

import logging
from typing import Optional

import anthropic
from anthropic.types import Message, TextBlock, ToolUseBlock

from .base import AssistantResponse, BaseClient
from ..config import APIConfig
from ..errors import ConfigurationError, ModelError
from ..tools import ToolHandler

logger = logging.getLogger(__name__)


def handle_anthropic_error(error: Exception) -> ModelError:
    """Convert Anthropic SDK errors to a ModelError with a user-friendly message."""
    if isinstance(error, anthropic.AuthenticationError):
        message = "Invalid Anthropic API key. Check api_key in your config or ANTHROPIC_API_KEY."
    elif isinstance(error, anthropic.RateLimitError):
        message = "Anthropic rate limit reached. Please wait a moment and try again."
    elif isinstance(error, anthropic.APITimeoutError):
        message = "The Anthropic request timed out."
    elif isinstance(error, anthropic.APIConnectionError):
        message = "Cannot connect to Anthropic. Please check your internet connection."
    elif isinstance(error, anthropic.BadRequestError):
        message = f"Invalid request to Anthropic: {str(error)[:200]}"
    elif isinstance(error, anthropic.APIError):
        message = f"Anthropic API error: {str(error)[:200]}"
    else:
        message = f"Unexpected error: {str(error)[:200]}"

    return ModelError(f"{type(error).__name__}: {error}", user_message=message)


class AnthropicClient(BaseClient):
    """Client for interacting with the Anthropic Claude API."""

    provider_name = "anthropic"

    def __init__(
        self,
        config: APIConfig,
        tool_handler: Optional[ToolHandler] = None,
        shell_name: str = "bash",
    ):
        """Initialize the Anthropic client."""
        if not config.api_key:
            raise ConfigurationError(
                "No Anthropic API key",
                user_message=(
                    "No API key found. Please set CORA_API_KEY or ANTHROPIC_API_KEY "
                    "environment variable, or add api_key to your config file."
                )
            )

        super().__init__(
            model=config.resolved_model(),
            tool_handler=tool_handler,
            history_size=config.history_size,
            shell_name=shell_name,
        )
        self.client = anthropic.Anthropic(api_key=config.api_key, base_url=config.base_url)
        self.max_tokens = config.max_tokens

    def _complete(self, messages: list[dict[str, str]], use_tools: bool) -> AssistantResponse:
        params = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": self.system_prompt,
            "messages": messages,
        }
        if use_tools:
            params["tools"] = self.tool_handler.get_all_tools()

        try:
            response = self.client.messages.create(**params)
        except anthropic.APIError as e:
            logger.warning("Anthropic request failed: %s", e)
            raise handle_anthropic_error(e) from e

        return self._process_response(response)

    def _process_response(self, response: Message) -> AssistantResponse:
        """Extract text and tool calls from Claude's response."""
        text_parts = []
        tool_calls = []

        for block in response.content:
            if isinstance(block, TextBlock):
                text_parts.append(block.text)
            elif isinstance(block, ToolUseBlock):
                tool_calls.append({
                    "id": block.id,
                    "name": block.name,
                    "input": block.input
                })

        return AssistantResponse(text="\n".join(text_parts).strip(), tool_calls=tool_calls)
