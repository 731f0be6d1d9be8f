"""
OpenAI client for CORA using the Chat Completions API.

Works with the public OpenAI API, OpenAI-compatible servers (``base_url``)
and Azure OpenAI deployments (``azure_endpoint``; the model is the
deployment name).
"""

import logging
from typing import Optional

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AuthenticationError,
    AzureOpenAI,
    BadRequestError,
    OpenAI,
    RateLimitError,
)

from .base import AssistantResponse, BaseClient
from .tool_converters import convert_chat_completions_tool_calls, convert_tools_for_chat_completions
from ..config import APIConfig
from ..errors import ConfigurationError, ModelError
from ..tools import ToolHandler

logger = logging.getLogger(__name__)


def handle_openai_error(error: Exception) -> ModelError:
    """Convert OpenAI SDK errors to a ModelError with a user-friendly message."""
    if isinstance(error, AuthenticationError):
        message = "Invalid OpenAI API key. Check api_key in your config or OPENAI_API_KEY."
    elif isinstance(error, RateLimitError):
        if "insufficient_quota" in str(error).lower():
            message = "OpenAI quota exceeded. Please check your plan and billing details."
        else:
            message = "OpenAI rate limit reached. Please wait a moment and try again."
    elif isinstance(error, APITimeoutError):
        message = "The OpenAI request timed out."
    elif isinstance(error, APIConnectionError):
        message = "Cannot connect to OpenAI. Please check your internet connection."
    elif isinstance(error, BadRequestError):
        if "model" in str(error).lower():
            message = "Invalid model specified. Please check the model name in your config."
        else:
            message = f"Invalid request to OpenAI: {str(error)[:200]}"
    elif isinstance(error, APIError):
        message = f"OpenAI API error: {str(error)[:200]}"
    else:
        message = f"Unexpected error: {str(error)[:200]}"

    return ModelError(f"{type(error).__name__}: {error}", user_message=message)


class OpenAIClient(BaseClient):
    """Client for OpenAI and Azure OpenAI chat models."""

    provider_name = "openai"

    def __init__(
        self,
        config: APIConfig,
        tool_handler: Optional[ToolHandler] = None,
        shell_name: str = "bash",
    ):
        """Initialize the OpenAI client."""
        if not config.api_key:
            raise ConfigurationError(
                "No OpenAI API key",
                user_message=(
                    "No OpenAI API key found. Please set CORA_API_KEY or OPENAI_API_KEY "
                    "environment variable, or add api_key to your config file."
                )
            )

        super().__init__(
            model=config.resolved_model(),
            tool_handler=tool_handler,
            history_size=config.history_size,
            shell_name=shell_name,
        )

        if config.azure_endpoint:
            self.client = AzureOpenAI(
                api_key=config.api_key,
                azure_endpoint=config.azure_endpoint,
                api_version=config.azure_api_version,
            )
        else:
            self.client = OpenAI(api_key=config.api_key, base_url=config.base_url)

        self.max_tokens = config.max_tokens

    def _complete(self, messages: list[dict[str, str]], use_tools: bool) -> AssistantResponse:
        params = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "system", "content": self.system_prompt}] + messages,
        }
        if use_tools:
            params["tools"] = convert_tools_for_chat_completions(self.tool_handler.get_all_tools())

        try:
            response = self.client.chat.completions.create(**params)
        except APIError as e:
            logger.warning("OpenAI request failed: %s", e)
            raise handle_openai_error(e) from e

        if not response.choices:
            raise ModelError("OpenAI returned no choices", user_message="The model returned an empty response.")

        message = response.choices[0].message
        return AssistantResponse(
            text=(message.content or "").strip(),
            tool_calls=convert_chat_completions_tool_calls(message.tool_calls or []),
        )
