"""
Provider factory for creating LLM clients.
"""

import logging
from typing import Optional

from .base import BaseClient
from .anthropic_client import AnthropicClient
from .openai_client import OpenAIClient
from ..config import CoraConfig, get_config
from ..errors import ConfigurationError
from ..tools import ToolHandler

logger = logging.getLogger(__name__)


def create_client(
    config: Optional[CoraConfig] = None,
    tool_handler: Optional[ToolHandler] = None,
    provider: Optional[str] = None,
    shell_name: Optional[str] = None,
) -> BaseClient:
    """Create the appropriate LLM client based on configuration.

    Args:
        config: Configuration to use (defaults to the global config)
        tool_handler: Optional ToolHandler to pass to the client
        provider: Optional provider override (defaults to config value)
        shell_name: Shell named in the system prompt (defaults to shell.process_name)

    Raises:
        ConfigurationError: If the provider is unknown or misconfigured
    """
    config = config or get_config()
    provider = (provider or config.api.provider).lower()
    shell_name = shell_name or config.shell.process_name

    logger.info("Creating LLM client for provider: %s", provider)

    if provider == "anthropic":
        api = config.api.model_copy(update={"provider": "anthropic"})
        return AnthropicClient(api, tool_handler, shell_name=shell_name)

    elif provider in ("openai", "azure"):
        api = config.api.model_copy(update={"provider": "openai"})
        return OpenAIClient(api, tool_handler, shell_name=shell_name)

    else:
        raise ConfigurationError(
            f"Unknown provider: {provider}",
            user_message=f"Unknown provider '{provider}'. Supported providers: anthropic, openai."
        )


def get_provider_name(client: BaseClient) -> str:
    """Get the provider name for a client instance."""
    return client.provider_name
