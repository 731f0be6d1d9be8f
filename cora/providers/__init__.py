"""
Language model providers for CORA.

Anthropic and OpenAI (including Azure OpenAI) behind one BaseClient
interface that turns prompts into actions.
"""

from .base import BaseClient, AssistantResponse
from .factory import create_client, get_provider_name
from .anthropic_client import AnthropicClient
from .openai_client import OpenAIClient

__all__ = [
    "BaseClient",
    "AssistantResponse",
    "create_client",
    "get_provider_name",
    "AnthropicClient",
    "OpenAIClient",
]
