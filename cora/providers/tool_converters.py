"""
Tool format converters for the OpenAI Chat Completions API.

Tools are defined once in Anthropic format (``input_schema``); OpenAI
expects ``{"type": "function", "function": {..., "parameters": ...}}``.
"""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def convert_tools_for_chat_completions(anthropic_tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert Anthropic tool definitions to Chat Completions function tools."""
    return [{
        "type": "function",
        "function": {
            "name": tool["name"],
            "description": tool["description"],
            "parameters": tool["input_schema"]
        }
    } for tool in anthropic_tools]


def convert_chat_completions_tool_calls(tool_calls: list) -> list[dict[str, Any]]:
    """Convert Chat Completions tool_calls to the unified [{id, name, input}] format.

    Accepts SDK objects or plain dicts. Arguments that are not valid JSON
    become an empty input.
    """
    result = []
    for call in tool_calls:
        if isinstance(call, dict):
            call_id = call.get("id")
            function = call.get("function", {})
            name = function.get("name")
            arguments = function.get("arguments", "{}")
        else:
            call_id = call.id
            name = call.function.name
            arguments = call.function.arguments

        if isinstance(arguments, str):
            try:
                input_data = json.loads(arguments or "{}")
            except json.JSONDecodeError:
                logger.warning("Tool call %s has malformed arguments: %r", name, arguments)
                input_data = {}
        else:
            input_data = arguments or {}

        result.append({"id": call_id, "name": name, "input": input_data})

    return result
