"""Vendor tool call adapters.

Each adapter turns one vendor's native response payload into canonical
``ToolCall`` objects and wraps a tool result back into the message shape that
vendor expects on the next request:

- OpenAI:    choices[0].message.tool_calls[].function.{name, arguments: str}
- Gemini:    functionCalls[].{name, args: dict}
- Ollama:    message.tool_calls[].function.{name, arguments: str}
- Anthropic: content[] blocks with type == "tool_use", {id, name, input: dict}

Payloads are loosely typed. Anything that does not match the expected shape is
skipped rather than raised.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

import structlog
from pydantic import JsonValue

from services.toolcall_service.core.config.settings import get_settings
from services.toolcall_service.core.parsing.exceptions import UnknownProviderError
from services.toolcall_service.core.parsing.json_decoder import decode_json_object
from shared.protocol.common import JsonObject, ProviderID
from shared.protocol.tool_models import ToolCall
from shared.validators.id_generators import coerce_tool_call_id

logger = structlog.get_logger(__name__)


def stringify_result(result: JsonValue) -> str:
    """Serialize a tool result as compact JSON."""
    return json.dumps(result, separators=(",", ":"), ensure_ascii=False)


def normalize_arguments(raw_args: Any) -> tuple[JsonObject, str | None]:
    """Normalize a vendor argument payload.

    Args:
        raw_args: A JSON-encoded string, an already-decoded mapping, or junk.

    Returns:
        Tuple of (arguments, raw_arguments). ``raw_arguments`` holds the original
        string only when it could not be decoded into an object.
    """
    if isinstance(raw_args, str):
        parsed = decode_json_object(raw_args)
        if parsed is not None:
            return parsed, None
        return {}, raw_args if raw_args.strip() else None
    if isinstance(raw_args, dict):
        return dict(raw_args), None
    return {}, None


def _tool_name(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class ToolCallAdapter(ABC):
    """Interface implemented by every vendor adapter."""

    provider: ProviderID

    @abstractmethod
    def has_tool_calls(self, response: Any) -> bool:
        """Check whether the payload has the vendor's tool call container."""

    @abstractmethod
    def parse_response(self, response: Any) -> list[ToolCall]:
        """Extract canonical tool calls from a vendor response payload."""

    @abstractmethod
    def format_result(self, tool_call: ToolCall, result: JsonValue) -> dict[str, Any]:
        """Wrap a tool result in the vendor's outbound message shape."""

    def _build_tool_call(self, name: str, raw_args: Any, raw_id: Any = None) -> ToolCall:
        arguments, raw_arguments = normalize_arguments(raw_args)
        return ToolCall(
            id=coerce_tool_call_id(raw_id),
            name=name,
            arguments=arguments,
            raw_arguments=raw_arguments,
            provider=self.provider,
        )

    def _skip(self, index: int, reason: str) -> None:
        logger.debug("tool_call_skipped", provider=self.provider.value, index=index, reason=reason)


class OpenAICompatibleMixin:
    """Shared parsing for payloads holding an OpenAI-shaped ``tool_calls`` array.

    Used by the OpenAI and Ollama adapters, whose messages differ only in where
    the message object sits.
    """

    def _convert_tool_calls(self, message: Any) -> list[ToolCall]:
        """Convert ``message.tool_calls`` entries into ToolCall objects.

        Args:
            message: The vendor message mapping.

        Returns:
            Tool calls with a usable name, in payload order.
        """
        if not isinstance(message, dict):
            return []
        tool_calls_raw = message.get("tool_calls")
        if not isinstance(tool_calls_raw, list):
            return []

        result = []
        for index, tc in enumerate(tool_calls_raw):
            if not isinstance(tc, dict) or not isinstance(tc.get("function"), dict):
                self._skip(index, "malformed_entry")
                continue
            func = tc["function"]
            name = _tool_name(func.get("name"))
            if not name:
                self._skip(index, "missing_name")
                continue
            result.append(self._build_tool_call(name, func.get("arguments"), tc.get("id")))
        return result


class OpenAIAdapter(OpenAICompatibleMixin, ToolCallAdapter):
    """Adapter for OpenAI chat completion responses."""

    provider = ProviderID.OPENAI

    def _first_message(self, response: Any) -> dict[str, Any] | None:
        if not isinstance(response, dict):
            return None
        choices = response.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        choice = choices[0]
        if not isinstance(choice, dict) or not isinstance(choice.get("message"), dict):
            return None
        return choice["message"]

    def has_tool_calls(self, response: Any) -> bool:
        message = self._first_message(response)
        return message is not None and isinstance(message.get("tool_calls"), list)

    def parse_response(self, response: Any) -> list[ToolCall]:
        return self._convert_tool_calls(self._first_message(response))

    def format_result(self, tool_call: ToolCall, result: JsonValue) -> dict[str, Any]:
        content = result if isinstance(result, str) else stringify_result(result)
        return {
            "role": "tool",
            "tool_call_id": tool_call.id,
            "content": content,
        }


class OllamaAdapter(OpenAICompatibleMixin, ToolCallAdapter):
    """Adapter for Ollama chat responses.

    Ollama tool messages carry no call id; the caller matches results to calls
    by position.
    """

    provider = ProviderID.OLLAMA

    def has_tool_calls(self, response: Any) -> bool:
        return (
            isinstance(response, dict)
            and isinstance(response.get("message"), dict)
            and isinstance(response["message"].get("tool_calls"), list)
        )

    def parse_response(self, response: Any) -> list[ToolCall]:
        if not isinstance(response, dict):
            return []
        return self._convert_tool_calls(response.get("message"))

    def format_result(self, tool_call: ToolCall, result: JsonValue) -> dict[str, Any]:
        return {
            "role": "tool",
            "content": stringify_result(result),
        }


class GeminiAdapter(ToolCallAdapter):
    """Adapter for Gemini ``generateContent`` responses.

    Gemini function calls have no id, so one is synthesized per call.
    """

    provider = ProviderID.GEMINI

    def has_tool_calls(self, response: Any) -> bool:
        return isinstance(response, dict) and isinstance(response.get("functionCalls"), list)

    def parse_response(self, response: Any) -> list[ToolCall]:
        if not self.has_tool_calls(response):
            return []

        result = []
        for index, call in enumerate(response["functionCalls"]):
            if not isinstance(call, dict):
                self._skip(index, "malformed_entry")
                continue
            name = _tool_name(call.get("name"))
            if not name:
                self._skip(index, "missing_name")
                continue
            result.append(self._build_tool_call(name, call.get("args")))
        return result

    def format_result(self, tool_call: ToolCall, result: JsonValue) -> dict[str, Any]:
        # Gemini takes the structured value, not a string
        return {
            "role": "user",
            "parts": [
                {
                    "functionResponse": {
                        "name": tool_call.name,
                        "response": result,
                    }
                }
            ],
        }


class AnthropicAdapter(ToolCallAdapter):
    """Adapter for Anthropic messages responses."""

    provider = ProviderID.ANTHROPIC

    def has_tool_calls(self, response: Any) -> bool:
        if not isinstance(response, dict) or not isinstance(response.get("content"), list):
            return False
        return any(
            isinstance(block, dict) and block.get("type") == "tool_use"
            for block in response["content"]
        )

    def parse_response(self, response: Any) -> list[ToolCall]:
        if not isinstance(response, dict) or not isinstance(response.get("content"), list):
            return []

        result = []
        for index, block in enumerate(response["content"]):
            # Text and other block types are not tool calls
            if not isinstance(block, dict) or block.get("type") != "tool_use":
                continue
            name = _tool_name(block.get("name"))
            if not name:
                self._skip(index, "missing_name")
                continue
            result.append(self._build_tool_call(name, block.get("input"), block.get("id")))
        return result

    def format_result(self, tool_call: ToolCall, result: JsonValue) -> dict[str, Any]:
        return {
            "role": "user",
            "content": [
                {
                    "type": "tool_result",
                    "tool_use_id": tool_call.id,
                    "content": stringify_result(result),
                }
            ],
        }


_ADAPTERS: dict[ProviderID, ToolCallAdapter] = {
    ProviderID.OPENAI: OpenAIAdapter(),
    ProviderID.GEMINI: GeminiAdapter(),
    ProviderID.OLLAMA: OllamaAdapter(),
    ProviderID.ANTHROPIC: AnthropicAdapter(),
}


def resolve_provider(provider: ProviderID | str | None) -> ProviderID:
    """Resolve a vendor tag to a ProviderID.

    Args:
        provider: A ProviderID, its string value, or None for the configured default.

    Returns:
        The matching ProviderID.

    Raises:
        UnknownProviderError: If the tag names no supported vendor.
    """
    if provider is None:
        return get_settings().default_provider
    try:
        return ProviderID(provider)
    except ValueError:
        supported = [p.value for p in ProviderID]
        logger.warning("unknown_provider", provider=str(provider), supported=supported)
        raise UnknownProviderError(provider, supported) from None


def get_tool_call_adapter(provider: ProviderID | str | None = None) -> ToolCallAdapter:
    """Look up the adapter for a vendor tag.

    Raises:
        UnknownProviderError: If the tag names no supported vendor.
    """
    return _ADAPTERS[resolve_provider(provider)]
