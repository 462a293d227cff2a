"""Streaming tool call adapters.

Native streaming APIs deliver a tool call in pieces: the name in one event and
the argument JSON spread over many deltas. These adapters fold events into a
caller-owned ``StreamingAdapterState`` and build canonical tool calls from it.

Usage:
    adapter = get_streaming_tool_call_adapter("openai")
    state = StreamingAdapterState()
    for chunk in chunks:
        adapter.parse_streaming_chunk(chunk, state)
    tool_calls = adapter.get_tool_calls(state)

Only OpenAI and Anthropic stream tool call deltas. Other vendors return their
calls whole and go through ``parse_response``.
"""

import json
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any

import structlog

from services.toolcall_service.core.config.constants import (
    ANTHROPIC_TOOL_STOP_REASONS,
    OPENAI_TOOL_FINISH_REASONS,
    SSE_DONE_SENTINEL,
)
from services.toolcall_service.core.parsing.adapters import (
    AnthropicAdapter,
    OpenAIAdapter,
    ToolCallAdapter,
    resolve_provider,
)
from services.toolcall_service.core.parsing.json_decoder import decode_json_object, decode_json_value
from shared.protocol.common import ProviderID
from shared.protocol.tool_models import ToolCall
from shared.validators.id_generators import coerce_tool_call_id

logger = structlog.get_logger(__name__)


@dataclass
class StreamingToolCallState:
    """Partially received tool call."""

    id: str = ""
    name: str = ""
    raw_arguments: str = ""


@dataclass
class StreamingAdapterState:
    """Accumulated state of one streamed response."""

    tool_calls: dict[int, StreamingToolCallState] = field(default_factory=dict)
    accumulated_text: str = ""
    finish_reason: str | None = None
    is_complete: bool = False

    def call_at(self, index: int) -> StreamingToolCallState:
        """Get the call slot for an index, creating it on first use."""
        if index not in self.tool_calls:
            self.tool_calls[index] = StreamingToolCallState()
        return self.tool_calls[index]


def parse_sse_data(chunk: str) -> list[dict[str, Any]]:
    """Decode the ``data:`` lines of a server-sent events chunk.

    Blank payloads, the ``[DONE]`` sentinel and undecodable lines are skipped.
    """
    events: list[dict[str, Any]] = []
    for line in chunk.split("\n"):
        trimmed = line.strip()
        if not trimmed.startswith("data:"):
            continue
        data = trimmed[len("data:") :].lstrip()
        if not data or data == SSE_DONE_SENTINEL:
            continue
        parsed = decode_json_value(data)
        if isinstance(parsed, dict):
            events.append(parsed)
        else:
            logger.debug("sse_event_skipped", length=len(data))
    return events


def _events_from_chunk(chunk: Any) -> list[dict[str, Any]]:
    if isinstance(chunk, str):
        return parse_sse_data(chunk)
    if isinstance(chunk, dict):
        return [chunk]
    return []


def _index_of(value: Any) -> int:
    # bool is an int subclass but never a valid index
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


class StreamingToolCallAdapter(ToolCallAdapter):
    """Adapter that can also fold streamed deltas into tool calls."""

    def parse_streaming_chunk(self, chunk: Any, state: StreamingAdapterState) -> StreamingAdapterState:
        """Fold one chunk (an SSE string or a decoded event) into ``state``.

        Returns:
            The same state object, for chaining.
        """
        for event in _events_from_chunk(chunk):
            self._apply_event(event, state)
        return state

    @abstractmethod
    def _apply_event(self, event: dict[str, Any], state: StreamingAdapterState) -> None:
        """Fold one decoded vendor event into ``state``."""

    def get_tool_calls(self, state: StreamingAdapterState) -> list[ToolCall]:
        """Build tool calls from the accumulated state, ordered by stream index.

        Calls whose name has not arrived yet are left out.
        """
        result = []
        for index in sorted(state.tool_calls):
            call_state = state.tool_calls[index]
            name = call_state.name.strip()
            if not name:
                continue
            has_raw = bool(call_state.raw_arguments.strip())
            arguments = decode_json_object(call_state.raw_arguments) if has_raw else None
            result.append(
                ToolCall(
                    id=coerce_tool_call_id(call_state.id),
                    name=name,
                    arguments=arguments or {},
                    raw_arguments=call_state.raw_arguments if has_raw else None,
                    provider=self.provider,
                )
            )
        return result


class OpenAIStreamingAdapter(StreamingToolCallAdapter, OpenAIAdapter):
    """Streaming adapter for OpenAI chat completion chunks."""

    def _apply_event(self, event: dict[str, Any], state: StreamingAdapterState) -> None:
        choices = event.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return
        choice = choices[0]

        delta = choice.get("delta")
        if isinstance(delta, dict):
            if isinstance(delta.get("content"), str):
                state.accumulated_text += delta["content"]
            tool_calls = delta.get("tool_calls")
            if isinstance(tool_calls, list):
                for call in tool_calls:
                    if not isinstance(call, dict):
                        continue
                    existing = state.call_at(_index_of(call.get("index")))
                    if isinstance(call.get("id"), str):
                        existing.id = call["id"]
                    func = call.get("function")
                    if isinstance(func, dict):
                        if isinstance(func.get("name"), str):
                            existing.name = func["name"]
                        if isinstance(func.get("arguments"), str):
                            existing.raw_arguments += func["arguments"]

        finish_reason = choice.get("finish_reason")
        if isinstance(finish_reason, str):
            state.finish_reason = finish_reason
            if finish_reason in OPENAI_TOOL_FINISH_REASONS:
                state.is_complete = True


class AnthropicStreamingAdapter(StreamingToolCallAdapter, AnthropicAdapter):
    """Streaming adapter for Anthropic messages stream events."""

    def _apply_event(self, event: dict[str, Any], state: StreamingAdapterState) -> None:
        event_type = event.get("type")

        if event_type == "message_delta" and isinstance(event.get("delta"), dict):
            self._record_stop_reason(event["delta"].get("stop_reason"), state)

        elif event_type == "content_block_start" and isinstance(event.get("content_block"), dict):
            block = event["content_block"]
            if block.get("type") == "tool_use":
                existing = state.call_at(_index_of(event.get("index")))
                if isinstance(block.get("id"), str):
                    existing.id = block["id"]
                if isinstance(block.get("name"), str):
                    existing.name = block["name"]
                if not existing.raw_arguments:
                    seed = block.get("input")
                    if isinstance(seed, str):
                        existing.raw_arguments = seed
                    elif isinstance(seed, dict | list) and seed:
                        existing.raw_arguments = json.dumps(seed, separators=(",", ":"))

        elif event_type == "content_block_delta" and isinstance(event.get("delta"), dict):
            delta = event["delta"]
            if delta.get("type") == "input_json_delta" and isinstance(delta.get("partial_json"), str):
                existing = state.call_at(_index_of(event.get("index")))
                existing.raw_arguments += delta["partial_json"]
            if isinstance(delta.get("text"), str):
                state.accumulated_text += delta["text"]

        elif event_type == "message_stop":
            self._record_stop_reason(event.get("stop_reason"), state)
            if not state.is_complete and state.tool_calls:
                state.is_complete = True

    def _record_stop_reason(self, stop_reason: Any, state: StreamingAdapterState) -> None:
        if not isinstance(stop_reason, str):
            return
        state.finish_reason = stop_reason
        if stop_reason in ANTHROPIC_TOOL_STOP_REASONS:
            state.is_complete = True


_STREAMING_ADAPTERS: dict[ProviderID, StreamingToolCallAdapter] = {
    ProviderID.OPENAI: OpenAIStreamingAdapter(),
    ProviderID.ANTHROPIC: AnthropicStreamingAdapter(),
}


def get_streaming_tool_call_adapter(
    provider: ProviderID | str | None = None,
) -> StreamingToolCallAdapter | None:
    """Look up the streaming adapter for a vendor tag.

    Returns:
        The adapter, or None when the vendor does not stream tool call deltas.

    Raises:
        UnknownProviderError: If the tag names no supported vendor.
    """
    return _STREAMING_ADAPTERS.get(resolve_provider(provider))
