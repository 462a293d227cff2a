"""Constants for the tool-call parsing engine.

This module centralizes the marker spellings and vendor stop reasons the
parsers recognize.
"""

from typing import Final

# =============================================================================
# Textual Markers
# =============================================================================

#: Language label of a fenced block carrying a tool call payload
TOOL_CALL_FENCE_LABEL: Final[str] = "tool_call"

#: Wrapper tag names accepted around invocations and JSON payloads
#: MiniMax models emit a namespaced variant of the same tag
TOOL_CALL_TAG_NAMES: Final[tuple[str, ...]] = ("tool_call", "minimax:tool_call")

#: Reasoning aside tag spellings
THINKING_TAG_NAMES: Final[tuple[str, ...]] = ("think", "thinking")

#: Marker emoji prefixing the markdown tool convention
TOOL_MARKER_EMOJI: Final[str] = "\N{WRENCH}"

#: Labels accepted after the marker emoji
TOOL_MARKER_LABELS: Final[tuple[str, ...]] = ("Tool", "Executing")

#: Keys holding the tool name in JSON payloads, in priority order
PAYLOAD_NAME_KEYS: Final[tuple[str, ...]] = ("tool", "name")

#: Keys holding the tool arguments in JSON payloads, in priority order
PAYLOAD_ARGUMENT_KEYS: Final[tuple[str, ...]] = ("arguments", "args", "input")

# =============================================================================
# Streaming Stop Reasons
# =============================================================================

#: OpenAI-style finish reasons that close a tool call turn
OPENAI_TOOL_FINISH_REASONS: Final[frozenset[str]] = frozenset(
    {"tool_calls", "tool_call", "function_call"}
)

#: Anthropic-style stop reasons that close a tool call turn
ANTHROPIC_TOOL_STOP_REASONS: Final[frozenset[str]] = frozenset(
    {"tool_use", "tool_calls", "tool_call"}
)

#: SSE sentinel marking the end of an OpenAI stream
SSE_DONE_SENTINEL: Final[str] = "[DONE]"

# =============================================================================
# Segment Status Inference
# =============================================================================

#: Case-insensitive keywords that mark a captured tool result as failed
DEFAULT_ERROR_KEYWORDS: Final[tuple[str, ...]] = ("error",)
