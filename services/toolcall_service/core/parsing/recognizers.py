"""Recognizers for tool calls written inline in assistant text.

Models without native tool calling (or proxies that flatten it) write tool
calls into their text using one of several conventions. Each convention has
its own recognizer that scans the whole text and returns zero or more
``Candidate`` matches with their spans:

1. find_fenced_tool_calls      ```tool_call {json} ```
2. find_wrapped_invocations    <tool_call><invoke name="x"><parameter .../></invoke></tool_call>
3. find_json_tool_tags         <tool_call>{json}</tool_call>
4. find_bare_invocations       <invoke name="x">...</invoke>
5. find_tool_result_echoes     <tool_result name="x" type="url" url="...">...</tool_result>
6. find_markdown_tool_markers  (wrench emoji) **Tool: x** with optional ```json block

Recognizers know nothing about each other; ``extractor`` merges their output.
A marker whose closing delimiter has not arrived yet simply does not match.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from services.toolcall_service.core.config.constants import (
    PAYLOAD_ARGUMENT_KEYS,
    PAYLOAD_NAME_KEYS,
    TOOL_CALL_FENCE_LABEL,
    TOOL_CALL_TAG_NAMES,
    TOOL_MARKER_EMOJI,
    TOOL_MARKER_LABELS,
)
from services.toolcall_service.core.parsing.json_decoder import (
    decode_json_object,
    decode_json_value,
    strip_trailing_commas,
    try_decode,
)
from shared.protocol.common import JsonObject
from shared.protocol.tool_models import ExtractionSource

logger = structlog.get_logger(__name__)


@dataclass
class Candidate:
    """A raw recognizer match before overlap resolution."""

    start: int
    end: int
    name: str
    arguments: JsonObject
    source: ExtractionSource
    raw_arguments: str | None = None


@dataclass
class ToolPayload:
    """Name and arguments recovered from a JSON-ish tool call payload."""

    name: str
    arguments: JsonObject = field(default_factory=dict)
    raw_arguments: str | None = None


# =============================================================================
# Patterns
# =============================================================================

_FLAGS = re.IGNORECASE | re.DOTALL

_TAG = "(?:" + "|".join(re.escape(tag) for tag in TOOL_CALL_TAG_NAMES) + ")"

FENCED_TOOL_CALL_PATTERN = re.compile(r"```" + re.escape(TOOL_CALL_FENCE_LABEL) + r"\s*\n(.*?)```", _FLAGS)

WRAPPED_INVOKE_PATTERN = re.compile(
    rf"<{_TAG}>\s*<invoke\s+name=\"([^\"]+)\">(.*?)</invoke>\s*</{_TAG}>",
    _FLAGS,
)

JSON_TOOL_TAG_PATTERN = re.compile(rf"<{_TAG}>\s*(.*?)</{_TAG}>", _FLAGS)

BARE_INVOKE_PATTERN = re.compile(r"<invoke\s+name=\"([^\"]+)\">(.*?)</invoke>", _FLAGS)

PARAMETER_PATTERN = re.compile(r"<parameter\s+name=\"([^\"]+)\">(.*?)</parameter>", _FLAGS)

TOOL_RESULT_PATTERN = re.compile(r"<tool_result\b([^>]*)>(.*?)</tool_result>", _FLAGS)

MARKDOWN_TOOL_PATTERN = re.compile(
    re.escape(TOOL_MARKER_EMOJI)
    + r"\s*\*\*(?:"
    + "|".join(TOOL_MARKER_LABELS)
    + r"):\s*([^*]+)\*\*(?:\.\.\.)?(?:\s*```json\s*(.*?)```)?",
    _FLAGS,
)

_NAME_VALUE_PATTERNS = tuple(re.compile(rf'"{key}"\s*:\s*"([^"]+)"') for key in PAYLOAD_NAME_KEYS)


def tag_attribute(attrs: str, name: str) -> str | None:
    """Read a single- or double-quoted attribute value from a tag's attribute text."""
    match = re.search(rf"\b{name}=(?:\"([^\"]+)\"|'([^']+)')", attrs, re.IGNORECASE)
    if match is None:
        return None
    return match.group(1) or match.group(2)


# =============================================================================
# Payload Parsing
# =============================================================================


def normalize_payload_arguments(raw: object) -> tuple[JsonObject, str | None]:
    """Normalize the arguments member of a decoded payload.

    Strings are decoded as objects (kept as ``raw_arguments`` when that fails),
    objects pass through, other non-null values are wrapped as ``{"input": v}``.
    """
    if isinstance(raw, str):
        parsed = decode_json_object(raw)
        if parsed is not None:
            return parsed, None
        return {}, raw
    if isinstance(raw, dict):
        return raw, None
    if raw is not None:
        return {"input": raw}, None
    return {}, None


def _payload_from_decoded(raw: str) -> ToolPayload | None:
    decoded = try_decode(raw)
    if decoded is None or not isinstance(decoded.value, dict):
        return None
    payload = decoded.value
    name = next((payload[key] for key in PAYLOAD_NAME_KEYS if isinstance(payload.get(key), str)), "")
    # A null member yields to the next argument key
    raw_args = next((payload[key] for key in PAYLOAD_ARGUMENT_KEYS if payload.get(key) is not None), None)
    arguments, raw_arguments = normalize_payload_arguments(raw_args)
    return ToolPayload(name=name.strip(), arguments=arguments, raw_arguments=raw_arguments)


def balanced_block_after(raw: str, key: str) -> str | None:
    """Return the brace-balanced ``{...}`` block following ``"key"`` in ``raw``.

    Braces inside quoted strings are ignored and escapes are respected.
    """
    key_index = raw.find(f'"{key}"')
    if key_index == -1:
        return None
    brace_start = raw.find("{", key_index)
    if brace_start == -1:
        return None

    depth = 0
    in_string = False
    escape = False
    for i in range(brace_start, len(raw)):
        char = raw[i]
        if escape:
            escape = False
            continue
        if char == "\\":
            if in_string:
                escape = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return raw[brace_start : i + 1]
    return None


def _payload_from_rescue(raw: str) -> ToolPayload | None:
    name_match = next((m for m in (p.search(raw) for p in _NAME_VALUE_PATTERNS) if m), None)
    if name_match is None:
        return None
    name = name_match.group(1).strip()
    if not name:
        return None

    for key in PAYLOAD_ARGUMENT_KEYS:
        block = balanced_block_after(raw, key)
        if not block:
            continue
        arguments = decode_json_object(block)
        if arguments is not None:
            logger.debug("tool_payload_rescued", name=name, key=key)
            return ToolPayload(name=name, arguments=arguments)
        break

    logger.debug("tool_payload_name_only", name=name)
    return ToolPayload(name=name, raw_arguments=raw)


# Tried in order; the first strategy returning a payload wins
PAYLOAD_STRATEGIES: tuple[Callable[[str], ToolPayload | None], ...] = (
    _payload_from_decoded,
    _payload_from_rescue,
)


def parse_tool_call_payload(raw: str) -> ToolPayload | None:
    """Recover a tool name and arguments from a JSON-ish payload.

    Strategies, in order: full (sanitizing) decode of the payload; a textual
    rescue that finds the name key and decodes only the brace-balanced
    arguments block; the name alone with empty arguments.

    Returns:
        The payload, or None when no tool name can be found.
    """
    for strategy in PAYLOAD_STRATEGIES:
        payload = strategy(raw)
        if payload is not None:
            return payload if payload.name else None
    return None


def parse_invoke_arguments(body: str) -> tuple[JsonObject, str | None]:
    """Arguments of an ``<invoke>`` body.

    ``<parameter>`` children become trimmed string values (no type coercion).
    Without parameters the body is decoded as a JSON object.
    """
    arguments: JsonObject = {}
    for match in PARAMETER_PATTERN.finditer(body):
        arguments[match.group(1)] = match.group(2).strip()
    if arguments:
        return arguments, None
    parsed = decode_json_object(body)
    if parsed is not None:
        return parsed, None
    return {}, body.strip() or None


# =============================================================================
# Recognizers
# =============================================================================


def find_fenced_tool_calls(text: str) -> list[Candidate]:
    """Fenced ```tool_call blocks holding a JSON payload."""
    candidates = []
    for match in FENCED_TOOL_CALL_PATTERN.finditer(text):
        payload = parse_tool_call_payload(strip_trailing_commas(match.group(1).strip()))
        if payload is None:
            continue
        candidates.append(
            Candidate(
                start=match.start(),
                end=match.end(),
                name=payload.name,
                arguments=payload.arguments,
                source=ExtractionSource.FENCED_BLOCK,
                raw_arguments=payload.raw_arguments,
            )
        )
    return candidates


def find_wrapped_invocations(text: str) -> list[Candidate]:
    """``<invoke>`` elements inside a tool_call wrapper tag."""
    candidates = []
    for match in WRAPPED_INVOKE_PATTERN.finditer(text):
        arguments, raw_arguments = parse_invoke_arguments(match.group(2))
        candidates.append(
            Candidate(
                start=match.start(),
                end=match.end(),
                name=match.group(1).strip(),
                arguments=arguments,
                source=ExtractionSource.XML_INVOKE,
                raw_arguments=raw_arguments,
            )
        )
    return candidates


def find_json_tool_tags(text: str) -> list[Candidate]:
    """tool_call wrapper tags whose body is a JSON payload."""
    candidates = []
    for match in JSON_TOOL_TAG_PATTERN.finditer(text):
        inner = match.group(1)
        if "<invoke" in inner:
            continue
        payload = parse_tool_call_payload(inner)
        if payload is None:
            continue
        candidates.append(
            Candidate(
                start=match.start(),
                end=match.end(),
                name=payload.name,
                arguments=payload.arguments,
                source=ExtractionSource.JSON_TAG,
                raw_arguments=payload.raw_arguments,
            )
        )
    return candidates


def find_bare_invocations(text: str) -> list[Candidate]:
    """``<invoke>`` elements without a wrapper."""
    candidates = []
    for match in BARE_INVOKE_PATTERN.finditer(text):
        arguments, raw_arguments = parse_invoke_arguments(match.group(2))
        candidates.append(
            Candidate(
                start=match.start(),
                end=match.end(),
                name=match.group(1).strip(),
                arguments=arguments,
                source=ExtractionSource.BARE_INVOKE,
                raw_arguments=raw_arguments,
            )
        )
    return candidates


def tool_result_arguments(attrs: str, body: str) -> JsonObject:
    """Arguments echoed by a ``<tool_result>`` tag.

    A ``url`` attribute wins. Otherwise the body is decoded: objects are used
    as is and other values become ``{"input": value}``. An undecodable body is
    kept as ``{"url": body}`` for ``type="url"`` and ``{"text": body}`` otherwise.
    """
    url = (tag_attribute(attrs, "url") or "").strip()
    if url:
        return {"url": url}

    content = body.strip()
    value = decode_json_value(content)
    if value is not None:
        return value if isinstance(value, dict) else {"input": value}
    if not content:
        return {}
    if (tag_attribute(attrs, "type") or "").lower() == "url":
        return {"url": content}
    return {"text": content}


def find_tool_result_echoes(text: str) -> list[Candidate]:
    """``<tool_result>`` tags echoing which tool ran and with what input."""
    candidates = []
    for match in TOOL_RESULT_PATTERN.finditer(text):
        attrs = match.group(1)
        name = (tag_attribute(attrs, "name") or "").strip()
        if not name:
            continue
        candidates.append(
            Candidate(
                start=match.start(),
                end=match.end(),
                name=name,
                arguments=tool_result_arguments(attrs, match.group(2)),
                source=ExtractionSource.TOOL_RESULT,
            )
        )
    return candidates


def find_markdown_tool_markers(text: str) -> list[Candidate]:
    """Markdown tool markers, with the optional ```json block as arguments."""
    candidates = []
    for match in MARKDOWN_TOOL_PATTERN.finditer(text):
        block = match.group(2) or ""
        candidates.append(
            Candidate(
                start=match.start(),
                end=match.end(),
                name=match.group(1).strip(),
                arguments=decode_json_object(block) or {},
                source=ExtractionSource.MARKDOWN,
            )
        )
    return candidates


# Order matters only for candidates starting at the same offset
RECOGNIZERS: tuple[Callable[[str], list[Candidate]], ...] = (
    find_fenced_tool_calls,
    find_wrapped_invocations,
    find_json_tool_tags,
    find_bare_invocations,
    find_tool_result_echoes,
    find_markdown_tool_markers,
)
