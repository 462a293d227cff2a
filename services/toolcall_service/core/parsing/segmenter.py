"""Content segmenter.

Splits assistant text into display segments in document order: plain text,
tool invocations and reasoning asides. Recognized markers:

- ``<think>...</think>`` / ``<thinking>...</thinking>`` reasoning asides
- the markdown tool marker (wrench emoji, ``**Tool: name**``, optional ```json result),
  also with an unfenced ``{...}`` result running to the end of its line
- ``<invoke name="...">`` blocks, wrapped in a tool_call tag or bare, whose
  ``<parameter>`` children (or JSON body) become the segment arguments
- ``<tool_result name="..." status="..." encoding="base64">...</tool_result>`` tags

Markers are pooled and resolved with the same first-by-offset, non-overlapping
policy as the extractor. Text between markers is trimmed and kept when non-empty.
"""

import base64
import binascii
import re
from dataclasses import dataclass

import structlog

from services.toolcall_service.core.config.constants import (
    THINKING_TAG_NAMES,
    TOOL_MARKER_EMOJI,
    TOOL_MARKER_LABELS,
)
from services.toolcall_service.core.config.settings import get_settings
from services.toolcall_service.core.parsing.extractor import select_non_overlapping
from services.toolcall_service.core.parsing.json_decoder import decode_json_value
from services.toolcall_service.core.parsing.recognizers import (
    BARE_INVOKE_PATTERN,
    MARKDOWN_TOOL_PATTERN,
    TOOL_RESULT_PATTERN,
    WRAPPED_INVOKE_PATTERN,
    parse_invoke_arguments,
    tag_attribute,
)
from shared.protocol.common import JsonObject
from shared.protocol.tool_models import (
    DisplaySegment,
    SegmentStatus,
    TextSegment,
    ThinkingSegment,
    ToolSegment,
)

logger = structlog.get_logger(__name__)

_THINK_TAG = "(?:" + "|".join(THINKING_TAG_NAMES) + ")"
THINKING_PATTERN = re.compile(rf"<{_THINK_TAG}>(.*?)</{_THINK_TAG}>", re.IGNORECASE | re.DOTALL)

# A result object or array written right after the marker without a fence
LAX_MARKDOWN_TOOL_PATTERN = re.compile(
    re.escape(TOOL_MARKER_EMOJI)
    + r"\s*\*\*(?:"
    + "|".join(TOOL_MARKER_LABELS)
    + r"):\s*([^*]+)\*\*(?:\.\.\.)?\s*(?:```json\s*)?([\[{].*?[}\]])(?:```)?$",
    re.IGNORECASE | re.DOTALL | re.MULTILINE,
)


@dataclass
class _Marker:
    start: int
    end: int
    kind: str  # "thinking" | "tool"
    content: str = ""
    name: str = ""
    result: str | None = None
    status: SegmentStatus | None = None
    arguments: JsonObject | None = None


def infer_tool_status(
    result: str | None,
    explicit: SegmentStatus | None = None,
    error_keywords: list[str] | None = None,
) -> SegmentStatus:
    """Work out a tool segment's status from what has been captured.

    An explicit status wins unless a captured result shows a failure. Without
    one, a captured result means success and no result means still executing.
    A result fails when it decodes to an object with ``success: false`` or
    contains one of the error keywords (case-insensitive).
    """
    status = explicit or (SegmentStatus.SUCCESS if result else SegmentStatus.EXECUTING)
    if not result or status == SegmentStatus.ERROR:
        return status

    keywords = error_keywords if error_keywords is not None else get_settings().error_keywords
    decoded = decode_json_value(result)
    if isinstance(decoded, dict) and decoded.get("success") is False:
        return SegmentStatus.ERROR
    lowered = result.lower()
    if any(keyword.lower() in lowered for keyword in keywords if keyword):
        return SegmentStatus.ERROR
    return status


def _decode_base64_text(raw: str) -> str | None:
    try:
        return base64.b64decode(re.sub(r"\s+", "", raw), validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def _find_thinking(text: str) -> list[_Marker]:
    return [
        _Marker(start=m.start(), end=m.end(), kind="thinking", content=m.group(1))
        for m in THINKING_PATTERN.finditer(text)
    ]


def _find_tool_results(text: str) -> list[_Marker]:
    markers = []
    for match in TOOL_RESULT_PATTERN.finditer(text):
        attrs = match.group(1)
        name = (tag_attribute(attrs, "name") or "").strip()
        if not name:
            continue
        result = match.group(2)
        if (tag_attribute(attrs, "encoding") or "").lower() == "base64":
            decoded = _decode_base64_text(result)
            if decoded is None:
                logger.debug("tool_result_base64_invalid", name=name)
            else:
                result = decoded
        raw_status = tag_attribute(attrs, "status")
        status = SegmentStatus(raw_status) if raw_status in {s.value for s in SegmentStatus} else None
        url = (tag_attribute(attrs, "url") or "").strip()
        markers.append(
            _Marker(
                start=match.start(),
                end=match.end(),
                kind="tool",
                name=name,
                result=result.strip() or None,
                status=status,
                arguments={"url": url} if url else None,
            )
        )
    return markers


def _find_markdown_tools(text: str) -> list[_Marker]:
    markers = []
    for match in MARKDOWN_TOOL_PATTERN.finditer(text):
        end = match.end()
        block = match.group(2)
        if block is None:
            lax = LAX_MARKDOWN_TOOL_PATTERN.match(text, match.start())
            if lax is not None:
                end, block = lax.end(), lax.group(2)
        markers.append(
            _Marker(
                start=match.start(),
                end=end,
                kind="tool",
                name=match.group(1).strip(),
                result=(block or "").strip() or None,
            )
        )
    return markers


def _find_invocations(text: str) -> list[_Marker]:
    markers = []
    for pattern in (WRAPPED_INVOKE_PATTERN, BARE_INVOKE_PATTERN):
        for match in pattern.finditer(text):
            arguments, _ = parse_invoke_arguments(match.group(2))
            markers.append(
                _Marker(
                    start=match.start(),
                    end=match.end(),
                    kind="tool",
                    name=match.group(1).strip(),
                    arguments=arguments,
                )
            )
    return markers


def _text_segment(text: str, start: int, end: int) -> TextSegment | None:
    chunk = text[start:end]
    content = chunk.strip()
    if not content:
        return None
    offset = start + (len(chunk) - len(chunk.lstrip()))
    return TextSegment(content=content, start_index=offset, end_index=offset + len(content))


def segment_content(text: str) -> list[DisplaySegment]:
    """Split assistant text into display segments.

    Args:
        text: Assistant message text, possibly partial.

    Returns:
        Segments in document order. Blank text gives an empty list.
    """
    if not text or not text.strip():
        return []

    error_keywords = get_settings().error_keywords
    markers = select_non_overlapping(
        _find_thinking(text)
        + _find_tool_results(text)
        + _find_markdown_tools(text)
        + _find_invocations(text),
        lambda marker: marker.kind == "thinking" or bool(marker.name),
    )

    segments: list[DisplaySegment] = []
    last_index = 0
    for marker in markers:
        before = _text_segment(text, last_index, marker.start)
        if before is not None:
            segments.append(before)

        if marker.kind == "thinking":
            segments.append(ThinkingSegment(content=marker.content, start_index=marker.start, end_index=marker.end))
        else:
            segments.append(
                ToolSegment(
                    name=marker.name,
                    status=infer_tool_status(marker.result, marker.status, error_keywords),
                    result=marker.result,
                    arguments=marker.arguments,
                    start_index=marker.start,
                    end_index=marker.end,
                )
            )
        last_index = marker.end

    after = _text_segment(text, last_index, len(text))
    if after is not None:
        segments.append(after)
    return segments
