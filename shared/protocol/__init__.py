"""Shared protocol definitions."""

from shared.protocol.common import JsonObject, JsonValue, ProviderID
from shared.protocol.tool_models import (
    DisplaySegment,
    ExtractionSource,
    SegmentStatus,
    TextSegment,
    ThinkingSegment,
    ToolCall,
    ToolCallExtraction,
    ToolCallStatus,
    ToolSegment,
)

__all__ = [
    # Common types
    "JsonObject",
    "JsonValue",
    "ProviderID",
    # Tool models
    "ToolCall",
    "ToolCallStatus",
    "ToolCallExtraction",
    "ExtractionSource",
    # Display segments
    "DisplaySegment",
    "SegmentStatus",
    "TextSegment",
    "ToolSegment",
    "ThinkingSegment",
]
