"""Tool call, extraction and display segment models."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

from shared.protocol.common import JsonObject, ProviderID


class ToolCallStatus(str, Enum):
    """Tool call lifecycle status."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class ToolCall(BaseModel):
    """Canonical tool call, independent of the vendor that produced it.

    The parsing engine only constructs these. An executor may later fill in
    status, result, error and timestamps.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: Annotated[str, Field(min_length=1)]
    name: Annotated[str, Field(min_length=1)]
    arguments: JsonObject = Field(default_factory=dict)
    raw_arguments: str | None = None  # Argument text that could not be decoded
    provider: ProviderID | None = None
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: JsonValue = None
    error: str | None = None
    start_time: float | None = None
    end_time: float | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: object) -> object:
        """Trim the name so a whitespace-only name fails validation."""
        return value.strip() if isinstance(value, str) else value


class ExtractionSource(str, Enum):
    """Which textual encoding an extraction was recognized from."""

    FENCED_BLOCK = "fenced_block"
    XML_INVOKE = "xml_invoke"
    JSON_TAG = "json_tag"
    BARE_INVOKE = "bare_invoke"
    TOOL_RESULT = "tool_result"
    MARKDOWN = "markdown"


class ToolCallExtraction(BaseModel):
    """A tool call recognized inside free-form text.

    The span is half-open: ``text[start_index:end_index]`` is the matched marker.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1)]
    arguments: JsonObject = Field(default_factory=dict)
    start_index: Annotated[int, Field(ge=0)]
    end_index: Annotated[int, Field(ge=0)]
    source: ExtractionSource
    raw_arguments: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


# =============================================================================
# Display Segments
# =============================================================================


class SegmentStatus(str, Enum):
    """Display status of a tool segment."""

    EXECUTING = "executing"
    SUCCESS = "success"
    ERROR = "error"


class TextSegment(BaseModel):
    """Plain assistant text, trimmed of surrounding whitespace."""

    type: Literal["text"] = "text"
    content: str
    start_index: int
    end_index: int


class ToolSegment(BaseModel):
    """A tool invocation marker found in assistant text."""

    type: Literal["tool"] = "tool"
    name: str
    status: SegmentStatus
    result: str | None = None
    arguments: JsonObject | None = None
    start_index: int
    end_index: int


class ThinkingSegment(BaseModel):
    """A reasoning aside; content is kept verbatim."""

    type: Literal["thinking"] = "thinking"
    content: str
    start_index: int
    end_index: int


# Union type for all display segment types
DisplaySegment = Annotated[TextSegment | ToolSegment | ThinkingSegment, Field(discriminator="type")]
