"""Tool call parsing: vendor adapters, inline text extraction and segmentation."""

from services.toolcall_service.core.parsing.adapters import (
    AnthropicAdapter,
    GeminiAdapter,
    OllamaAdapter,
    OpenAIAdapter,
    ToolCallAdapter,
    get_tool_call_adapter,
    stringify_result,
)
from services.toolcall_service.core.parsing.exceptions import (
    ConfigurationError,
    ToolCallServiceError,
    UnknownProviderError,
)
from services.toolcall_service.core.parsing.extractor import extract_tool_calls_from_text
from services.toolcall_service.core.parsing.json_decoder import (
    decode_json_object,
    decode_json_value,
    sanitize_json_string,
    try_decode,
)
from services.toolcall_service.core.parsing.segmenter import infer_tool_status, segment_content
from services.toolcall_service.core.parsing.streaming import (
    StreamingAdapterState,
    StreamingToolCallAdapter,
    get_streaming_tool_call_adapter,
    parse_sse_data,
)

__all__ = [
    # Decoder
    "sanitize_json_string",
    "try_decode",
    "decode_json_value",
    "decode_json_object",
    # Adapters
    "ToolCallAdapter",
    "OpenAIAdapter",
    "GeminiAdapter",
    "OllamaAdapter",
    "AnthropicAdapter",
    "get_tool_call_adapter",
    "stringify_result",
    # Streaming
    "StreamingAdapterState",
    "StreamingToolCallAdapter",
    "get_streaming_tool_call_adapter",
    "parse_sse_data",
    # Text
    "extract_tool_calls_from_text",
    "segment_content",
    "infer_tool_status",
    # Errors
    "ToolCallServiceError",
    "ConfigurationError",
    "UnknownProviderError",
]
