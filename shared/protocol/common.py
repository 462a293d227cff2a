"""Common types shared by the tool-call models and the parsing engine."""

from enum import Enum

from pydantic import JsonValue

# Decoded JSON of any shape: str | int | float | bool | None | list | dict
# Tool arguments are always key/value
JsonObject = dict[str, JsonValue]


class ProviderID(str, Enum):
    """Enumeration of supported LLM vendor wire formats.

    Using str as base allows direct comparison with strings and serialization.
    """

    OPENAI = "openai"
    GEMINI = "gemini"
    OLLAMA = "ollama"
    ANTHROPIC = "anthropic"


__all__ = ["JsonObject", "JsonValue", "ProviderID"]
