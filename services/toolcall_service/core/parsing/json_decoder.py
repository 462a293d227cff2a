"""Sanitizing JSON decoder.

Streamed model output often contains literal line breaks inside what was meant
to be a JSON string value. Strict decoding rejects those, so decoding runs an
ordered chain of strategies:

1. strict decode of the trimmed text
2. strict decode after escaping raw newlines that sit inside quoted strings

Each strategy returns a ``Decoded`` wrapper or ``None`` to hand over to the next
one. Nothing in this module raises on bad input.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass

import structlog
from pydantic import JsonValue

from shared.protocol.common import JsonObject

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Decoded:
    """A successfully decoded value (which may itself be ``None`` for ``null``)."""

    value: JsonValue
    sanitized: bool = False


def _reject_constant(name: str) -> None:
    raise ValueError(f"Invalid JSON constant: {name}")


def _loads(text: str) -> JsonValue:
    # NaN/Infinity are not JSON
    return json.loads(text, parse_constant=_reject_constant)


def sanitize_json_string(raw: str) -> str:
    """Escape literal CR/LF characters that appear inside quoted strings.

    Characters outside strings are copied unchanged, and escape sequences are
    respected so an escaped quote does not toggle the in-string state.
    """
    result: list[str] = []
    in_string = False
    escape = False
    for char in raw:
        if escape:
            result.append(char)
            escape = False
            continue
        if char == "\\":
            result.append(char)
            if in_string:
                escape = True
            continue
        if char == '"':
            in_string = not in_string
            result.append(char)
            continue
        if in_string and char in "\n\r":
            result.append("\\n")
            continue
        result.append(char)
    return "".join(result)


def strip_trailing_commas(raw: str) -> str:
    """Drop commas that precede a closing brace or bracket, ignoring whitespace.

    Commas inside quoted strings are kept, so string values such as source code
    come through unchanged.
    """
    result: list[str] = []
    in_string = False
    escape = False
    length = len(raw)
    for i, char in enumerate(raw):
        if escape:
            escape = False
        elif char == "\\":
            escape = in_string
        elif char == '"':
            in_string = not in_string
        elif char == "," and not in_string:
            j = i + 1
            while j < length and raw[j].isspace():
                j += 1
            if j < length and raw[j] in "}]":
                continue
        result.append(char)
    return "".join(result)


def _decode_strict(text: str) -> Decoded | None:
    try:
        return Decoded(_loads(text))
    except (ValueError, RecursionError):
        return None


def _decode_sanitized(text: str) -> Decoded | None:
    sanitized = sanitize_json_string(text)
    if sanitized == text:
        return None
    try:
        value = _loads(sanitized)
    except (ValueError, RecursionError):
        return None
    logger.debug("json_sanitized_recovery", length=len(text))
    return Decoded(value, sanitized=True)


DECODE_STRATEGIES: tuple[Callable[[str], Decoded | None], ...] = (
    _decode_strict,
    _decode_sanitized,
)


def try_decode(raw: str) -> Decoded | None:
    """Run the decode strategies in order on the trimmed text.

    Returns:
        The first successful ``Decoded`` result, or None if the text is blank
        or no strategy recovers a value.
    """
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None
    for strategy in DECODE_STRATEGIES:
        decoded = strategy(text)
        if decoded is not None:
            return decoded
    return None


def decode_json_value(raw: str) -> JsonValue | None:
    """Decode a fragment into a JSON value.

    A literal ``null`` is indistinguishable from failure here; callers that need
    the difference use ``try_decode``.
    """
    decoded = try_decode(raw)
    return decoded.value if decoded is not None else None


def decode_json_object(raw: str) -> JsonObject | None:
    """Decode a fragment that must hold a JSON object (tool arguments).

    Arrays and scalars are rejected.
    """
    value = decode_json_value(raw)
    if isinstance(value, dict):
        return value
    return None
