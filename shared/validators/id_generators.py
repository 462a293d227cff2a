"""ID generators for tool calls.

Vendor-supplied ids are kept verbatim. When a vendor omits one (Gemini function
calls, Ollama tool calls, text extractions) an id is synthesized:
- tool_call_id: tc_<ulid>

Uniqueness only matters within one extraction pass; ULIDs also sort by creation
time, which keeps synthesized ids in call order.
"""

from ulid import ULID


def _generate_ulid() -> str:
    """Generate a ULID string."""
    return str(ULID())


def generate_tool_call_id() -> str:
    """Generate a unique tool call ID (tc_<ulid>)."""
    return f"tc_{_generate_ulid()}"


def coerce_tool_call_id(raw_id: object) -> str:
    """Return a vendor id when it is a non-blank string, otherwise a fresh one."""
    if isinstance(raw_id, str) and raw_id.strip():
        return raw_id
    return generate_tool_call_id()
