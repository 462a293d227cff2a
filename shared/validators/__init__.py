"""Shared validators and utilities."""

from shared.validators.id_generators import coerce_tool_call_id, generate_tool_call_id

__all__ = [
    "generate_tool_call_id",
    "coerce_tool_call_id",
]
