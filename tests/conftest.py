"""Pytest configuration and fixtures.

Vendor payload fixtures live in tests/fixtures/:

- openai_tool_call_response.json: chat completion with one tool call
- gemini_function_call_response.json: generateContent with one function call
- ollama_tool_call_response.json: chat response with one tool call
- anthropic_tool_use_response.json: messages response with a tool_use and a text block
"""

import json
import os
from pathlib import Path
from typing import Any

import pytest

# Set test environment before importing settings
os.environ.setdefault("TOOLCALL_SERVICE_LOAD_ENV_FILE", "false")


# =============================================================================
# Fixture File Loading
# =============================================================================


def _load_fixture(filename: str) -> dict[str, Any]:
    """Load a JSON fixture file from tests/fixtures/.

    Args:
        filename: Name of the fixture file (e.g., 'openai_tool_call_response.json')

    Returns:
        Parsed JSON content as a dictionary.
    """
    fixture_path = Path(__file__).parent / "fixtures" / filename
    with open(fixture_path) as f:
        return json.load(f)


@pytest.fixture
def openai_response() -> dict[str, Any]:
    """OpenAI chat completion with a tool call."""
    return _load_fixture("openai_tool_call_response.json")


@pytest.fixture
def gemini_response() -> dict[str, Any]:
    """Gemini response with a function call."""
    return _load_fixture("gemini_function_call_response.json")


@pytest.fixture
def ollama_response() -> dict[str, Any]:
    """Ollama chat response with a tool call."""
    return _load_fixture("ollama_tool_call_response.json")


@pytest.fixture
def anthropic_response() -> dict[str, Any]:
    """Anthropic messages response with a tool_use block."""
    return _load_fixture("anthropic_tool_use_response.json")


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Clear the cached settings so env overrides apply per test."""
    from services.toolcall_service.core.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
