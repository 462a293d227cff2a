"""Custom exception hierarchy for the tool-call service.

Malformed vendor payloads and partial text never raise; they degrade to fewer
or emptier tool calls. Only caller configuration mistakes surface as errors.
"""

from typing import Any


class ToolCallServiceError(Exception):
    """Base exception for all tool-call service errors."""

    def __init__(
        self,
        message: str,
        code: str = "TOOLCALL_SERVICE_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ToolCallServiceError):
    """Error in caller or application configuration."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            details=details,
        )


class UnknownProviderError(ConfigurationError):
    """No adapter is registered for the requested vendor tag."""

    def __init__(self, provider: object, supported: list[str]):
        super().__init__(
            message=f"Unknown tool call provider: {provider!r}",
            details={"provider": str(provider), "supported": supported},
        )
        self.code = "UNKNOWN_PROVIDER"
        self.provider = provider
