"""Exception types for apiv2-compose."""

from typing import Any


class Apiv2ComposeError(Exception):
    """Base exception for all apiv2-compose errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class CapabilityResolutionError(Apiv2ComposeError, TypeError):
    """Raised when an annotation has no operation contributor.

    This is a build-time error: it surfaces while a document is being
    composed, never while serving requests.
    """


class RouteError(Apiv2ComposeError, ValueError):
    """Raised for duplicate or malformed routes."""


class ConfigError(Apiv2ComposeError):
    """Raised when document settings cannot be loaded."""
