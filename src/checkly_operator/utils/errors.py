"""Error types and sanitization utilities for the Checkly Operator."""

from __future__ import annotations

import re
from typing import Any


class ChannelError(Exception):
    """Base class for errors raised while reconciling an AlertChannel."""


class NotFoundError(ChannelError):
    """A referenced object, secret or secret field does not exist."""

    def __init__(self, kind: str, namespace: str, name: str, detail: str | None = None):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        message = f"{kind} '{name}' not found in namespace '{namespace}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConflictError(ChannelError):
    """An optimistic-concurrency check failed on write."""

    def __init__(self, namespace: str, name: str, operation: str):
        self.namespace = namespace
        self.name = name
        self.operation = operation
        super().__init__(
            f"Conflict during {operation} of {namespace}/{name}: object was modified since it was read"
        )


class StoreError(ChannelError):
    """A Kubernetes API call failed for a reason other than not-found or conflict."""

    def __init__(self, operation: str, status: int | None, message: str):
        self.operation = operation
        self.status = status
        super().__init__(f"Kubernetes {operation} failed (status={status}): {message}")


class RemoteServiceError(ChannelError):
    """A call to the Checkly API failed."""

    def __init__(self, operation: str, status_code: int | None, message: str):
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"Checkly {operation} failed (status={status_code}): {message}")


class ChannelSpecError(ChannelError):
    """The AlertChannel spec cannot be turned into a Checkly payload."""


class ReconcileCancelled(ChannelError):
    """The invocation was cancelled before it could finish."""


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"bearer\s+([A-Za-z0-9_\-\.]+)",
    r"x-checkly-account[:\s]+([a-zA-Z0-9\-]+)",
    r"api[_\s]?key[:\s]+([A-Za-z0-9_\-]+)",
    r"cu_[A-Za-z0-9]{8,}",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "apikey",
    "api_key",
    "webhooksecret",
    "webhook_secret",
    "password",
    "secret",
    "token",
    "authorization",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, "[REDACTED]", sanitized, flags=re.IGNORECASE)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"{field}[\"']?[:=\s]+[\"']?([^\s,;\)\"']+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
