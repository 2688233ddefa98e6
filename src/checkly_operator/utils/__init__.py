"""Utility functions for the Checkly Operator."""

from .context import get_context_dict, get_correlation_id, with_correlation_id
from .errors import (
    ChannelError,
    ChannelSpecError,
    ConflictError,
    NotFoundError,
    ReconcileCancelled,
    RemoteServiceError,
    StoreError,
    sanitize_exception,
)
from .events import emit_event
from .rate_limit import rate_limit_checkly, rate_limit_k8s
from .secrets import SecretRef, SecretResolver

__all__ = [
    "ChannelError",
    "ChannelSpecError",
    "ConflictError",
    "NotFoundError",
    "ReconcileCancelled",
    "RemoteServiceError",
    "StoreError",
    "sanitize_exception",
    "emit_event",
    "SecretRef",
    "SecretResolver",
    "rate_limit_k8s",
    "rate_limit_checkly",
    "get_context_dict",
    "get_correlation_id",
    "with_correlation_id",
]
