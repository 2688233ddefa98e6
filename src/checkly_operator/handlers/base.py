"""Base handler class with common functionality for CRD handlers."""

from __future__ import annotations

import logging
from typing import Any

from ..constants import CONTROLLER_NAME
from ..logging import log_resource_event
from ..models import AlertChannel
from ..utils.errors import sanitize_exception


class BaseHandler:
    """Base class for CRD handlers: structured logging and finalizer bookkeeping."""

    def __init__(self, kind: str, finalizer: str):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind (e.g., "AlertChannel")
            finalizer: Finalizer token owned by this handler
        """
        self.kind = kind
        self.finalizer = finalizer
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, meta: dict[str, Any]) -> dict[str, Any]:
        """Extract common resource context from metadata."""
        return {
            "name": meta.get("name", "unknown"),
            "namespace": meta.get("namespace", "default"),
            "uid": meta.get("uid") or "unknown",
        }

    def _log(
        self,
        level: int,
        meta: dict[str, Any],
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        ctx = self._get_resource_context(meta)
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            event: Event type (default: "info")
            reason: Reason for the event (default: "Info")
            **kwargs: Additional fields to include in the log
        """
        self._log(logging.INFO, meta, message, event, reason, **kwargs)

    def log_warning(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        """Log a warning-level structured log message."""
        self._log(logging.WARNING, meta, message, event, reason, **kwargs)

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()
        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__
        self._log(logging.ERROR, meta, message, event, reason, **log_data)

    def ensure_finalizer(self, channel: AlertChannel) -> bool:
        """Add this handler's finalizer to the object. Returns True if it changed."""
        return channel.add_finalizer(self.finalizer)

    def release_finalizer(self, channel: AlertChannel) -> bool:
        """Remove this handler's finalizer from the object. Returns True if it changed."""
        return channel.remove_finalizer(self.finalizer)
