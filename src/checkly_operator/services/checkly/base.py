"""Checkly alert channel API interface."""

from __future__ import annotations

from typing import Any, Protocol


class AlertChannelAPI(Protocol):
    """Protocol defining the alert channel operations the reconciler needs.

    Implementations issue exactly one request per call and never retry.
    Failures are raised as ``RemoteServiceError``.
    """

    def create_alert_channel(self, payload: dict[str, Any]) -> int:
        """Create an alert channel and return its Checkly ID."""
        ...

    def update_alert_channel(self, channel_id: int, payload: dict[str, Any]) -> None:
        """Replace the configuration of an existing alert channel."""
        ...

    def delete_alert_channel(self, channel_id: int) -> None:
        """Delete an alert channel."""
        ...
