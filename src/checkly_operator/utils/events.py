"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CHANNEL_CREATED,
    EVENT_REASON_CHANNEL_DELETED,
    EVENT_REASON_CHANNEL_UPDATED,
    EVENT_REASON_FINALIZER_ADDED,
    EVENT_REASON_FINALIZER_REMOVED,
    EVENT_REASON_RECONCILE_FAILED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource body the event refers to
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_finalizer_added(body: dict[str, Any], finalizer: str) -> None:
    """Emit finalizer added event."""
    emit_event(body, EVENT_REASON_FINALIZER_ADDED, f"Finalizer {finalizer} added")


def emit_finalizer_removed(body: dict[str, Any], finalizer: str) -> None:
    """Emit finalizer removed event."""
    emit_event(body, EVENT_REASON_FINALIZER_REMOVED, f"Finalizer {finalizer} removed")


def emit_channel_created(body: dict[str, Any], channel_id: int) -> None:
    """Emit alert channel created event."""
    emit_event(body, EVENT_REASON_CHANNEL_CREATED, f"Checkly alert channel {channel_id} created")


def emit_channel_updated(body: dict[str, Any], channel_id: int) -> None:
    """Emit alert channel updated event."""
    emit_event(body, EVENT_REASON_CHANNEL_UPDATED, f"Checkly alert channel {channel_id} updated")


def emit_channel_deleted(body: dict[str, Any], channel_id: int) -> None:
    """Emit alert channel deleted event."""
    emit_event(body, EVENT_REASON_CHANNEL_DELETED, f"Checkly alert channel {channel_id} deleted")
