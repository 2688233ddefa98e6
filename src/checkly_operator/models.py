"""In-memory representation of the AlertChannel custom resource."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from typing import Any

from .constants import API_GROUP_VERSION, KIND_ALERT_CHANNEL


@dataclass(frozen=True)
class ObjectRef:
    """Identity of a namespaced Kubernetes object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class LifecycleState(enum.Enum):
    """Where an AlertChannel stands in the finalizer protocol."""

    UNMANAGED = "Unmanaged"
    MANAGING = "Managing"
    TEARING_DOWN = "TearingDown"
    RELEASED = "Released"


@dataclass
class AlertChannel:
    """An AlertChannel object as read from the cluster.

    The raw body is kept so that fields this operator does not know about
    survive a read-modify-write cycle untouched.
    """

    ref: ObjectRef
    spec: dict[str, Any] = field(default_factory=dict)
    remote_id: int = 0
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: str | None = None
    resource_version: str | None = None
    uid: str = ""
    body: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "AlertChannel":
        """Build an AlertChannel from a Kubernetes object body."""
        body = copy.deepcopy(body)
        meta = body.get("metadata") or {}
        status = body.get("status") or {}
        return cls(
            ref=ObjectRef(namespace=meta.get("namespace", "default"), name=meta.get("name", "")),
            spec=body.get("spec") or {},
            remote_id=int(status.get("id") or 0),
            finalizers=list(meta.get("finalizers") or []),
            deletion_timestamp=meta.get("deletionTimestamp"),
            resource_version=meta.get("resourceVersion"),
            uid=meta.get("uid", ""),
            body=body,
        )

    def to_body(self) -> dict[str, Any]:
        """Render the object back into a Kubernetes body for a write."""
        body = copy.deepcopy(self.body)
        body.setdefault("apiVersion", API_GROUP_VERSION)
        body.setdefault("kind", KIND_ALERT_CHANNEL)

        meta = body.setdefault("metadata", {})
        meta["name"] = self.ref.name
        meta["namespace"] = self.ref.namespace
        meta["finalizers"] = list(self.finalizers)
        if self.resource_version is not None:
            meta["resourceVersion"] = self.resource_version

        body["spec"] = copy.deepcopy(self.spec)
        status = body.get("status") or {}
        status["id"] = self.remote_id
        body["status"] = status
        return body

    @property
    def meta(self) -> dict[str, Any]:
        """Metadata in the shape the structured logger expects."""
        return {"name": self.ref.name, "namespace": self.ref.namespace, "uid": self.uid}

    @property
    def is_deleting(self) -> bool:
        return self.deletion_timestamp is not None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers

    def add_finalizer(self, finalizer: str) -> bool:
        """Add a finalizer token. Returns False if it was already present."""
        if finalizer in self.finalizers:
            return False
        self.finalizers.append(finalizer)
        return True

    def remove_finalizer(self, finalizer: str) -> bool:
        """Remove a finalizer token. Returns False if it was not present."""
        if finalizer not in self.finalizers:
            return False
        self.finalizers = [f for f in self.finalizers if f != finalizer]
        return True

    def lifecycle_state(self, finalizer: str) -> LifecycleState:
        """Classify the object for the given finalizer token."""
        managed = self.has_finalizer(finalizer)
        if self.is_deleting:
            return LifecycleState.TEARING_DOWN if managed else LifecycleState.RELEASED
        return LifecycleState.MANAGING if managed else LifecycleState.UNMANAGED
