"""Shared fixtures and in-memory collaborators for unit tests."""

from __future__ import annotations

import copy
import os

# Keep client-side throttling out of the way in tests
os.environ.setdefault("K8S_RATE_LIMIT_PER_SECOND", "100000")
os.environ.setdefault("CHECKLY_RATE_LIMIT_PER_SECOND", "100000")

from typing import Any

import pytest

from checkly_operator.handlers.alert_channel import AlertChannelReconciler, ReconcilerDependencies
from checkly_operator.models import AlertChannel, ObjectRef
from checkly_operator.utils.errors import ConflictError, NotFoundError, RemoteServiceError

FINALIZER = "k8s.checklyhq.com/finalizer"


def make_body(
    name: str = "my-channel",
    namespace: str = "default",
    spec: dict[str, Any] | None = None,
    finalizers: list[str] | None = None,
    remote_id: int = 0,
    deletion_timestamp: str | None = None,
    resource_version: str = "1",
) -> dict[str, Any]:
    """Build an AlertChannel body as the API server would return it."""
    if spec is None:
        spec = {"webhook": {"name": "hook", "url": "https://example.com/hook", "method": "POST"}}
    metadata: dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "uid": f"uid-{name}",
        "resourceVersion": resource_version,
        "finalizers": list(finalizers or []),
    }
    if deletion_timestamp:
        metadata["deletionTimestamp"] = deletion_timestamp
    body: dict[str, Any] = {
        "apiVersion": "k8s.checklyhq.com/v1alpha1",
        "kind": "AlertChannel",
        "metadata": metadata,
        "spec": spec,
    }
    if remote_id:
        body["status"] = {"id": remote_id}
    return body


class FakeStore:
    """In-memory AlertChannel store with resourceVersion conflict checks.

    Like the API server, an object marked for deletion disappears once its
    last finalizer is removed.
    """

    def __init__(self) -> None:
        self.objects: dict[ObjectRef, dict[str, Any]] = {}
        self.calls: list[tuple[str, ObjectRef]] = []
        self.fail_get: Exception | None = None
        self.fail_update: Exception | None = None
        self.fail_update_status: Exception | None = None

    def add(self, body: dict[str, Any]) -> ObjectRef:
        meta = body["metadata"]
        ref = ObjectRef(namespace=meta["namespace"], name=meta["name"])
        self.objects[ref] = copy.deepcopy(body)
        return ref

    def body(self, ref: ObjectRef) -> dict[str, Any]:
        return self.objects[ref]

    def writes(self) -> list[str]:
        return [op for op, _ in self.calls if op != "get"]

    def get(self, ref: ObjectRef) -> AlertChannel:
        self.calls.append(("get", ref))
        if self.fail_get is not None:
            raise self.fail_get
        if ref not in self.objects:
            raise NotFoundError("AlertChannel", ref.namespace, ref.name)
        return AlertChannel.from_body(self.objects[ref])

    def _check_version(self, channel: AlertChannel, operation: str) -> dict[str, Any]:
        stored = self.objects.get(channel.ref)
        if stored is None:
            raise NotFoundError("AlertChannel", channel.ref.namespace, channel.ref.name)
        if stored["metadata"]["resourceVersion"] != channel.resource_version:
            raise ConflictError(channel.ref.namespace, channel.ref.name, operation)
        return stored

    def _bump(self, stored: dict[str, Any], channel: AlertChannel) -> None:
        version = str(int(stored["metadata"]["resourceVersion"]) + 1)
        stored["metadata"]["resourceVersion"] = version
        channel.resource_version = version

    def update(self, channel: AlertChannel) -> AlertChannel:
        self.calls.append(("update", channel.ref))
        if self.fail_update is not None:
            raise self.fail_update
        stored = self._check_version(channel, "update")
        written = channel.to_body()
        stored["metadata"]["finalizers"] = written["metadata"]["finalizers"]
        stored["spec"] = written["spec"]
        self._bump(stored, channel)
        if stored["metadata"].get("deletionTimestamp") and not stored["metadata"]["finalizers"]:
            del self.objects[channel.ref]
        return channel

    def update_status(self, channel: AlertChannel) -> AlertChannel:
        self.calls.append(("update_status", channel.ref))
        if self.fail_update_status is not None:
            raise self.fail_update_status
        stored = self._check_version(channel, "update_status")
        stored["status"] = channel.to_body()["status"]
        self._bump(stored, channel)
        return channel


class FakeSecrets:
    """Secret source backed by a dict of ``(namespace, name) -> {field: value}``."""

    def __init__(self, secrets: dict[tuple[str, str], dict[str, str]] | None = None) -> None:
        self.secrets = secrets or {}
        self.resolved: list[Any] = []

    def resolve(self, ref: Any) -> str:
        self.resolved.append(ref)
        data = self.secrets.get((ref.namespace, ref.name))
        if data is None:
            raise NotFoundError("Secret", ref.namespace, ref.name)
        value = data.get(ref.field_path, "")
        if not value:
            raise NotFoundError("Secret", ref.namespace, ref.name, detail=f"field '{ref.field_path}' is missing or empty")
        return value


class FakeRemote:
    """Records Checkly calls; each call can be made to fail."""

    def __init__(self, next_id: int = 42) -> None:
        self.next_id = next_id
        self.calls: list[tuple[Any, ...]] = []
        self.fail_create: Exception | None = None
        self.fail_update: Exception | None = None
        self.fail_delete: Exception | None = None

    def create_alert_channel(self, payload: dict[str, Any]) -> int:
        self.calls.append(("create", payload))
        if self.fail_create is not None:
            raise self.fail_create
        channel_id = self.next_id
        self.next_id += 1
        return channel_id

    def update_alert_channel(self, channel_id: int, payload: dict[str, Any]) -> None:
        self.calls.append(("update", channel_id, payload))
        if self.fail_update is not None:
            raise self.fail_update

    def delete_alert_channel(self, channel_id: int) -> None:
        self.calls.append(("delete", channel_id))
        if self.fail_delete is not None:
            raise self.fail_delete

    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]


def remote_error(operation: str, status_code: int | None = 500) -> RemoteServiceError:
    return RemoteServiceError(operation, status_code, "boom")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def secrets() -> FakeSecrets:
    return FakeSecrets()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def reconciler(store: FakeStore, secrets: FakeSecrets, remote: FakeRemote) -> AlertChannelReconciler:
    return AlertChannelReconciler(ReconcilerDependencies(store=store, secrets=secrets, remote=remote))
