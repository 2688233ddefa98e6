"""Read and write AlertChannel objects in the cluster."""

from __future__ import annotations

import time
from typing import Any, Callable, Protocol

import urllib3
from kubernetes import client, config

from ... import metrics
from ...constants import API_GROUP, API_VERSION, FIELD_MANAGER, PLURAL_ALERT_CHANNELS
from ...models import AlertChannel, ObjectRef
from ...utils.errors import ConflictError, NotFoundError, StoreError
from ...utils.rate_limit import rate_limit_k8s


class AlertChannelStore(Protocol):
    """Protocol for the desired-state store.

    Writes must carry the resourceVersion that was read and fail with
    ``ConflictError`` when it is stale.
    """

    def get(self, ref: ObjectRef) -> AlertChannel:
        """Read an AlertChannel. Raises NotFoundError if it does not exist."""
        ...

    def update(self, channel: AlertChannel) -> AlertChannel:
        """Persist metadata and spec changes (finalizers)."""
        ...

    def update_status(self, channel: AlertChannel) -> AlertChannel:
        """Persist the status subresource."""
        ...


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


class KubernetesAlertChannelStore:
    """AlertChannelStore backed by the CustomObjects API."""

    def __init__(self, api: client.CustomObjectsApi, request_timeout: float | None = None):
        self.api = api
        self.request_timeout = request_timeout

    def get(self, ref: ObjectRef) -> AlertChannel:
        body = self._call(
            "get_alert_channel",
            ref,
            self.api.get_namespaced_custom_object,
            group=API_GROUP,
            version=API_VERSION,
            namespace=ref.namespace,
            plural=PLURAL_ALERT_CHANNELS,
            name=ref.name,
        )
        return AlertChannel.from_body(body)

    def update(self, channel: AlertChannel) -> AlertChannel:
        body = self._call(
            "update_alert_channel",
            channel.ref,
            self.api.replace_namespaced_custom_object,
            group=API_GROUP,
            version=API_VERSION,
            namespace=channel.ref.namespace,
            plural=PLURAL_ALERT_CHANNELS,
            name=channel.ref.name,
            body=channel.to_body(),
            field_manager=FIELD_MANAGER,
        )
        return self._refresh(channel, body)

    def update_status(self, channel: AlertChannel) -> AlertChannel:
        body = self._call(
            "update_alert_channel_status",
            channel.ref,
            self.api.replace_namespaced_custom_object_status,
            group=API_GROUP,
            version=API_VERSION,
            namespace=channel.ref.namespace,
            plural=PLURAL_ALERT_CHANNELS,
            name=channel.ref.name,
            body=channel.to_body(),
            field_manager=FIELD_MANAGER,
        )
        return self._refresh(channel, body)

    @staticmethod
    def _refresh(channel: AlertChannel, body: Any) -> AlertChannel:
        """Carry the new resourceVersion forward so a later write in the same pass is not stale."""
        if isinstance(body, dict):
            channel.resource_version = (body.get("metadata") or {}).get(
                "resourceVersion", channel.resource_version
            )
        return channel

    def _call(self, operation: str, ref: ObjectRef, func: Callable[..., Any], **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            result = rate_limit_k8s(func)(_request_timeout=self.request_timeout, **kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except client.exceptions.ApiException as e:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            if e.status == 404:
                raise NotFoundError("AlertChannel", ref.namespace, ref.name) from e
            if e.status == 409:
                raise ConflictError(ref.namespace, ref.name, operation) from e
            raise StoreError(operation, e.status, e.reason or str(e)) from e
        except urllib3.exceptions.HTTPError as e:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            raise StoreError(operation, None, str(e)) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)
