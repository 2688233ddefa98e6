"""Resolution of credentials stored in Kubernetes secrets."""

from __future__ import annotations

import base64
import binascii
import time
from dataclasses import dataclass
from typing import Any, Protocol

from kubernetes import client

from .. import metrics
from .errors import ChannelSpecError, NotFoundError, StoreError
from .rate_limit import rate_limit_k8s


@dataclass(frozen=True)
class SecretRef:
    """Reference to a single field of a Kubernetes secret."""

    namespace: str
    name: str
    field_path: str

    @classmethod
    def from_spec(cls, ref: dict[str, Any] | None, default_namespace: str) -> "SecretRef | None":
        """Parse an object reference from a CRD spec.

        An absent or fully empty reference yields None. An empty namespace
        falls back to the namespace of the referencing object.
        """
        if not ref or not any(ref.get(k) for k in ("name", "namespace", "fieldPath")):
            return None
        name = ref.get("name")
        field_path = ref.get("fieldPath")
        if not name or not field_path:
            raise ChannelSpecError("secret reference requires both name and fieldPath")
        return cls(
            namespace=ref.get("namespace") or default_namespace,
            name=name,
            field_path=field_path,
        )

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}[{self.field_path}]"


class SecretSource(Protocol):
    """Anything able to turn a secret reference into its value."""

    def resolve(self, ref: SecretRef) -> str:
        ...


def decode_secret_value(value: str | bytes) -> str:
    """Decode a value from ``Secret.data``.

    Values coming from the API are base64 encoded strings; bytes are taken as
    already decoded.

    Raises:
        ValueError: If the value is not valid base64 or not UTF-8 text
    """
    if isinstance(value, bytes):
        return value.decode("utf-8")
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError("secret value is not valid base64-encoded UTF-8") from e


class SecretResolver:
    """Reads secret fields through the CoreV1 API.

    Values are never cached; every call reads the secret again.
    """

    def __init__(self, api: client.CoreV1Api, request_timeout: float | None = None):
        self.api = api
        self.request_timeout = request_timeout

    def resolve(self, ref: SecretRef) -> str:
        """Return the value of ``ref.field_path`` in the referenced secret.

        Raises:
            NotFoundError: If the secret is missing, or the field is absent, empty or undecodable
            StoreError: On any other API failure
        """
        start_time = time.time()
        try:
            secret = rate_limit_k8s(self.api.read_namespaced_secret)(
                name=ref.name,
                namespace=ref.namespace,
                _request_timeout=self.request_timeout,
            )
            metrics.api_call_total.labels(api_type="k8s", operation="read_secret", result="success").inc()
        except client.exceptions.ApiException as e:
            metrics.api_call_total.labels(api_type="k8s", operation="read_secret", result="error").inc()
            if e.status == 404:
                raise NotFoundError("Secret", ref.namespace, ref.name) from e
            raise StoreError("read_secret", e.status, e.reason or str(e)) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation="read_secret").observe(duration)

        raw = (secret.data or {}).get(ref.field_path)
        try:
            value = decode_secret_value(raw) if raw else ""
        except ValueError as e:
            raise NotFoundError(
                "Secret", ref.namespace, ref.name, detail=f"field '{ref.field_path}' is not valid base64-encoded UTF-8"
            ) from e
        # An empty credential is never valid, so it counts as missing
        if not value:
            raise NotFoundError(
                "Secret", ref.namespace, ref.name, detail=f"field '{ref.field_path}' is missing or empty"
            )
        return value
