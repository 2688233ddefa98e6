"""Builder for Checkly alert channel payloads.

Each provider variant of an AlertChannel spec is a dataclass that knows how
to resolve its secret references into the flat ``config`` object of the
Checkly API. Supporting another provider means adding another variant and
listing it in ``CHANNEL_VARIANTS``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from ..constants import CHANNEL_TYPE_EMAIL, CHANNEL_TYPE_OPSGENIE, CHANNEL_TYPE_WEBHOOK
from ..models import AlertChannel
from ..utils.errors import ChannelSpecError
from ..utils.secrets import SecretRef, SecretSource


def _key_values(items: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Normalize a list of header or query parameter entries."""
    return [
        {
            "key": item.get("key", ""),
            "value": item.get("value", ""),
            "locked": bool(item.get("locked", False)),
        }
        for item in items or []
    ]


@dataclass
class EmailConfig:
    """Notify an email address."""

    spec_key: ClassVar[str] = "email"
    channel_type: ClassVar[str] = CHANNEL_TYPE_EMAIL

    address: str

    @classmethod
    def from_spec(cls, spec: dict[str, Any], channel: AlertChannel) -> "EmailConfig":
        address = spec.get("address")
        if not address:
            raise ChannelSpecError("email.address is required")
        return cls(address=address)

    def resolve(self, secrets: SecretSource) -> dict[str, Any]:
        return {"address": self.address}


@dataclass
class OpsGenieConfig:
    """Forward alerts to OpsGenie, authenticated with an API key held in a secret."""

    spec_key: ClassVar[str] = "opsgenie"
    channel_type: ClassVar[str] = CHANNEL_TYPE_OPSGENIE

    name: str
    api_key_ref: SecretRef
    region: str = ""
    priority: str = ""

    @classmethod
    def from_spec(cls, spec: dict[str, Any], channel: AlertChannel) -> "OpsGenieConfig":
        api_key_ref = SecretRef.from_spec(spec.get("apiSecret"), channel.ref.namespace)
        if api_key_ref is None:
            raise ChannelSpecError("opsgenie.apiSecret is required")
        return cls(
            name=channel.ref.name,
            api_key_ref=api_key_ref,
            region=spec.get("region", ""),
            priority=spec.get("priority", ""),
        )

    def resolve(self, secrets: SecretSource) -> dict[str, Any]:
        return {
            "name": self.name,
            "apiKey": secrets.resolve(self.api_key_ref),
            "region": self.region,
            "priority": self.priority,
        }


@dataclass
class WebhookConfig:
    """Call an arbitrary HTTP endpoint, optionally signed with a secret."""

    spec_key: ClassVar[str] = "webhook"
    channel_type: ClassVar[str] = CHANNEL_TYPE_WEBHOOK

    name: str
    url: str
    method: str = "POST"
    webhook_type: str = ""
    template: str = ""
    headers: list[dict[str, Any]] = field(default_factory=list)
    query_parameters: list[dict[str, Any]] = field(default_factory=list)
    secret_ref: SecretRef | None = None

    @classmethod
    def from_spec(cls, spec: dict[str, Any], channel: AlertChannel) -> "WebhookConfig":
        url = spec.get("url")
        if not url:
            raise ChannelSpecError("webhook.url is required")
        return cls(
            name=spec.get("name") or channel.ref.name,
            url=url,
            method=spec.get("method") or "POST",
            webhook_type=spec.get("webhookType", ""),
            template=spec.get("template", ""),
            headers=_key_values(spec.get("headers")),
            query_parameters=_key_values(spec.get("queryParameters")),
            secret_ref=SecretRef.from_spec(spec.get("webhookSecret"), channel.ref.namespace),
        )

    def resolve(self, secrets: SecretSource) -> dict[str, Any]:
        config: dict[str, Any] = {
            "name": self.name,
            "url": self.url,
            "method": self.method,
            "template": self.template,
            "headers": self.headers,
            "queryParameters": self.query_parameters,
        }
        if self.webhook_type:
            config["webhookType"] = self.webhook_type
        if self.secret_ref is not None:
            config["webhookSecret"] = secrets.resolve(self.secret_ref)
        return config


ChannelConfig = Union[EmailConfig, OpsGenieConfig, WebhookConfig]

CHANNEL_VARIANTS: tuple[type[EmailConfig], type[OpsGenieConfig], type[WebhookConfig]] = (
    EmailConfig,
    OpsGenieConfig,
    WebhookConfig,
)


def channel_config_from_spec(channel: AlertChannel) -> ChannelConfig:
    """Pick the single provider variant configured in the spec.

    Raises:
        ChannelSpecError: If no variant or more than one variant is configured
    """
    present = [variant for variant in CHANNEL_VARIANTS if channel.spec.get(variant.spec_key)]
    if not present:
        keys = ", ".join(variant.spec_key for variant in CHANNEL_VARIANTS)
        raise ChannelSpecError(f"one of {keys} must be configured")
    if len(present) > 1:
        keys = ", ".join(variant.spec_key for variant in present)
        raise ChannelSpecError(f"only one channel type may be configured, found: {keys}")

    variant = present[0]
    return variant.from_spec(channel.spec[variant.spec_key], channel)


@dataclass
class ChannelPayload:
    """Fully resolved request body for the Checkly alert channel API."""

    channel_type: str
    config: dict[str, Any]
    send_recovery: bool = True
    send_failure: bool = True
    send_degraded: bool = False
    ssl_expiry: bool = False
    ssl_expiry_threshold: int = 30

    def to_api(self) -> dict[str, Any]:
        return {
            "type": self.channel_type,
            "config": self.config,
            "sendRecovery": self.send_recovery,
            "sendFailure": self.send_failure,
            "sendDegraded": self.send_degraded,
            "sslExpiry": self.ssl_expiry,
            "sslExpiryThreshold": self.ssl_expiry_threshold,
        }


def build_channel_payload(channel: AlertChannel, secrets: SecretSource) -> ChannelPayload:
    """Create the Checkly payload for an AlertChannel, resolving its secrets.

    Args:
        channel: The AlertChannel being reconciled
        secrets: Source used to resolve secret references

    Returns:
        Resolved payload

    Raises:
        ChannelSpecError: If the spec is invalid
        NotFoundError: If a referenced secret or field is missing or empty
    """
    spec = channel.spec
    channel_config = channel_config_from_spec(channel)
    return ChannelPayload(
        channel_type=channel_config.channel_type,
        config=channel_config.resolve(secrets),
        send_recovery=spec.get("sendRecovery", True),
        send_failure=spec.get("sendFailure", True),
        send_degraded=spec.get("sendDegraded", False),
        ssl_expiry=spec.get("sslExpiry", False),
        ssl_expiry_threshold=int(spec.get("sslExpiryThreshold", 30)),
    )
