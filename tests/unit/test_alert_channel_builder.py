"""Tests for the alert channel payload builder."""

from __future__ import annotations

import pytest

from checkly_operator.builders.alert_channel import (
    EmailConfig,
    OpsGenieConfig,
    WebhookConfig,
    build_channel_payload,
    channel_config_from_spec,
)
from checkly_operator.models import AlertChannel
from checkly_operator.utils.errors import ChannelSpecError, NotFoundError
from checkly_operator.utils.secrets import SecretRef

from conftest import FakeSecrets, make_body


def _channel(spec, namespace="default"):
    return AlertChannel.from_body(make_body(spec=spec, namespace=namespace))


class TestChannelConfigFromSpec:
    """Test cases for picking the configured variant."""

    def test_email(self):
        """Test parsing an email channel."""
        config = channel_config_from_spec(_channel({"email": {"address": "ops@example.com"}}))

        assert config == EmailConfig(address="ops@example.com")

    def test_email_requires_address(self):
        """Test that an email channel without address is rejected."""
        with pytest.raises(ChannelSpecError, match="email.address"):
            channel_config_from_spec(_channel({"email": {"address": ""}}))

    def test_opsgenie(self):
        """Test parsing an OpsGenie channel."""
        spec = {"opsgenie": {"apiSecret": {"name": "og", "fieldPath": "key"}, "region": "US", "priority": "P1"}}

        config = channel_config_from_spec(_channel(spec, namespace="team-a"))

        assert isinstance(config, OpsGenieConfig)
        assert config.name == "my-channel"
        assert config.api_key_ref == SecretRef(namespace="team-a", name="og", field_path="key")
        assert config.region == "US"
        assert config.priority == "P1"

    def test_opsgenie_requires_secret(self):
        """Test that an OpsGenie channel without apiSecret is rejected."""
        with pytest.raises(ChannelSpecError, match="apiSecret"):
            channel_config_from_spec(_channel({"opsgenie": {"region": "EU"}}))

    def test_webhook_defaults(self):
        """Test the defaults applied to a minimal webhook."""
        config = channel_config_from_spec(_channel({"webhook": {"url": "https://example.com"}}))

        assert isinstance(config, WebhookConfig)
        assert config.name == "my-channel"
        assert config.method == "POST"
        assert config.headers == []
        assert config.secret_ref is None

    def test_webhook_requires_url(self):
        """Test that a webhook without url is rejected."""
        with pytest.raises(ChannelSpecError, match="webhook.url"):
            channel_config_from_spec(_channel({"webhook": {"name": "x"}}))

    def test_no_variant(self):
        """Test that an empty spec is rejected."""
        with pytest.raises(ChannelSpecError, match="must be configured"):
            channel_config_from_spec(_channel({}))

    def test_multiple_variants(self):
        """Test that configuring two channel types is rejected."""
        spec = {"email": {"address": "a@example.com"}, "webhook": {"url": "https://example.com"}}

        with pytest.raises(ChannelSpecError, match="email, webhook"):
            channel_config_from_spec(_channel(spec))

    def test_incomplete_secret_reference(self):
        """Test that a secret reference without fieldPath is rejected."""
        spec = {"webhook": {"url": "https://example.com", "webhookSecret": {"name": "s"}}}

        with pytest.raises(ChannelSpecError, match="fieldPath"):
            channel_config_from_spec(_channel(spec))

    def test_empty_secret_reference_is_ignored(self):
        """Test that an all-empty secret reference means no secret."""
        spec = {"webhook": {"url": "https://example.com", "webhookSecret": {"name": "", "fieldPath": ""}}}

        config = channel_config_from_spec(_channel(spec))

        assert config.secret_ref is None


class TestBuildChannelPayload:
    """Test cases for build_channel_payload."""

    def test_email_payload_defaults(self):
        """Test the notification defaults of the payload."""
        payload = build_channel_payload(_channel({"email": {"address": "ops@example.com"}}), FakeSecrets())

        assert payload.to_api() == {
            "type": "EMAIL",
            "config": {"address": "ops@example.com"},
            "sendRecovery": True,
            "sendFailure": True,
            "sendDegraded": False,
            "sslExpiry": False,
            "sslExpiryThreshold": 30,
        }

    def test_notification_flags(self):
        """Test that notification settings are taken from the spec."""
        spec = {
            "email": {"address": "ops@example.com"},
            "sendRecovery": False,
            "sendFailure": False,
            "sendDegraded": True,
            "sslExpiry": True,
            "sslExpiryThreshold": "14",
        }

        api = build_channel_payload(_channel(spec), FakeSecrets()).to_api()

        assert api["sendRecovery"] is False
        assert api["sendFailure"] is False
        assert api["sendDegraded"] is True
        assert api["sslExpiry"] is True
        assert api["sslExpiryThreshold"] == 14

    def test_webhook_payload(self):
        """Test a fully configured webhook with a signing secret."""
        secrets = FakeSecrets({("default", "hook"): {"secret": "sig"}})
        spec = {
            "webhook": {
                "name": "pager",
                "url": "https://example.com/hook",
                "method": "PUT",
                "webhookType": "WEBHOOK_MSTEAMS",
                "template": "{{ALERT_TITLE}}",
                "headers": [{"key": "X-Team", "value": "ops"}],
                "queryParameters": [{"key": "q", "value": "1", "locked": True}],
                "webhookSecret": {"name": "hook", "fieldPath": "secret"},
            }
        }

        api = build_channel_payload(_channel(spec), secrets).to_api()

        assert api["type"] == "WEBHOOK"
        assert api["config"] == {
            "name": "pager",
            "url": "https://example.com/hook",
            "method": "PUT",
            "template": "{{ALERT_TITLE}}",
            "headers": [{"key": "X-Team", "value": "ops", "locked": False}],
            "queryParameters": [{"key": "q", "value": "1", "locked": True}],
            "webhookType": "WEBHOOK_MSTEAMS",
            "webhookSecret": "sig",
        }

    def test_missing_secret(self):
        """Test that an unresolvable secret fails the build."""
        spec = {"opsgenie": {"apiSecret": {"name": "og", "fieldPath": "key"}}}

        with pytest.raises(NotFoundError, match="'og'"):
            build_channel_payload(_channel(spec), FakeSecrets())
