"""Checkly REST API client."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from ... import metrics
from ...constants import ALERT_CHANNELS_PATH, DEFAULT_CHECKLY_API_URL
from ...tracing import trace_span
from ...utils.errors import RemoteServiceError, sanitize_error_message
from ...utils.rate_limit import rate_limit_checkly

logger = logging.getLogger(__name__)


class ChecklyClient:
    """Alert channel operations against the Checkly public API."""

    def __init__(
        self,
        api_key: str,
        account_id: str,
        base_url: str = DEFAULT_CHECKLY_API_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the Checkly client.

        Args:
            api_key: Checkly API key
            account_id: Checkly account ID
            base_url: API base URL
            timeout: Per-request timeout in seconds
            session: Optional preconfigured HTTP session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "X-Checkly-Account": account_id,
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def create_alert_channel(self, payload: dict[str, Any]) -> int:
        """Create an alert channel and return its ID."""
        body = self._request("create", "POST", ALERT_CHANNELS_PATH, payload)
        try:
            return int(body["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError("create", None, "response did not contain an alert channel id") from e

    def update_alert_channel(self, channel_id: int, payload: dict[str, Any]) -> None:
        """Update an existing alert channel."""
        self._request("update", "PUT", f"{ALERT_CHANNELS_PATH}/{channel_id}", payload)

    def delete_alert_channel(self, channel_id: int) -> None:
        """Delete an alert channel."""
        self._request("delete", "DELETE", f"{ALERT_CHANNELS_PATH}/{channel_id}")

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Issue a single request and translate failures into RemoteServiceError."""
        url = f"{self.base_url}{path}"
        start_time = time.time()
        with trace_span(f"checkly.{operation}_alert_channel", attributes={"http.method": method, "http.url": url}):
            try:
                response = rate_limit_checkly(self.session.request)(
                    method,
                    url,
                    json=payload,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                metrics.api_call_total.labels(api_type="checkly", operation=operation, result="error").inc()
                raise RemoteServiceError(operation, None, sanitize_error_message(str(e))) from e
            finally:
                duration = time.time() - start_time
                metrics.api_call_duration_seconds.labels(api_type="checkly", operation=operation).observe(duration)

            if not response.ok:
                metrics.api_call_total.labels(api_type="checkly", operation=operation, result="error").inc()
                raise RemoteServiceError(operation, response.status_code, self._error_message(response))

            metrics.api_call_total.labels(api_type="checkly", operation=operation, result="success").inc()
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise RemoteServiceError(operation, response.status_code, "response was not valid JSON") from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return sanitize_error_message(response.text[:200] or response.reason or "")
        if isinstance(body, dict):
            return sanitize_error_message(str(body.get("message") or body.get("error") or body))
        return sanitize_error_message(str(body))
