"""Configuration for the Checkly Operator.

All settings are read from environment variables once at startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .constants import DEFAULT_CHECKLY_API_URL, DEFAULT_CONTROLLER_DOMAIN, finalizer_for


@dataclass
class OperatorConfig:
    """Runtime configuration of the operator."""

    checkly_api_key: str = field(default="", repr=False)  # Never log the API key
    checkly_account_id: str = ""
    checkly_api_url: str = DEFAULT_CHECKLY_API_URL
    checkly_request_timeout: float = 30.0
    k8s_request_timeout: float = 30.0
    controller_domain: str = DEFAULT_CONTROLLER_DOMAIN
    metrics_port: int = 8080
    max_workers: int = 4
    max_immediate_requeues: int = 3
    watch_namespace: str = ""
    log_level: str = "INFO"

    @property
    def finalizer(self) -> str:
        """Finalizer token owned by this deployment."""
        return finalizer_for(self.controller_domain)

    @classmethod
    def from_env(cls) -> "OperatorConfig":
        """Load from environment variables."""
        api_key = os.getenv("CHECKLY_API_KEY", "")
        account_id = os.getenv("CHECKLY_ACCOUNT_ID", "")
        if not api_key or not account_id:
            raise ValueError(
                "CHECKLY_API_KEY and CHECKLY_ACCOUNT_ID environment variables must be set."
            )

        domain = os.getenv("CONTROLLER_DOMAIN", DEFAULT_CONTROLLER_DOMAIN).strip()
        if not domain:
            raise ValueError("CONTROLLER_DOMAIN must not be empty.")

        return cls(
            checkly_api_key=api_key,
            checkly_account_id=account_id,
            checkly_api_url=os.getenv("CHECKLY_API_URL", DEFAULT_CHECKLY_API_URL).rstrip("/"),
            checkly_request_timeout=float(os.getenv("CHECKLY_REQUEST_TIMEOUT", "30.0")),
            k8s_request_timeout=float(os.getenv("K8S_REQUEST_TIMEOUT", "30.0")),
            controller_domain=domain,
            metrics_port=int(os.getenv("METRICS_PORT", "8080")),
            max_workers=int(os.getenv("MAX_WORKERS", "4")),
            max_immediate_requeues=int(os.getenv("MAX_IMMEDIATE_REQUEUES", "3")),
            watch_namespace=os.getenv("WATCH_NAMESPACE", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
