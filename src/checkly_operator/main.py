"""Main entry point for the Checkly Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .handlers.alert_channel import build_reconciler, install_reconciler, request_shutdown
from .tracing import initialize_tracing

logger = logging.getLogger(__name__)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    config = OperatorConfig.from_env()

    structured_logging.setup_structured_logging(config.log_level)

    settings.posting.level = logging.WARNING
    settings.networking.request_timeout = config.k8s_request_timeout
    settings.execution.max_workers = config.max_workers

    initialize_tracing()

    install_reconciler(build_reconciler(config), config.max_immediate_requeues)

    # Metrics and health checks share one port
    health.start_http_server(config.metrics_port)
    health.mark_ready()

    logger.info(
        f"Checkly operator started (domain={config.controller_domain}, "
        f"finalizer={config.finalizer}, metrics_port={config.metrics_port})"
    )


@kopf.on.cleanup()
def cleanup(**_: Any) -> None:
    """Stop in-flight reconciles on operator shutdown."""
    logger.info("Checkly operator shutting down")
    health.mark_not_ready()
    request_shutdown()


def run() -> None:
    """Run the operator until interrupted."""
    config = OperatorConfig.from_env()
    if config.watch_namespace:
        kopf.run(standalone=True, namespaces=[config.watch_namespace])
    else:
        kopf.run(standalone=True, clusterwide=True)
