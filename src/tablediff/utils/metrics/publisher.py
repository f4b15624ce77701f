"""
Metrics publisher for Prometheus HTTP server.

Starts and tracks the Prometheus metrics HTTP server that exposes
metrics on the /metrics endpoint while a run is in progress.
"""

import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """
    Publishes metrics to Prometheus

    Starts an HTTP server that exposes metrics on /metrics endpoint.
    """

    def __init__(
        self,
        port: int = 9091,
        registry: Optional[CollectorRegistry] = None,
    ):
        """
        Initialize metrics publisher

        Args:
            port: Port to expose metrics on (default: 9091)
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.port = port
        self.registry = registry or REGISTRY
        self._server_started = False

    def start(self) -> None:
        """Start the metrics HTTP server"""
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            if "Address already in use" in str(e):
                raise RuntimeError(
                    f"Metrics server port {self.port} is already in use. "
                    f"Stop the conflicting process or use a different port."
                ) from e
            raise

        self._server_started = True
        logger.info(f"Metrics server started on port {self.port}")

    def is_started(self) -> bool:
        """Check if metrics server is running"""
        return self._server_started
