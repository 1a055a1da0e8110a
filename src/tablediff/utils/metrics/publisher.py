"""
Scrape endpoint for long-running diffs.

A fingerprint or diff over a large table can run for hours; exposing the
engine counters on /metrics while it runs lets Prometheus follow rows
hashed and partitions processed. The endpoint lives for one CLI run and
is shut down when the command returns.
"""

import errno
import logging

from prometheus_client import REGISTRY, CollectorRegistry, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """Serves one registry over HTTP for the duration of a run."""

    def __init__(
        self,
        port: int = 9091,
        addr: str = "0.0.0.0",
        registry: CollectorRegistry | None = None,
    ):
        """
        Args:
            port: Port to serve /metrics on (default: 9091)
            addr: Interface to bind (default: all interfaces)
            registry: Registry to expose (default: global REGISTRY, where
                the engine metrics live)
        """
        self.port = port
        self.addr = addr
        self.registry = registry or REGISTRY
        self._server = None
        self._thread = None

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def url(self) -> str:
        return f"http://{self.addr}:{self.port}/metrics"

    def start(self) -> None:
        """
        Start serving in a daemon thread. Starting twice is a no-op.

        Raises:
            RuntimeError: If the port is taken by another process
        """
        if self.running:
            logger.warning(f"Metrics endpoint already serving at {self.url}")
            return

        try:
            self._server, self._thread = start_http_server(
                self.port, addr=self.addr, registry=self.registry
            )
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                raise RuntimeError(f"Cannot serve metrics: port {self.port} is already in use") from e
            raise

        logger.info(f"Serving engine metrics at {self.url}")

    def stop(self) -> None:
        """Shut the endpoint down; a final scrape after the run is not guaranteed."""
        if not self.running:
            return

        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=5)
        self._server = None
        self._thread = None
        logger.info(f"Stopped metrics endpoint on port {self.port}")
