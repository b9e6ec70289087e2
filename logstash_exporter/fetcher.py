"""HTTP fetching of the Logstash node stats endpoint."""
import logging

import requests
from prometheus_client import Gauge

from logstash_exporter.errors import ProtocolError, UpstreamConnectionError

logger = logging.getLogger(__name__)

STATS_PATH = "/_node/stats"


def stats_uri(host: str) -> str:
    """Build the node stats URI for a host[:port] target."""
    return f"http://{host}{STATS_PATH}"


class StatsFetcher:
    """Fetches raw node stats and tracks whether the endpoint is usable."""

    def __init__(self, uri: str, timeout: float):
        self.uri = uri
        self.timeout = timeout

        # Not registered anywhere: the collector reads it and emits the
        # `up` sample itself, next to the flattened statistics.
        self.up = Gauge(
            "up",
            "Was the last scrape of logstash successful",
            registry=None
        )

    @property
    def is_up(self) -> float:
        """Current liveness value (1.0 or 0.0)."""
        return self.up._value.get()

    def fetch(self) -> bytes:
        """
        GET the stats endpoint once.

        Sets the liveness gauge exactly once: 1 when a 2xx response was read,
        0 on any transport failure or non-2xx status.

        Raises:
            UpstreamConnectionError: Connection refused, DNS failure, timeout
            ProtocolError: Non-2xx HTTP status
        """
        try:
            response = requests.get(self.uri, timeout=self.timeout)
            body = response.content
        except requests.RequestException as e:
            self.up.set(0)
            raise UpstreamConnectionError(f"Failed to fetch {self.uri}: {e}") from e

        if not 200 <= response.status_code < 300:
            self.up.set(0)
            raise ProtocolError(self.uri, response.status_code)

        self.up.set(1)
        logger.debug(f"Fetched {len(body)} bytes from {self.uri}")
        return body
