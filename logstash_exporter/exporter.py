"""Per-instance scrape orchestration."""
import logging
import time
from typing import Dict, List, Optional

from logstash_exporter.decoder import decode_stats
from logstash_exporter.errors import ExporterError
from logstash_exporter.fetcher import StatsFetcher, stats_uri
from logstash_exporter.flattener import TreeFlattener
from logstash_exporter.series import Sample

logger = logging.getLogger(__name__)


class LogstashExporter:
    """Scrapes one Logstash instance: fetch, decode, flatten, add `up`."""

    def __init__(
        self,
        host: str,
        timeout: float,
        flattener: TreeFlattener,
        labels: Optional[Dict[str, str]] = None,
        fetcher: Optional[StatsFetcher] = None,
        self_metrics=None
    ):
        """
        Initialize exporter.

        Args:
            host: Logstash host[:port]
            timeout: Fetch timeout in seconds
            flattener: Shared, stateless tree flattener
            labels: Labels added to every sample of this instance
            fetcher: Fetcher override, built from host when omitted
            self_metrics: Optional SelfMetrics for scrape bookkeeping
        """
        self.host = host
        self.flattener = flattener
        self.labels = dict(labels or {})
        self.fetcher = fetcher or StatsFetcher(stats_uri(host), timeout)
        self.self_metrics = self_metrics
        self.scrape_count = 0

    @property
    def up(self) -> float:
        """Liveness of the most recent scrape, for status reporting."""
        return self.fetcher.is_up

    def up_sample(self, up: float) -> Sample:
        return Sample(self.flattener.metric_name("up"), dict(self.labels), up)

    def scrape(self) -> List[Sample]:
        """
        Run one scrape cycle.

        Never raises for upstream problems: errors are logged and the result
        then holds only the `up` sample (plus whatever sections flattened
        cleanly, for shape problems).
        """
        start = time.time()
        samples: List[Sample] = []
        # Liveness of this scrape's own fetch; the shared gauge may hold
        # a concurrent scrape's result.
        up = 0.0

        try:
            payload = self.fetcher.fetch()
            up = 1.0
            stats = decode_stats(payload)
            samples = self.flattener.collect_stats(stats, self.labels)
        except ExporterError as e:
            logger.error(f"Scrape of {self.host} failed: {e}")
            if self.self_metrics:
                self.self_metrics.record_scrape_error(self.host, e.kind)

        samples.append(self.up_sample(up))
        self.scrape_count += 1

        if self.self_metrics:
            self.self_metrics.record_scrape(self.host, time.time() - start, len(samples))

        logger.debug(f"Scrape of {self.host}: {len(samples)} samples")
        return samples
