"""Prometheus collection of flattened Logstash statistics."""
import logging
from collections import OrderedDict
from typing import Iterable, List, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client.core import Metric

from logstash_exporter.exporter import LogstashExporter
from logstash_exporter.naming import is_valid_metric_name, validate_label_names
from logstash_exporter.series import Sample

logger = logging.getLogger(__name__)

UP_HELP = "Was the last scrape of logstash successful"


class StatsCollector:
    """
    Custom collector that scrapes every configured instance on collect().

    Metric families are rebuilt from scratch on each call because their
    names and label sets follow whatever the statistics document contains.
    Nothing here is registered as a long-lived metric object.
    """

    def __init__(self, exporters: List[LogstashExporter], up_name: Optional[str] = None):
        self.exporters = exporters
        self.up_name = up_name

    def collect(self) -> Iterable[Metric]:
        """Scrape all instances and yield one gauge family per metric name."""
        samples: List[Sample] = []
        for exporter in self.exporters:
            samples.extend(exporter.scrape())

        return build_families(samples, up_name=self.up_name)


def build_families(samples: Iterable[Sample], up_name: Optional[str] = None) -> List[Metric]:
    """
    Group samples into gauge families by name.

    Invalid names and repeated (name, labels) pairs are dropped so a
    document with duplicate plugin ids cannot produce a broken exposition.
    """
    families: "OrderedDict[str, Metric]" = OrderedDict()
    seen = set()

    for sample in samples:
        if not is_valid_metric_name(sample.name):
            logger.warning(f"Dropping sample with invalid metric name '{sample.name}'")
            continue

        if not validate_label_names(sample.labels):
            logger.warning(f"Dropping sample {sample.name} with invalid label names {list(sample.labels)}")
            continue

        key = sample.series_key()
        if key in seen:
            logger.debug(f"Dropping duplicate sample {key}")
            continue
        seen.add(key)

        family = families.get(sample.name)
        if family is None:
            family = Metric(sample.name, _help_text(sample.name, up_name), "gauge")
            families[sample.name] = family
        family.add_sample(sample.name, sample.labels, sample.value)

    return list(families.values())


def _help_text(name: str, up_name: Optional[str]) -> str:
    if name == up_name:
        return UP_HELP
    return f"Logstash statistic {name}"


class SelfMetrics:
    """Self-monitoring metrics for the exporter."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, prefix: str = ""):
        if registry is None:
            registry = CollectorRegistry()

        self.scrape_duration_seconds = Histogram(
            f"{prefix}exporter_scrape_duration_seconds",
            "Duration of a Logstash scrape in seconds",
            ["host"],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry
        )

        self.scrape_errors_total = Counter(
            f"{prefix}exporter_scrape_errors_total",
            "Total number of failed Logstash scrapes",
            ["host", "kind"],
            registry=registry
        )

        self.samples = Gauge(
            f"{prefix}exporter_samples",
            "Number of samples produced by the last scrape",
            ["host"],
            registry=registry
        )

    def record_scrape(self, host: str, duration: float, sample_count: int):
        """Record a finished scrape."""
        self.scrape_duration_seconds.labels(host=host).observe(duration)
        self.samples.labels(host=host).set(sample_count)

    def record_scrape_error(self, host: str, kind: str):
        """Record a failed scrape."""
        self.scrape_errors_total.labels(host=host, kind=kind).inc()

