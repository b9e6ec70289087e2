"""Main entry point for the Logstash exporter."""
import argparse
import logging
import signal
import sys
from typing import List, Tuple

from prometheus_client import CollectorRegistry

from logstash_exporter.collector import SelfMetrics, StatsCollector
from logstash_exporter.config import Config, load_config
from logstash_exporter.exporter import LogstashExporter
from logstash_exporter.flattener import TreeFlattener
from logstash_exporter.web import ExporterAPI


def setup_logging(log_level: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Reduce noise from some libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def build_exporters(config: Config) -> Tuple[CollectorRegistry, List[LogstashExporter]]:
    """
    Create one exporter per Logstash host and a registry serving all of them.

    With several hosts every sample carries an `instance` label so the
    instances' series stay apart; a single host gets no extra label.
    """
    namespace = config.global_.namespace
    flattener = TreeFlattener(
        namespace=namespace,
        field_markers=config.global_.field_markers,
        max_depth=config.global_.max_depth
    )

    hosts = config.logstash.hosts
    exporters = [
        LogstashExporter(
            host,
            config.logstash.timeout_s,
            flattener,
            labels={"instance": host} if len(hosts) > 1 else None
        )
        for host in hosts
    ]

    # The stats collector goes first so a scrape updates the self-metrics
    # before they are rendered in the same exposition.
    registry = CollectorRegistry()
    registry.register(StatsCollector(exporters, up_name=flattener.metric_name("up")))
    self_metrics = SelfMetrics(registry=registry, prefix=f"{namespace}_")
    for exporter in exporters:
        exporter.self_metrics = self_metrics

    return registry, exporters


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Logstash Exporter - Expose Logstash node stats to Prometheus"
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to configuration YAML file"
    )
    parser.add_argument(
        "--logstash.host",
        dest="hosts",
        action="append",
        help="Host address of logstash server. Multiple times for multi-instances."
    )
    parser.add_argument(
        "--logstash.timeout",
        dest="timeout",
        type=float,
        help="Timeout in seconds to get stats from logstash server."
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        help="Address to listen on for web interface and telemetry."
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="telemetry_path",
        help="Path under which to expose metrics."
    )
    return parser.parse_args(argv)


def cli_overrides(args: argparse.Namespace) -> dict:
    """Command-line flags as a nested config override."""
    overrides = {"logstash": {}, "web": {}}
    if args.hosts:
        overrides["logstash"]["hosts"] = args.hosts
    if args.timeout is not None:
        overrides["logstash"]["timeout_s"] = args.timeout
    if args.listen_address:
        overrides["web"]["listen_address"] = args.listen_address
    if args.telemetry_path:
        overrides["web"]["telemetry_path"] = args.telemetry_path
    return {section: values for section, values in overrides.items() if values}


def main(argv=None):
    """Main function."""
    args = parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config, overrides=cli_overrides(args))
        host, port = config.web.bind()
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config.global_.log_level)
    logger = logging.getLogger(__name__)

    logger.info("Logstash Exporter")
    if args.config:
        logger.info(f"Configuration loaded from: {args.config}")
    logger.info(f"Logstash hosts: {', '.join(config.logstash.hosts)}")
    logger.info(f"Fetch timeout: {config.logstash.timeout_s}s")

    registry, exporters = build_exporters(config)
    api = ExporterAPI(registry, exporters, telemetry_path=config.web.telemetry_path)

    # Setup signal handlers
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(f"Listening on {host}:{port}, metrics at {config.web.telemetry_path}")
    try:
        api.run(host=host, port=port)
    except Exception as e:
        logger.error(f"HTTP server error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
