"""Prometheus exporter for Logstash node statistics."""

__version__ = "0.1.0"
