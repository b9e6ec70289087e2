"""Metric name and label helpers."""
import re
from typing import Dict

METRIC_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')
LABEL_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')

_INVALID_CHARS = re.compile(r'[^a-zA-Z0-9_]')


def sanitize_segment(segment: str) -> str:
    """
    Make a source-derived path segment safe for use inside a metric name.

    Every character outside [a-zA-Z0-9_] becomes an underscore, so
    "localhost:9600" turns into "localhost_9600". Label values are never
    passed through here; they keep the original text.
    """
    return _INVALID_CHARS.sub("_", str(segment))


def join_name(*segments: str) -> str:
    """Join non-empty path segments with underscores."""
    return "_".join(s for s in segments if s)


def is_valid_metric_name(name: str) -> bool:
    """Metric names must match [a-zA-Z_][a-zA-Z0-9_]*"""
    return bool(name) and METRIC_NAME_PATTERN.match(name) is not None


def validate_label_names(labels: Dict[str, str]) -> bool:
    """
    Validate label names are Prometheus-safe.

    Label names must match [a-zA-Z_][a-zA-Z0-9_]*
    """
    for name in labels.keys():
        if not LABEL_NAME_PATTERN.match(name):
            return False

    return True


def with_labels(labels: Dict[str, str], **extra: str) -> Dict[str, str]:
    """Return a copy of labels with extra entries added; the input is untouched."""
    merged = dict(labels)
    merged.update(extra)
    return merged
