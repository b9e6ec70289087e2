"""Flattening of the node stats tree into labeled samples.

The node stats document is a nested mapping. Numeric leaves become gauge
samples named after their path, e.g. {"jvm": {"uptime_in_millis": 1}}
becomes logstash_jvm_uptime_in_millis. Plugin arrays and per-field maps are
turned into label dimensions instead of name segments, so plugin ids and
field names never end up in a metric name.
"""
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from logstash_exporter.errors import ShapeError
from logstash_exporter.naming import join_name, sanitize_segment, with_labels
from logstash_exporter.series import Sample

logger = logging.getLogger(__name__)

TOP_LEVEL_SECTIONS = ("jvm", "events", "process", "reloads")
PIPELINE_SECTIONS = ("events", "reloads", "queue", "dead_letter_queue")
PLUGIN_SECTIONS = ("inputs", "filters", "outputs")
PLUGIN_IDENTITY_KEYS = ("id", "name")

DEFAULT_FIELD_MARKERS = ("patterns_per_field",)
DEFAULT_MAX_DEPTH = 64

_RFC3339 = re.compile(
    r'^(?P<date>\d{4}-\d{2}-\d{2})[Tt]'
    r'(?P<time>\d{2}:\d{2}:\d{2})'
    r'(?:\.(?P<fraction>\d+))?'
    r'(?P<offset>[Zz]|[+-]\d{2}:\d{2})$'
)


def parse_rfc3339(text: str) -> Optional[float]:
    """
    Convert an RFC 3339 date-time string to Unix epoch seconds.

    Returns None for anything that is not a complete RFC 3339 date-time,
    including bare dates and numeric strings.
    """
    match = _RFC3339.match(text)
    if not match:
        return None

    fraction = (match.group("fraction") or "")[:6].ljust(6, "0")
    offset = match.group("offset")
    if offset in ("Z", "z"):
        offset = "+00:00"

    try:
        parsed = datetime.fromisoformat(
            f"{match.group('date')}T{match.group('time')}.{fraction}{offset}"
        )
    except ValueError:
        return None

    return parsed.astimezone(timezone.utc).timestamp()


def coerce_number(value: Any) -> Optional[float]:
    """
    Coerce a stats leaf to a finite float, or None when it is not numeric.

    Numbers are taken as-is. Strings count only when they hold an RFC 3339
    timestamp, which is exported as epoch seconds. Booleans, null, lists and
    mappings are never numeric.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        number = parse_rfc3339(value)
        if number is None:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    return number


class TreeFlattener:
    """Walks a decoded node stats tree and yields samples."""

    def __init__(
        self,
        namespace: str = "logstash",
        field_markers: Sequence[str] = DEFAULT_FIELD_MARKERS,
        max_depth: int = DEFAULT_MAX_DEPTH
    ):
        self.namespace = namespace
        self.field_markers = frozenset(field_markers)
        self.max_depth = max_depth

    def metric_name(self, path: str) -> str:
        """Prefix a flattened path with the namespace."""
        return join_name(self.namespace, path)

    def flatten(
        self,
        path: str,
        node: Any,
        labels: Dict[str, str],
        depth: int = 0
    ) -> Iterator[Sample]:
        """
        Flatten one subtree.

        Args:
            path: Underscore-joined path of the node, without namespace
            node: Decoded subtree
            labels: Labels for every sample below this node; never mutated
            depth: Current recursion depth

        Yields:
            One sample per numeric leaf reachable from node
        """
        value = coerce_number(node)
        if value is not None:
            yield Sample(self.metric_name(path), dict(labels), value)
            return

        if not isinstance(node, dict):
            # Lists and non-numeric strings carry no samples
            return

        if depth >= self.max_depth:
            logger.warning(
                f"Stats tree deeper than {self.max_depth} levels at '{path}', "
                f"skipping subtree"
            )
            return

        for key, child in node.items():
            child_path = join_name(path, sanitize_segment(key))
            if key in self.field_markers:
                try:
                    yield from self.collect_fields(child_path, child, labels)
                except ShapeError as e:
                    logger.warning(str(e))
                continue
            yield from self.flatten(child_path, child, labels, depth + 1)

    def collect_fields(
        self,
        path: str,
        node: Any,
        labels: Dict[str, str]
    ) -> Iterator[Sample]:
        """
        Turn a per-field map into samples labeled by field name.

        {"message": 3} under path p yields p{field="message"} 3. When a field
        maps to a dict, each numeric entry yields p_<entry>{field=...}.

        Raises:
            ShapeError: node is not a mapping
        """
        if not isinstance(node, dict):
            raise ShapeError(
                f"Expected a per-field mapping at '{path}', got {type(node).__name__}"
            )

        name = self.metric_name(path)
        for field_name, field_stats in node.items():
            field_labels = with_labels(labels, field=str(field_name))

            value = coerce_number(field_stats)
            if value is not None:
                yield Sample(name, field_labels, value)
                continue

            if not isinstance(field_stats, dict):
                continue

            for entry, entry_value in field_stats.items():
                value = coerce_number(entry_value)
                if value is None:
                    continue
                yield Sample(
                    join_name(name, sanitize_segment(entry)),
                    dict(field_labels),
                    value
                )

    def collect_plugins(
        self,
        path: str,
        section: str,
        container: Any,
        labels: Dict[str, str],
        pipeline: Optional[str] = None,
        depth: int = 0
    ) -> Iterator[Sample]:
        """
        Flatten one plugin section (inputs, filters or outputs).

        Plugin `id` and `name` become labels and are removed from the plugin
        stats before flattening, so they never show up in metric names.
        `depth` is the depth of the plugins container in the whole document.

        Raises:
            ShapeError: container is not a mapping holding a list under section
        """
        if not isinstance(container, dict):
            raise ShapeError(
                f"Expected plugins mapping at '{path}', got {type(container).__name__}"
            )

        plugins = container.get(section)
        if not isinstance(plugins, list):
            raise ShapeError(
                f"Expected a list of {section} at '{path}', got {type(plugins).__name__}"
            )

        section_path = join_name(path, section)
        for index, plugin in enumerate(plugins):
            if not isinstance(plugin, dict):
                logger.warning(
                    f"Skipping {section} entry {index} at '{path}': "
                    f"expected a mapping, got {type(plugin).__name__}"
                )
                continue

            plugin_labels = with_labels(
                labels,
                id=_label_value(plugin.get("id")),
                name=_label_value(plugin.get("name"))
            )
            if pipeline is not None:
                plugin_labels["pipeline"] = pipeline

            plugin_stats = {
                k: v for k, v in plugin.items() if k not in PLUGIN_IDENTITY_KEYS
            }
            # container -> section list -> plugin
            yield from self.flatten(section_path, plugin_stats, plugin_labels, depth + 2)

    def collect_pipeline(
        self,
        pipeline_name: Optional[str],
        data: Any,
        labels: Dict[str, str],
        depth: int = 1
    ) -> Iterator[Sample]:
        """
        Flatten one pipeline body found at the given depth of the document.

        A pipeline name is given only for documents with a `pipelines`
        mapping; it is attached as the `pipeline` label on every sample.

        Raises:
            ShapeError: data is not a mapping
        """
        if not isinstance(data, dict):
            where = f"pipeline '{pipeline_name}'" if pipeline_name is not None else "pipeline"
            raise ShapeError(
                f"Wrong format of {where} statistics: expected a mapping, "
                f"got {type(data).__name__}"
            )

        pipeline_labels = dict(labels)
        if pipeline_name is not None:
            pipeline_labels["pipeline"] = pipeline_name

        for section in PIPELINE_SECTIONS:
            if section in data:
                yield from self.flatten(
                    join_name("pipeline", section), data[section], pipeline_labels,
                    depth + 1
                )

        if "plugins" not in data:
            return

        for section in PLUGIN_SECTIONS:
            try:
                yield from self.collect_plugins(
                    "pipeline_plugins",
                    section,
                    data["plugins"],
                    labels,
                    pipeline=pipeline_name,
                    depth=depth + 1
                )
            except ShapeError as e:
                logger.warning(str(e))

    def collect_stats(
        self,
        stats: Dict[str, Any],
        labels: Optional[Dict[str, str]] = None
    ) -> List[Sample]:
        """
        Flatten a whole node stats document.

        Args:
            stats: Decoded top-level document
            labels: Labels for every sample (e.g. instance), may be empty

        Returns:
            Samples of all sections; sections with a wrong shape are logged
            and skipped without affecting the others
        """
        labels = dict(labels or {})
        samples: List[Sample] = []

        for section in TOP_LEVEL_SECTIONS:
            if section in stats:
                samples.extend(self.flatten(section, stats[section], labels, depth=1))

        for pipeline_name, data in self._pipelines(stats):
            try:
                depth = 1 if pipeline_name is None else 2
                samples.extend(self.collect_pipeline(pipeline_name, data, labels, depth))
            except ShapeError as e:
                logger.warning(str(e))

        return samples

    def _pipelines(self, stats: Dict[str, Any]) -> Iterable:
        """(name, body) pairs; name is None in single-pipeline documents."""
        if "pipelines" in stats:
            pipelines = stats["pipelines"]
            if not isinstance(pipelines, dict):
                logger.warning(
                    f"Wrong format of pipelines statistics: expected a mapping, "
                    f"got {type(pipelines).__name__}"
                )
                return []
            return [(str(name), data) for name, data in pipelines.items()]

        if "pipeline" in stats:
            return [(None, stats["pipeline"])]

        return []


def _label_value(value: Any) -> str:
    """Plugin identity as a label value; missing values become ''."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
