"""Errors raised while scraping a Logstash instance.

All of them are local to one scrape cycle: the exporter logs them, counts
them in the self-metrics and keeps serving.
"""


class ExporterError(Exception):
    """Base class for scrape errors."""

    kind = "error"


class UpstreamConnectionError(ExporterError):
    """Logstash could not be reached (refused, DNS failure, timeout)."""

    kind = "connection"


class ProtocolError(ExporterError):
    """Logstash answered with a non-2xx HTTP status."""

    kind = "protocol"

    def __init__(self, uri: str, status_code: int):
        super().__init__(f"Unexpected HTTP status {status_code} from {uri}")
        self.uri = uri
        self.status_code = status_code


class DecodeError(ExporterError):
    """The statistics payload is not a JSON object."""

    kind = "decode"


class ShapeError(ExporterError):
    """A subtree does not have the mapping/list shape it should have."""

    kind = "shape"
