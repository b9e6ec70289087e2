"""Decoding of the Logstash node stats payload."""
import json
from typing import Any, Dict

from logstash_exporter.errors import DecodeError


def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant: {name}")


def decode_stats(payload: bytes) -> Dict[str, Any]:
    """
    Parse a raw node stats payload into a tree of JSON values.

    Numbers are decoded as floats, so every numeric leaf of the tree is a
    float. Strings, lists and nested dicts are left as decoded.

    Args:
        payload: Raw response body

    Returns:
        The top-level statistics mapping

    Raises:
        DecodeError: Malformed or too deeply nested JSON, or a top-level
            value that is not an object
    """
    try:
        text = payload.decode("utf-8")
        tree = json.loads(
            text,
            parse_int=float,
            parse_constant=_reject_constant,
        )
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Malformed stats payload: {e}") from e
    except RecursionError as e:
        raise DecodeError("Stats payload is nested too deeply to decode") from e

    if not isinstance(tree, dict):
        raise DecodeError(
            f"Stats payload must be a JSON object, got {type(tree).__name__}"
        )

    return tree
