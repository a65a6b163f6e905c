"""
Process-wide settings and the response size guard.

The maximum JSON size is set once at configuration time and read by every
parse. It guards against untrusted servers returning unbounded bodies.
"""

from __future__ import annotations

from typing import Any

import httpx

from vc_graph.exceptions import ConfigurationError, UnsafeResponseError

DEFAULT_MAX_JSON_SIZE = 10 * 1024 * 1024

_settings: dict[str, Any] = {
    "max_json_size": DEFAULT_MAX_JSON_SIZE,
}


def set_max_json_size(size: int | None) -> None:
    """Set the largest JSON payload, in bytes, that will be parsed.

    Args:
        size: A positive integer, or None to disable the limit.

    Raises:
        ConfigurationError: If size is not a positive integer or None.
    """
    if size is not None and (
        isinstance(size, bool) or not isinstance(size, int) or size <= 0
    ):
        raise ConfigurationError("set_max_json_size: size must be a positive integer.")
    _settings["max_json_size"] = size


def get_max_json_size() -> int | None:
    """Return the configured maximum JSON size (None means unlimited)."""
    return _settings["max_json_size"]


def check_payload_size(size: int) -> None:
    """Reject an already-buffered payload larger than the configured maximum."""
    max_size = get_max_json_size()
    if max_size is not None and size > max_size:
        raise UnsafeResponseError(max_size, str(size))


def check_response_size(response: httpx.Response) -> None:
    """Check the declared length of a response before its body is read.

    The check only looks at the Content-Length header, so it can run on a
    streamed response without buffering it. When a maximum is configured, a
    missing header is treated as unsafe.

    Args:
        response: The HTTP response about to be parsed.

    Raises:
        UnsafeResponseError: If the body is missing a length or is too large.
    """
    max_size = get_max_json_size()
    if max_size is None:
        return

    content_length = response.headers.get("Content-Length")
    try:
        declared = int(content_length) if content_length is not None else None
    except ValueError:
        declared = None

    if declared is None or declared > max_size:
        raise UnsafeResponseError(max_size, content_length)
