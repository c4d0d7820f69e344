"""Upstream Reka API client."""

from .reka_client import (
    NO_RESPONSE_TEXT,
    RekaClient,
    RekaClientError,
    UpstreamHTTPError,
    UpstreamResponseError,
    UpstreamTransportError,
)

__all__ = [
    "RekaClient",
    "RekaClientError",
    "UpstreamHTTPError",
    "UpstreamTransportError",
    "UpstreamResponseError",
    "NO_RESPONSE_TEXT",
]
