"""
API key resolution for tool invocations.

The process-wide key is the default; a per-request ``Authorization: Bearer``
header overrides it.
"""

from typing import Any, Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "

MISSING_CREDENTIAL_MESSAGE = (
    "REKA_API_KEY must be provided via environment variable 'REKA_API_KEY' "
    "or Authorization header"
)


class MissingCredentialError(Exception):
    """No API key could be resolved for an invocation."""

    def __init__(self, message: str = MISSING_CREDENTIAL_MESSAGE):
        super().__init__(message)
        self.message = message


def _authorization_header(headers: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not headers:
        return None

    raw = headers.get("Authorization")
    if raw is None:
        raw = headers.get("authorization")

    if isinstance(raw, (list, tuple)):
        raw = raw[0] if raw else None

    return raw if isinstance(raw, str) else None


def resolve_api_key(
    default_key: Optional[str],
    headers: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Resolve the API key for a single invocation.

    Args:
        default_key: Key from process-wide configuration
        headers: Transport headers of the current invocation

    Returns:
        The resolved API key

    Raises:
        MissingCredentialError: If neither source yields a non-empty key
    """
    api_key = default_key

    auth_header = _authorization_header(headers)
    if auth_header is not None and auth_header.startswith(BEARER_PREFIX):
        api_key = auth_header[len(BEARER_PREFIX):]
        logger.debug("API key found in Authorization header")

    if not api_key:
        logger.error("API key not found in environment or Authorization header")
        raise MissingCredentialError()

    return api_key
