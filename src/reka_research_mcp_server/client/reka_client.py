"""
Reka API client for MCP server.

Thin wrapper around the Reka chat completions endpoint: builds the request
body, sends it, and extracts the first completion's text.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp
import structlog

from ..config.settings import Config

logger = structlog.get_logger(__name__)

COMPLETIONS_PATH = "/v1/chat/completions"
NO_RESPONSE_TEXT = "No response received"


class RekaClientError(Exception):
    """Base exception for Reka client errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class UpstreamHTTPError(RekaClientError):
    """Reka API answered with a non-success status."""

    def __init__(self, status: int, reason: str, body: str):
        super().__init__(f"Reka API error: {status} {reason}")
        self.status = status
        self.reason = reason
        self.body = body


class UpstreamTransportError(RekaClientError):
    """Reka API could not be reached."""


class UpstreamResponseError(RekaClientError):
    """Reka API answered with a body that is not JSON."""


class RekaClient:
    """
    Client for the Reka chat completions API.

    Holds a pooled HTTP session across invocations; nothing else is kept
    between calls.
    """

    def __init__(self, config: Config):
        """
        Initialize Reka client.

        Args:
            config: Server configuration containing Reka settings
        """
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None
        self._connection_lock = asyncio.Lock()

    @property
    def endpoint(self) -> str:
        return f"{self.config.reka.api_url}{COMPLETIONS_PATH}"

    @property
    def connected(self) -> bool:
        return self._session is not None and not self._session.closed

    async def connect(self) -> None:
        """Open the HTTP session."""
        async with self._connection_lock:
            if self.connected:
                return

            # No client timeout: the invocation deadline is enforced by the tools
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None),
            )
            logger.info("Reka client session opened", endpoint=self.endpoint)

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        async with self._connection_lock:
            if self._session is None:
                return
            try:
                await self._session.close()
                logger.info("Reka client session closed")
            finally:
                self._session = None

    def _build_payload(self, prompt: str, model: Optional[str]) -> Dict[str, Any]:
        return {
            "model": model or self.config.reka.model,
            "messages": [
                {
                    "role": "user",
                    "content": prompt,
                }
            ],
        }

    @staticmethod
    def _extract_text(data: Any) -> str:
        if not isinstance(data, dict):
            return NO_RESPONSE_TEXT

        choices = data.get("choices") or []
        if not isinstance(choices, list) or not choices:
            return NO_RESPONSE_TEXT

        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        return content or NO_RESPONSE_TEXT

    async def complete(self, prompt: str, api_key: str, model: Optional[str] = None) -> str:
        """
        Send one completion request and return the first choice's text.

        Args:
            prompt: Full instruction text sent as a single user message
            api_key: Key used for bearer authentication
            model: Model identifier, defaults to the configured model

        Returns:
            Completion text, or "No response received" if there is none

        Raises:
            UpstreamHTTPError: On a non-success status code
            UpstreamTransportError: If the API cannot be reached
            UpstreamResponseError: If a success body is not JSON
        """
        if not self.connected:
            await self.connect()

        payload = self._build_payload(prompt, model)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

        logger.debug(
            "Making request to Reka API",
            model=payload["model"],
            message_count=len(payload["messages"]),
        )

        try:
            async with self._session.post(self.endpoint, json=payload, headers=headers) as resp:
                logger.debug(
                    "Received response from Reka API",
                    status=resp.status,
                    status_text=resp.reason,
                    ok=resp.ok,
                )

                if not resp.ok:
                    error_text = await resp.text()
                    logger.error(
                        "Reka API request failed",
                        status=resp.status,
                        status_text=resp.reason,
                        error_body=error_text,
                    )
                    raise UpstreamHTTPError(resp.status, resp.reason or "", error_text)

                body = await resp.text()

        except (aiohttp.ClientError, OSError) as e:
            logger.error("Reka API unreachable", error=str(e))
            raise UpstreamTransportError(f"Reka API request failed: {e}", original_error=e)

        try:
            data = json.loads(body)
        except ValueError as e:
            logger.error("Reka API returned invalid JSON", body_preview=body[:200])
            raise UpstreamResponseError(
                f"Reka API returned invalid JSON: {e}", original_error=e
            )

        result = self._extract_text(data)

        logger.info(
            "Reka completion received",
            response_length=len(result),
            has_choices=bool(isinstance(data, dict) and data.get("choices")),
        )

        return result
