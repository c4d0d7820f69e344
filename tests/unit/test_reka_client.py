"""
Unit tests for the Reka API client.
"""

import pytest
from aiohttp import test_utils

from reka_research_mcp_server.client.reka_client import (
    NO_RESPONSE_TEXT,
    RekaClient,
    UpstreamHTTPError,
    UpstreamResponseError,
    UpstreamTransportError,
)
from reka_research_mcp_server.config.settings import Config, RekaConfig


@pytest.fixture
async def reka_client(fake_upstream):
    client = RekaClient(Config(reka=RekaConfig(api_url=fake_upstream.base_url, api_key="unused")))
    yield client
    await client.disconnect()


class TestRekaClient:
    """Test the upstream completion call."""

    @pytest.mark.asyncio
    async def test_complete_success(self, reka_client, fake_upstream):
        result = await reka_client.complete("Is water wet?", "secret-key")

        assert result == "upstream says hi"
        assert len(fake_upstream.requests) == 1

        sent = fake_upstream.requests[0]
        assert sent["path"] == "/v1/chat/completions"
        assert sent["authorization"] == "Bearer secret-key"
        assert sent["json"] == {
            "model": "reka-flash-research",
            "messages": [{"role": "user", "content": "Is water wet?"}],
        }

    @pytest.mark.asyncio
    async def test_complete_connects_lazily(self, reka_client):
        assert not reka_client.connected
        await reka_client.complete("prompt", "key")
        assert reka_client.connected

        await reka_client.disconnect()
        assert not reka_client.connected

    @pytest.mark.asyncio
    async def test_model_override(self, reka_client, fake_upstream):
        await reka_client.complete("prompt", "key", model="reka-core")

        assert fake_upstream.requests[0]["json"]["model"] == "reka-core"

    @pytest.mark.asyncio
    async def test_http_error_carries_status_and_body(self, reka_client, fake_upstream):
        fake_upstream.status = 401
        fake_upstream.body = '{"detail": "invalid api key"}'

        with pytest.raises(UpstreamHTTPError) as exc_info:
            await reka_client.complete("prompt", "bad-key")

        error = exc_info.value
        assert error.status == 401
        assert error.reason == "Unauthorized"
        assert "invalid api key" in error.body
        assert error.message == "Reka API error: 401 Unauthorized"

    @pytest.mark.asyncio
    async def test_http_error_not_retried(self, reka_client, fake_upstream):
        fake_upstream.status = 500
        fake_upstream.body = "boom"

        with pytest.raises(UpstreamHTTPError):
            await reka_client.complete("prompt", "key")

        assert len(fake_upstream.requests) == 1

    @pytest.mark.asyncio
    async def test_empty_choices(self, reka_client, fake_upstream):
        fake_upstream.body = {"choices": []}

        assert await reka_client.complete("prompt", "key") == NO_RESPONSE_TEXT
        assert NO_RESPONSE_TEXT == "No response received"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"choices": [{}]},
            {"choices": [{"message": {}}]},
            {"choices": [{"message": {"content": ""}}]},
            {"choices": [{"message": {"content": None}}]},
        ],
    )
    async def test_missing_content(self, reka_client, fake_upstream, body):
        fake_upstream.body = body

        assert await reka_client.complete("prompt", "key") == NO_RESPONSE_TEXT

    @pytest.mark.asyncio
    async def test_invalid_json_success_body(self, reka_client, fake_upstream):
        fake_upstream.body = "<html>not json</html>"

        with pytest.raises(UpstreamResponseError):
            await reka_client.complete("prompt", "key")

    @pytest.mark.asyncio
    async def test_unreachable_upstream(self):
        port = test_utils.unused_port()
        client = RekaClient(Config(reka=RekaConfig(api_url=f"http://127.0.0.1:{port}")))

        try:
            with pytest.raises(UpstreamTransportError) as exc_info:
                await client.complete("prompt", "key")
        finally:
            await client.disconnect()

        assert exc_info.value.message.startswith("Reka API request failed")
