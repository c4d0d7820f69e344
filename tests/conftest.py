"""
Pytest configuration and fixtures for Reka Research MCP Server tests.
"""

import json
from typing import Any, Dict, List, Optional

import pytest
from aiohttp import test_utils, web
from unittest.mock import AsyncMock

from reka_research_mcp_server.client.reka_client import RekaClient
from reka_research_mcp_server.config.settings import Config, RekaConfig, ServerConfig, ToolsConfig
from reka_research_mcp_server.protocol.schemas import RequestContext
from reka_research_mcp_server.tools.find_similar import FindSimilarTool
from reka_research_mcp_server.tools.verify_claim import VerifyClaimTool


@pytest.fixture
def test_config():
    """Create a test configuration."""
    return Config(
        version="0.1.0-test",
        reka=RekaConfig(
            api_url="http://localhost:8000",
            api_key="config-key",
        ),
        server=ServerConfig(
            log_level="DEBUG",
            max_duration_seconds=5,
        ),
        tools=ToolsConfig(),
    )


@pytest.fixture
def mock_reka_client():
    """Create a mock Reka client."""
    client = AsyncMock(spec=RekaClient)
    client.complete.return_value = (
        '{"verdict": "true", "confidence": 0.97, "reasoning": "Well established."}'
    )
    return client


@pytest.fixture
def verify_tool(mock_reka_client):
    return VerifyClaimTool(mock_reka_client, default_api_key="config-key", max_duration_seconds=5)


@pytest.fixture
def similar_tool(mock_reka_client):
    return FindSimilarTool(mock_reka_client, default_api_key="config-key", max_duration_seconds=5)


@pytest.fixture
def http_context():
    """Request context as built by the stateless HTTP binding."""

    def _make(headers: Optional[Dict[str, Any]] = None) -> RequestContext:
        return RequestContext(transport="http", headers=headers or {})

    return _make


class FakeUpstream:
    """In-process stand-in for the Reka chat completions endpoint."""

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self.status = 200
        self.body: Any = {"choices": [{"message": {"content": "upstream says hi"}}]}
        self.base_url = ""

    async def handle(self, request: web.Request) -> web.Response:
        self.requests.append(
            {
                "path": request.path,
                "authorization": request.headers.get("Authorization"),
                "json": await request.json(),
            }
        )
        text = self.body if isinstance(self.body, str) else json.dumps(self.body)
        return web.Response(status=self.status, text=text, content_type="application/json")


@pytest.fixture
async def fake_upstream():
    """Run a fake Reka API for the duration of a test."""
    upstream = FakeUpstream()
    app = web.Application()
    app.router.add_post("/v1/chat/completions", upstream.handle)

    server = test_utils.TestServer(app)
    await server.start_server()
    upstream.base_url = str(server.make_url("/")).rstrip("/")
    yield upstream
    await server.close()
