"""
Unit tests for MCP tools.
"""

import asyncio

import pytest

from reka_research_mcp_server.client.reka_client import (
    UpstreamHTTPError,
    UpstreamResponseError,
    UpstreamTransportError,
)
from reka_research_mcp_server.tools.base import ToolValidationError
from reka_research_mcp_server.tools.find_similar import FindSimilarTool
from reka_research_mcp_server.tools.verify_claim import VerifyClaimTool


def _single_text(result):
    assert len(result.content) == 1
    assert result.content[0]["type"] == "text"
    assert result.is_error is False
    return result.content[0]["text"]


class TestVerifyClaimTool:
    """Test verify_claim tool."""

    def test_get_schema(self, verify_tool):
        schema = verify_tool.get_schema()
        assert schema.name == "verify_claim"
        assert schema.inputSchema.required == ["claim"]
        assert schema.inputSchema.properties["claim"].type == "string"
        assert schema.inputSchema.properties["claim"].minLength == 1

    @pytest.mark.asyncio
    async def test_passes_upstream_text_through(self, verify_tool, mock_reka_client, http_context):
        result = await verify_tool({"claim": "The Earth is round"}, http_context())

        assert _single_text(result) == mock_reka_client.complete.return_value

        prompt, api_key = mock_reka_client.complete.await_args.args
        assert prompt.endswith("Please verify this claim: The Earth is round")
        assert "'verdict' (true/false/uncertain)" in prompt
        assert "'confidence' (0-1)" in prompt
        assert "'reasoning'" in prompt
        assert api_key == "config-key"

    @pytest.mark.asyncio
    async def test_non_json_upstream_text_still_returned(
        self, verify_tool, mock_reka_client, http_context
    ):
        mock_reka_client.complete.return_value = "I think so, probably."

        result = await verify_tool({"claim": "Cats purr"}, http_context())

        assert _single_text(result) == "I think so, probably."

    @pytest.mark.asyncio
    async def test_bearer_header_overrides_configured_key(
        self, verify_tool, mock_reka_client, http_context
    ):
        await verify_tool({"claim": "x"}, http_context({"Authorization": "Bearer K2"}))

        assert mock_reka_client.complete.await_args.args[1] == "K2"

    @pytest.mark.asyncio
    async def test_lowercase_authorization_header(
        self, verify_tool, mock_reka_client, http_context
    ):
        await verify_tool({"claim": "x"}, http_context({"authorization": "Bearer K2"}))

        assert mock_reka_client.complete.await_args.args[1] == "K2"

    @pytest.mark.asyncio
    async def test_malformed_header_uses_configured_key(
        self, verify_tool, mock_reka_client, http_context
    ):
        await verify_tool({"claim": "x"}, http_context({"Authorization": "Token K2"}))

        assert mock_reka_client.complete.await_args.args[1] == "config-key"

    @pytest.mark.asyncio
    async def test_missing_credential_is_text(self, mock_reka_client, http_context):
        tool = VerifyClaimTool(mock_reka_client, default_api_key=None)

        result = await tool({"claim": "x"}, http_context())

        text = _single_text(result)
        assert text.startswith("Error verifying claim: REKA_API_KEY must be provided")
        mock_reka_client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upstream_http_failure_is_text(
        self, verify_tool, mock_reka_client, http_context
    ):
        mock_reka_client.complete.side_effect = UpstreamHTTPError(401, "Unauthorized", "{}")

        result = await verify_tool({"claim": "x"}, http_context())

        text = _single_text(result)
        assert text == "Error verifying claim: Reka API error: 401 Unauthorized"

    @pytest.mark.asyncio
    async def test_upstream_transport_failure_is_text(
        self, verify_tool, mock_reka_client, http_context
    ):
        mock_reka_client.complete.side_effect = UpstreamTransportError(
            "Reka API request failed: connection refused"
        )

        result = await verify_tool({"claim": "x"}, http_context())

        assert "connection refused" in _single_text(result)

    @pytest.mark.asyncio
    async def test_invalid_upstream_body_is_text(
        self, verify_tool, mock_reka_client, http_context
    ):
        mock_reka_client.complete.side_effect = UpstreamResponseError("Reka API returned invalid JSON")

        result = await verify_tool({"claim": "x"}, http_context())

        assert _single_text(result).startswith("Error verifying claim: Reka API returned invalid JSON")

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_text(self, verify_tool, mock_reka_client, http_context):
        mock_reka_client.complete.side_effect = RuntimeError("something odd")

        result = await verify_tool({"claim": "x"}, http_context())

        assert _single_text(result) == "Error verifying claim: something odd"

    @pytest.mark.asyncio
    async def test_timeout_is_text(self, mock_reka_client, http_context):
        async def never_finishes(*args, **kwargs):
            await asyncio.sleep(10)

        mock_reka_client.complete.side_effect = never_finishes
        tool = VerifyClaimTool(mock_reka_client, default_api_key="k", max_duration_seconds=0.05)

        result = await tool({"claim": "x"}, http_context())

        assert "timed out" in _single_text(result)

    @pytest.mark.asyncio
    async def test_missing_claim_fails_before_network(self, verify_tool, mock_reka_client):
        with pytest.raises(ToolValidationError) as exc_info:
            await verify_tool({})

        assert exc_info.value.details == {"missing_parameter": "claim"}
        assert mock_reka_client.complete.await_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("claim", ["", 42, None, ["a"]])
    async def test_invalid_claim_fails_before_network(self, verify_tool, mock_reka_client, claim):
        with pytest.raises(ToolValidationError):
            await verify_tool({"claim": claim})

        assert mock_reka_client.complete.await_count == 0

    @pytest.mark.asyncio
    async def test_extra_arguments_ignored(self, verify_tool, mock_reka_client):
        await verify_tool({"claim": "x", "verbose": True})

        mock_reka_client.complete.assert_awaited_once()


class TestFindSimilarTool:
    """Test find_similar tool."""

    def test_get_schema(self, similar_tool):
        schema = similar_tool.get_schema()
        assert schema.name == "find_similar"
        assert set(schema.inputSchema.properties) == {"target", "attribute"}
        assert schema.inputSchema.required == ["target", "attribute"]

    @pytest.mark.asyncio
    async def test_prompt_contains_target_and_attribute(
        self, similar_tool, mock_reka_client, http_context
    ):
        mock_reka_client.complete.return_value = "Claude, Gemini, Llama"

        result = await similar_tool(
            {"target": "ChatGPT", "attribute": "functionality"}, http_context()
        )

        assert _single_text(result) == "Claude, Gemini, Llama"

        prompt = mock_reka_client.complete.await_args.args[0]
        assert "Target: ChatGPT" in prompt
        assert "Attribute to compare: functionality" in prompt
        assert 'based on the "functionality" attribute' in prompt
        assert "concrete examples" in prompt

    @pytest.mark.asyncio
    async def test_failure_uses_own_prefix(self, similar_tool, mock_reka_client, http_context):
        mock_reka_client.complete.side_effect = UpstreamHTTPError(503, "Service Unavailable", "")

        result = await similar_tool({"target": "a", "attribute": "b"}, http_context())

        assert _single_text(result) == (
            "Error finding similar items: Reka API error: 503 Service Unavailable"
        )

    @pytest.mark.asyncio
    async def test_missing_credential_is_text(self, mock_reka_client, http_context):
        tool = FindSimilarTool(mock_reka_client)

        result = await tool({"target": "a", "attribute": "b"}, http_context())

        assert "REKA_API_KEY must be provided" in _single_text(result)
        mock_reka_client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_attribute_fails_before_network(self, similar_tool, mock_reka_client):
        with pytest.raises(ToolValidationError):
            await similar_tool({"target": "ChatGPT"})

        assert mock_reka_client.complete.await_count == 0
