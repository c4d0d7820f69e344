"""
Verify Claim tool for Reka Research MCP Server.

Fact-checks a claim with the Reka research model.
"""

from typing import Any, Dict

from ..protocol.schemas import Tool
from .base import RekaTool, preview_text

VERIFY_CLAIM_PROMPT = (
    "Analyze the given claim and provide a verification assessment. "
    "Return your response as a JSON object with 'verdict' (true/false/uncertain), "
    "'confidence' (0-1), and 'reasoning' fields. Please verify this claim: {claim}"
)


class VerifyClaimTool(RekaTool):
    """Fact-check a claim and return the model's verdict text."""

    name = "verify_claim"
    description = (
        "Fact-check and verify claims using agentic analysis. Returns a structured "
        "assessment with verdict, confidence level, and detailed reasoning."
    )
    error_prefix = "Error verifying claim"

    def get_schema(self) -> Tool:
        return self._create_schema(
            parameters={
                "claim": self._create_parameter(
                    "string",
                    "The claim or statement to fact-check and verify",
                    min_length=1,
                ),
            },
            required=["claim"],
        )

    def build_prompt(self, arguments: Dict[str, Any]) -> str:
        return VERIFY_CLAIM_PROMPT.format(claim=arguments["claim"])

    def describe_request(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        claim = arguments["claim"]
        return {"claim_preview": preview_text(claim), "claim_length": len(claim)}
