"""
Find Similar tool for Reka Research MCP Server.

Finds items similar to a target along one attribute.
"""

from typing import Any, Dict

from ..protocol.schemas import Tool
from .base import RekaTool, preview_text

FIND_SIMILAR_PROMPT = """Find items similar to the given target based on the specified attribute. Provide a detailed analysis and list of similar items with explanations.

Target: {target}
Attribute to compare: {attribute}

Analyze the target and find similar items based on the "{attribute}" attribute. Provide concrete examples and explain why they are similar."""


class FindSimilarTool(RekaTool):
    """Find alternatives or related items sharing an attribute with a target."""

    name = "find_similar"
    description = (
        "Find items similar to a target based on a specific attribute using agentic "
        "analysis. Use this tool when you need to discover similar things, alternatives, "
        "or related items that share common characteristics."
    )
    error_prefix = "Error finding similar items"

    def get_schema(self) -> Tool:
        return self._create_schema(
            parameters={
                "target": self._create_parameter(
                    "string",
                    "The item, concept, or entity to find similarities for",
                    min_length=1,
                ),
                "attribute": self._create_parameter(
                    "string",
                    "The specific attribute or characteristic to compare "
                    "(e.g., 'functionality', 'style', 'purpose', 'appearance', 'behavior')",
                    min_length=1,
                ),
            },
            required=["target", "attribute"],
        )

    def build_prompt(self, arguments: Dict[str, Any]) -> str:
        return FIND_SIMILAR_PROMPT.format(
            target=arguments["target"],
            attribute=arguments["attribute"],
        )

    def describe_request(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        target = arguments["target"]
        return {
            "target_preview": preview_text(target),
            "target_length": len(target),
            "attribute": arguments["attribute"],
        }
