"""
Reka research MCP tools implementation.

This module provides the tool implementations that expose Reka research
capabilities through the MCP protocol.
"""

from .base import BaseTool, RekaTool, ToolError, ToolResult, ToolValidationError
from .find_similar import FindSimilarTool
from .verify_claim import VerifyClaimTool

__all__ = [
    "BaseTool",
    "RekaTool",
    "ToolError",
    "ToolResult",
    "ToolValidationError",
    "VerifyClaimTool",
    "FindSimilarTool",
]
