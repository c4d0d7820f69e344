"""
Reka Research MCP Server

A Model Context Protocol server that exposes claim verification and
attribute-based similarity search backed by the Reka research model.
"""

__version__ = "0.1.0"
__author__ = "Reka Research MCP Team"
__license__ = "MIT"

from .config.settings import Config, load_config
from .server import RekaResearchMCPServer

__all__ = [
    "RekaResearchMCPServer",
    "Config",
    "load_config",
    "__version__",
    "__author__",
    "__license__",
]
