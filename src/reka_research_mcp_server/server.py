"""
Main Reka Research MCP Server implementation.

Coordinates all components to expose the Reka research tools over
stdio or HTTP.
"""

import asyncio
import os
import signal
import sys
from typing import Dict, Union

import structlog

from .client.reka_client import RekaClient
from .config.settings import Config
from .protocol.handlers import MCPHandler
from .protocol.schemas import ServerInfo
from .protocol.transport import HttpTransport, StdioTransport
from .tools.base import RekaTool
from .tools.find_similar import FindSimilarTool
from .tools.verify_claim import VerifyClaimTool

logger = structlog.get_logger(__name__)

SERVER_NAME = "reka-research-mcp-server"


class RekaResearchMCPServer:
    """
    Main MCP server for Reka research tools.

    Coordinates protocol handling, tool registration, and transport.
    Invocations share no mutable state beyond the pooled HTTP session.
    """

    def __init__(self, config: Config, transport: str = "stdio"):
        """
        Initialize the MCP server.

        Args:
            config: Server configuration
            transport: "stdio" or "http"
        """
        if transport not in ("stdio", "http"):
            raise ValueError(f"Unsupported transport: {transport}")

        self.config = config
        self.transport_name = transport
        self._running = False
        self._shutdown_event = asyncio.Event()

        self.reka_client = RekaClient(config)

        server_info = ServerInfo(name=SERVER_NAME, version=config.version)
        # HTTP bindings carry no session, so tool calls need no prior initialize
        self.mcp_handler = MCPHandler(
            server_info=server_info,
            require_initialization=(transport == "stdio"),
        )

        self.transport: Union[StdioTransport, HttpTransport]
        if transport == "stdio":
            self.transport = StdioTransport()
        else:
            self.transport = HttpTransport(
                host=config.server.host,
                port=config.server.port,
                server_info=server_info,
            )

        self._tools: Dict[str, RekaTool] = {}

    async def start(self) -> None:
        """Start the MCP server."""
        if self._running:
            return

        logger.info("Starting Reka Research MCP Server", transport=self.transport_name)

        try:
            await self.reka_client.connect()

            self._register_tools()

            self.transport.set_message_handler(self.mcp_handler.handle_request)
            if isinstance(self.transport, HttpTransport):
                self.transport.tool_names = list(self._tools)

            self._running = True

            logger.info(
                "Server started successfully",
                environment=os.getenv("ENVIRONMENT", "development"),
                has_reka_api_key=bool(self.config.reka.api_key),
                supported_tools=list(self._tools.keys()),
                max_duration_seconds=self.config.server.max_duration_seconds,
            )

        except Exception as e:
            logger.error("Failed to start server", error=str(e), exc_info=True)
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the MCP server."""
        logger.info("Stopping Reka Research MCP Server")

        self._running = False
        self._shutdown_event.set()

        await self.transport.stop()
        await self.reka_client.disconnect()

        logger.info("Server stopped")

    async def run_stdio(self) -> None:
        """Run the server with stdio transport."""
        try:
            await self.start()
            self._setup_signal_handlers()

            transport_task = asyncio.create_task(self.transport.start())
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())

            # Either stdin closes or a signal requests shutdown
            await asyncio.wait(
                {transport_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED,
            )

            for task in (transport_task, shutdown_task):
                if not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass

        except Exception as e:
            logger.error("Server error", error=str(e), exc_info=True)
            raise
        finally:
            await self.stop()

    async def run_http(self) -> None:
        """Run the server with the HTTP transport until a shutdown signal."""
        try:
            await self.start()
            self._setup_signal_handlers()

            await self.transport.start()

            try:
                await self._shutdown_event.wait()
            except asyncio.CancelledError:
                logger.info("Server operation cancelled")

        except Exception as e:
            logger.error("Server error", error=str(e), exc_info=True)
            raise
        finally:
            await self.stop()

    async def run(self) -> None:
        """Run with the transport chosen at construction."""
        if self.transport_name == "stdio":
            await self.run_stdio()
        else:
            await self.run_http()

    def _register_tools(self) -> None:
        """Register all enabled tools with the MCP handler."""
        logger.info("Registering tools")

        tool_classes = {
            "verify_claim": (VerifyClaimTool, self.config.tools.verify_claim),
            "find_similar": (FindSimilarTool, self.config.tools.find_similar),
        }

        for name, (tool_class, tool_config) in tool_classes.items():
            if not tool_config.enabled:
                logger.debug("Tool disabled", tool_name=name)
                continue

            tool = tool_class(
                self.reka_client,
                default_api_key=self.config.reka.api_key,
                max_duration_seconds=self.config.server.max_duration_seconds,
                config=tool_config.model_dump(),
            )
            self._tools[name] = tool
            self.mcp_handler.register_tool(tool.get_schema(), tool)

        logger.info(
            "Tools registered successfully",
            enabled_tools=list(self._tools.keys()),
            total_tools=len(self._tools),
        )

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        if sys.platform == "win32":
            return

        loop = asyncio.get_running_loop()

        def signal_handler(signum: int) -> None:
            logger.info(f"Received signal {signum}, initiating shutdown")
            self._shutdown_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, signal_handler, signum)

    @property
    def running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def tools(self) -> dict:
        """Get registered tools."""
        return self._tools.copy()
