"""
MCP Protocol message handlers.

Implements the core logic for handling MCP protocol messages,
routing them to appropriate handlers, and managing the protocol lifecycle.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from ..tools.base import ToolResult, ToolValidationError
from .schemas import (
    SUPPORTED_PROTOCOL_VERSIONS,
    MCPCallToolRequest,
    MCPCallToolResponse,
    MCPError,
    MCPInitializeRequest,
    MCPInitializeResponse,
    MCPInternalError,
    MCPListToolsResponse,
    MCPMethodNotFoundError,
    MCPRequest,
    MCPResponse,
    MCPValidationError,
    RequestContext,
    ServerInfo,
    Tool,
)

logger = structlog.get_logger(__name__)

ToolExecutor = Callable[[Dict[str, Any], RequestContext], Awaitable[ToolResult]]


class MCPHandler:
    """
    Main handler for MCP protocol messages.

    Routes incoming requests to appropriate handlers. Session state is only
    tracked when ``require_initialization`` is set; the HTTP bindings are
    stateless and accept tool calls without a prior ``initialize``.
    """

    def __init__(
        self,
        server_info: Optional[ServerInfo] = None,
        require_initialization: bool = True,
    ):
        self.server_info = server_info or ServerInfo()
        self.require_initialization = require_initialization
        self._initialized = False
        self._tools: Dict[str, Tool] = {}
        self._tool_executors: Dict[str, ToolExecutor] = {}

        self._capabilities = {
            "tools": {},
        }

    def register_tool(self, tool: Tool, executor: ToolExecutor) -> None:
        """
        Register a tool with its executor function.

        Args:
            tool: Tool definition
            executor: Async callable taking arguments and request context
        """
        self._tools[tool.name] = tool
        self._tool_executors[tool.name] = executor
        logger.info("Registered tool", tool_name=tool.name)

    async def handle_request(
        self,
        request: MCPRequest,
        context: Optional[RequestContext] = None,
    ) -> MCPResponse:
        """
        Handle incoming MCP request.

        Args:
            request: Incoming request
            context: Transport metadata of the request

        Returns:
            Response to send back to client
        """
        context = context or RequestContext()
        logger.debug(
            "Handling request",
            method=request.method,
            request_id=request.id,
            transport=context.transport,
        )

        try:
            if request.method == "initialize":
                return await self._handle_initialize(request)
            elif request.method == "ping":
                return MCPResponse(id=request.id, result={})
            elif request.method == "tools/list":
                return await self._handle_list_tools(request)
            elif request.method == "tools/call":
                return await self._handle_call_tool(request, context)
            else:
                raise MCPMethodNotFoundError(request.method)

        except MCPError as e:
            logger.warning(
                "MCP error handling request",
                method=request.method,
                request_id=request.id,
                error_code=e.code,
                error_message=e.message,
            )
            return MCPResponse(
                id=request.id,
                error=e.to_dict(),
            )

        except Exception as e:
            logger.error(
                "Unexpected error handling request",
                method=request.method,
                request_id=request.id,
                error=str(e),
                exc_info=True,
            )
            return MCPResponse(
                id=request.id,
                error=MCPInternalError("Internal error", data={"details": str(e)}).to_dict(),
            )

    def _ensure_initialized(self) -> None:
        if self.require_initialization and not self._initialized:
            raise MCPError("Session not initialized", code=-32002)

    async def _handle_initialize(self, request: MCPRequest) -> MCPInitializeResponse:
        """Handle initialize request."""
        try:
            init_request = MCPInitializeRequest(**request.model_dump())
        except Exception as e:
            raise MCPValidationError(f"Invalid initialize request: {e}")

        logger.info(
            "Initializing MCP session",
            protocol_version=init_request.protocol_version,
            client_info=init_request.client_info,
        )

        if init_request.protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            logger.warning(
                "Unsupported protocol version",
                requested=init_request.protocol_version,
                supported=SUPPORTED_PROTOCOL_VERSIONS,
            )
            # Continue anyway - be liberal in what we accept

        self._initialized = True

        return MCPInitializeResponse(
            request_id=request.id,
            protocol_version=init_request.protocol_version,
            server_info=self.server_info,
            capabilities=self._capabilities,
        )

    async def _handle_list_tools(self, request: MCPRequest) -> MCPListToolsResponse:
        """Handle list tools request."""
        self._ensure_initialized()

        logger.info("Listing tools", tool_count=len(self._tools))

        return MCPListToolsResponse(request.id, list(self._tools.values()))

    async def _handle_call_tool(
        self, request: MCPRequest, context: RequestContext
    ) -> MCPCallToolResponse:
        """Handle call tool request."""
        self._ensure_initialized()

        try:
            call_request = MCPCallToolRequest(**request.model_dump())
        except Exception as e:
            raise MCPValidationError(f"Invalid call tool request: {e}")

        tool_name = call_request.tool_name
        arguments = call_request.tool_arguments

        logger.info(
            "Calling tool",
            tool_name=tool_name,
            argument_names=sorted(arguments),
            transport=context.transport,
        )

        if tool_name not in self._tool_executors:
            raise MCPValidationError(f"Unknown tool: {tool_name}")

        executor = self._tool_executors[tool_name]
        try:
            result = await executor(arguments, context)
        except ToolValidationError as e:
            raise MCPValidationError(
                f"Invalid arguments for tool {tool_name}: {e.message}",
                data=e.details,
            )

        logger.info("Tool execution completed", tool_name=tool_name)

        return MCPCallToolResponse(
            request_id=request.id,
            content=result.content,
            is_error=result.is_error,
        )

    @property
    def initialized(self) -> bool:
        """Check if the handler is initialized."""
        return self._initialized

    @property
    def tools(self) -> List[Tool]:
        """Get list of registered tools."""
        return list(self._tools.values())
