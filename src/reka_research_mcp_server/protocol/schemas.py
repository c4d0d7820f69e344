"""
MCP Protocol message schemas and data structures.

Defines the JSON-RPC 2.0 message formats for the Model Context Protocol,
including requests, responses, and error handling.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = ["2024-11-05", "2025-03-26", "2025-06-18"]


class MCPError(Exception):
    """Base exception for MCP protocol errors."""

    def __init__(
        self,
        message: str,
        code: int = -32000,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to JSON-RPC error format."""
        error_dict = {
            "code": self.code,
            "message": self.message,
        }
        if self.data:
            error_dict["data"] = self.data
        return error_dict


class MCPValidationError(MCPError):
    """Error for invalid request parameters."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=-32602, data=data)


class MCPMethodNotFoundError(MCPError):
    """Error for unknown method calls."""

    def __init__(self, method: str):
        super().__init__(f"Method not found: {method}", code=-32601)


class MCPInternalError(MCPError):
    """Error for internal server issues."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=-32603, data=data)


@dataclass
class RequestContext:
    """Transport metadata for a single request."""

    transport: str = "stdio"
    headers: Mapping[str, Any] = field(default_factory=dict)
    session_id: Optional[str] = None


# Base message types
class MCPMessage(BaseModel):
    """Base class for all MCP messages."""

    model_config = ConfigDict(extra="forbid")

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")


class MCPRequest(MCPMessage):
    """Base class for MCP requests."""

    id: Union[str, int] = Field(description="Request ID")
    method: str = Field(description="Method name")
    params: Optional[Dict[str, Any]] = Field(default=None, description="Method parameters")


class MCPResponse(MCPMessage):
    """Base class for MCP responses."""

    id: Union[str, int, None] = Field(description="Request ID")
    result: Optional[Dict[str, Any]] = Field(default=None, description="Response result")
    error: Optional[Dict[str, Any]] = Field(default=None, description="Error information")

    def model_dump(self, **kwargs) -> Dict[str, Any]:
        """Override model_dump to properly handle JSON-RPC 2.0 response format."""
        # Keep the jsonrpc field even though it is a default
        kwargs["exclude_unset"] = False
        result = super().model_dump(**kwargs)

        # JSON-RPC 2.0: Response must have either result OR error, never both
        if self.error is not None:
            result.pop("result", None)
        else:
            result.pop("error", None)

        return result


class MCPNotification(MCPMessage):
    """Base class for MCP notifications (no response expected)."""

    method: str = Field(description="Method name")
    params: Optional[Dict[str, Any]] = Field(default=None, description="Method parameters")


# Client info structures
class ClientInfo(BaseModel):
    """Information about the MCP client."""

    name: str = Field(description="Client name")
    version: Optional[str] = Field(default=None, description="Client version")


class ServerInfo(BaseModel):
    """Information about the MCP server."""

    name: str = Field(default="reka-research-mcp-server", description="Server name")
    version: str = Field(default="0.1.0", description="Server version")


# Tool structures
class ToolParameter(BaseModel):
    """Tool parameter definition."""

    type: str = Field(description="Parameter type")
    description: Optional[str] = Field(default=None, description="Parameter description")
    minLength: Optional[int] = Field(default=None, description="Minimum string length")


class ToolSchema(BaseModel):
    """Tool input schema definition."""

    type: str = Field(default="object", description="Schema type")
    properties: Dict[str, ToolParameter] = Field(description="Tool parameters")
    required: List[str] = Field(default_factory=list, description="Required parameters")


class Tool(BaseModel):
    """Tool definition."""

    name: str = Field(description="Tool name")
    description: str = Field(description="Tool description")
    inputSchema: ToolSchema = Field(description="Tool input schema")


# Initialize protocol
class MCPInitializeRequest(MCPRequest):
    """Initialize request from client."""

    method: str = Field(default="initialize", frozen=True)
    params: Dict[str, Any] = Field(description="Initialize parameters")

    @property
    def protocol_version(self) -> str:
        """Get protocol version from params."""
        version = self.params.get("protocolVersion", PROTOCOL_VERSION)
        return str(version)

    @property
    def client_info(self) -> Optional[ClientInfo]:
        """Get client info from params."""
        client_data = self.params.get("clientInfo")
        if not client_data:
            return None
        try:
            return ClientInfo.model_validate(client_data)
        except ValidationError:
            return None


class MCPInitializeResponse(MCPResponse):
    """Initialize response to client."""

    def __init__(
        self,
        request_id: Union[str, int],
        protocol_version: str = PROTOCOL_VERSION,
        server_info: Optional[ServerInfo] = None,
        capabilities: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            id=request_id,
            result={
                "protocolVersion": protocol_version,
                "serverInfo": (server_info or ServerInfo()).model_dump(),
                "capabilities": capabilities or {"tools": {}},
            },
        )


# List tools
class MCPListToolsRequest(MCPRequest):
    """List tools request from client."""

    method: str = Field(default="tools/list", frozen=True)


class MCPListToolsResponse(MCPResponse):
    """List tools response to client."""

    def __init__(self, request_id: Union[str, int], tools: List[Tool]):
        super().__init__(
            id=request_id,
            result={"tools": [tool.model_dump(exclude_none=True) for tool in tools]},
        )


# Call tool
class MCPCallToolRequest(MCPRequest):
    """Call tool request from client."""

    method: str = Field(default="tools/call", frozen=True)
    params: Dict[str, Any] = Field(description="Tool call parameters")

    @property
    def tool_name(self) -> str:
        """Get tool name from params."""
        name = self.params.get("name", "")
        return str(name) if name is not None else ""

    @property
    def tool_arguments(self) -> Dict[str, Any]:
        """Get tool arguments from params."""
        args = self.params.get("arguments", {})
        return args if isinstance(args, dict) else {}


class MCPCallToolResponse(MCPResponse):
    """Call tool response to client."""

    def __init__(
        self,
        request_id: Union[str, int],
        content: List[Dict[str, Any]],
        is_error: bool = False,
    ):
        super().__init__(
            id=request_id,
            result={
                "content": content,
                "isError": is_error,
            },
        )
