"""
Base classes for MCP tools.

Provides common functionality and interfaces for the Reka research tools,
including argument validation, error handling, and result formatting.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import structlog

from ..auth.credentials import MissingCredentialError, resolve_api_key
from ..client.reka_client import RekaClient, RekaClientError
from ..protocol.schemas import RequestContext, Tool, ToolParameter, ToolSchema

logger = structlog.get_logger(__name__)


def preview_text(text: str, limit: int = 100) -> str:
    """Shorten text for log output."""
    return text[:limit] + ("..." if len(text) > limit else "")


class ToolError(Exception):
    """Base exception for tool execution errors."""

    def __init__(
        self, message: str, code: str = "tool_error", details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ToolValidationError(ToolError):
    """Error for invalid tool arguments."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="validation_error", details=details)


class ToolResult:
    """
    Standardized tool result format.

    Always a single text block. Failures are rendered as text too, so
    ``is_error`` stays False for every result the tools produce.
    """

    def __init__(self, content: List[Dict[str, Any]], is_error: bool = False):
        self.content = content
        self.is_error = is_error

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        """Create a result with a single text content block."""
        return cls(content=[{"type": "text", "text": text}])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for MCP response."""
        return {
            "content": self.content,
            "isError": self.is_error,
        }


class BaseTool(ABC):
    """
    Base class for all MCP tools.

    Provides argument validation against the declared schema and
    schema construction helpers.
    """

    # Tool metadata (must be defined by subclasses)
    name: str = ""
    description: str = ""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize tool with configuration.

        Args:
            config: Tool-specific configuration
        """
        self.config = config or {}
        self.logger = logger.bind(tool=self.name)

    @abstractmethod
    def get_schema(self) -> Tool:
        """
        Get the tool schema definition.

        Returns:
            Tool schema for MCP protocol
        """

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any], context: RequestContext) -> ToolResult:
        """
        Execute the tool with validated arguments.

        Args:
            arguments: Tool arguments from MCP request
            context: Transport metadata of the request

        Returns:
            Tool execution result
        """

    async def __call__(
        self,
        arguments: Dict[str, Any],
        context: Optional[RequestContext] = None,
    ) -> ToolResult:
        """
        Make tool callable for MCP handler integration.

        Raises:
            ToolValidationError: If arguments do not match the schema
        """
        self.validate_arguments(arguments)
        return await self.execute(arguments, context or RequestContext())

    def validate_arguments(self, arguments: Dict[str, Any]) -> None:
        """
        Validate tool arguments against schema.

        Args:
            arguments: Arguments to validate

        Raises:
            ToolValidationError: If validation fails
        """
        schema = self.get_schema()

        for required_param in schema.inputSchema.required:
            if required_param not in arguments:
                raise ToolValidationError(
                    f"Missing required parameter: {required_param}",
                    details={"missing_parameter": required_param},
                )

        for param_name, param_value in arguments.items():
            if param_name in schema.inputSchema.properties:
                param_def = schema.inputSchema.properties[param_name]
                self._validate_parameter(param_name, param_value, param_def)

    def _validate_parameter(
        self,
        name: str,
        value: Any,
        definition: ToolParameter,
    ) -> None:
        """
        Validate a single parameter.

        Raises:
            ToolValidationError: If validation fails
        """
        if definition.type == "string" and not isinstance(value, str):
            raise ToolValidationError(
                f"Parameter '{name}' must be a string",
                details={
                    "parameter": name,
                    "expected_type": "string",
                    "actual_type": type(value).__name__,
                },
            )

        if definition.minLength is not None and len(value) < definition.minLength:
            raise ToolValidationError(
                f"Parameter '{name}' must not be empty",
                details={
                    "parameter": name,
                    "min_length": definition.minLength,
                },
            )

    def _create_parameter(
        self,
        param_type: str,
        description: str,
        min_length: Optional[int] = None,
    ) -> ToolParameter:
        """Helper to create JSON Schema parameter definitions."""
        return ToolParameter(type=param_type, description=description, minLength=min_length)

    def _create_schema(
        self,
        parameters: Dict[str, ToolParameter],
        required: List[str],
    ) -> Tool:
        """Helper to create tool schema with proper JSON Schema format."""
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=ToolSchema(
                type="object",
                properties=parameters,
                required=required,
            ),
        )


class RekaTool(BaseTool):
    """
    Tool that answers with a single Reka completion.

    Resolves the API key, sends one prompt and passes the completion text
    through unchanged. Every failure after validation is returned as text.
    """

    error_prefix: str = "Error"

    def __init__(
        self,
        reka_client: RekaClient,
        default_api_key: Optional[str] = None,
        max_duration_seconds: Optional[float] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(config)
        self.reka_client = reka_client
        self.default_api_key = default_api_key
        self.max_duration_seconds = max_duration_seconds

    @abstractmethod
    def build_prompt(self, arguments: Dict[str, Any]) -> str:
        """Build the upstream instruction from validated arguments."""

    def describe_request(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Key-value pairs logged when an invocation starts."""
        return {}

    async def _complete(self, prompt: str, api_key: str) -> str:
        call = self.reka_client.complete(prompt, api_key)
        if self.max_duration_seconds is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.max_duration_seconds)

    async def execute(self, arguments: Dict[str, Any], context: RequestContext) -> ToolResult:
        start_time = time.monotonic()
        self.logger.info("Processing request", **self.describe_request(arguments))

        try:
            api_key = resolve_api_key(self.default_api_key, context.headers)
            self.logger.debug("API key available, proceeding")

            text = await self._complete(self.build_prompt(arguments), api_key)

        except (MissingCredentialError, RekaClientError) as e:
            return self._failure(e.message, start_time)
        except asyncio.TimeoutError:
            return self._failure(
                f"Reka API request timed out after {self.max_duration_seconds}s", start_time
            )
        except Exception as e:
            self.logger.error("Unexpected tool error", error=str(e), exc_info=True)
            return self._failure(str(e) or type(e).__name__, start_time)

        self.logger.info(
            "Request completed successfully",
            duration_ms=round((time.monotonic() - start_time) * 1000),
            response_length=len(text),
        )
        return ToolResult.text(text)

    def _failure(self, message: str, start_time: float) -> ToolResult:
        self.logger.error(
            "Request failed",
            error=message,
            duration_ms=round((time.monotonic() - start_time) * 1000),
        )
        return ToolResult.text(f"{self.error_prefix}: {message}")
