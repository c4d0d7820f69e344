"""
Transport layer for MCP protocol communication.

Implements stdio transport for local MCP hosts and an HTTP transport with two
bindings: stateless request/response on ``/mcp`` and a server-sent events
stream on ``/sse`` fed by ``/message``.
"""

import asyncio
import json
import sys
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Set, Union

import structlog
from aiohttp import web
from pydantic import ValidationError

from .schemas import (
    MCPMessage,
    MCPNotification,
    MCPRequest,
    MCPResponse,
    RequestContext,
    ServerInfo,
)

logger = structlog.get_logger(__name__)

MessageHandler = Callable[[MCPRequest, RequestContext], Awaitable[MCPResponse]]


class TransportError(Exception):
    """Base exception for transport errors."""

    pass


class InvalidMessageError(TransportError):
    """Incoming payload is JSON but not a JSON-RPC message."""


def parse_message(raw: Union[str, bytes]) -> Union[MCPRequest, MCPNotification]:
    """
    Parse one JSON-RPC message.

    Raises:
        json.JSONDecodeError: If the payload is not JSON
        UnicodeDecodeError: If a bytes payload is not valid UTF-8
        InvalidMessageError: If the payload is not a request or notification
    """
    message_data = json.loads(raw)
    if not isinstance(message_data, dict) or "method" not in message_data:
        raise InvalidMessageError("Expected a JSON-RPC request or notification")

    try:
        if "id" in message_data:
            return MCPRequest(**message_data)
        return MCPNotification(**message_data)
    except ValidationError as e:
        raise InvalidMessageError(str(e))


def create_error_response(
    request_id: Any,
    code: int,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> MCPResponse:
    """Create an error response."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if data:
        error["data"] = data
    return MCPResponse(id=request_id, error=error)


class _BaseTransport:
    """Shared handler wiring for all transports."""

    def __init__(self):
        self._message_handler: Optional[MessageHandler] = None

    def set_message_handler(self, handler: MessageHandler) -> None:
        """Set the message handler for incoming requests."""
        self._message_handler = handler

    async def _safe_call_handler(
        self, request: MCPRequest, context: RequestContext
    ) -> MCPResponse:
        """Call the message handler, turning unexpected failures into error responses."""
        if not self._message_handler:
            logger.error("No message handler set")
            return create_error_response(request.id, -32603, "Internal error: no message handler")

        try:
            logger.debug("Calling message handler", method=request.method, request_id=request.id)
            return await self._message_handler(request, context)
        except Exception as e:
            logger.error("Handler error", error=str(e), exc_info=True)
            return create_error_response(request.id, -32603, f"Internal error: {e}")


class StdioTransport(_BaseTransport):
    """
    Stdio transport for MCP communication.

    Handles JSON-RPC message exchange over stdin/stdout. There are no
    request headers on this transport, so only the configured API key applies.
    """

    def __init__(self):
        super().__init__()
        self._running = False
        self._write_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    async def start(self) -> None:
        """Start the stdio transport loop."""
        if self._running:
            raise TransportError("Transport is already running")

        if not self._message_handler:
            raise TransportError("Message handler not set")

        self._running = True
        logger.info("Starting stdio transport")

        try:
            await self._run_transport_loop()
            await self._drain()
        except Exception as e:
            logger.error("Transport loop error", error=str(e), exc_info=True)
            raise
        finally:
            self._running = False
            logger.info("Stdio transport stopped")

    async def _drain(self) -> None:
        """Wait for requests still in flight after stdin closes."""
        if self._tasks:
            logger.info("Waiting for pending requests", pending=len(self._tasks))
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Stop the stdio transport."""
        self._running = False
        for task in list(self._tasks):
            task.cancel()

    async def send_message(self, message: MCPMessage) -> None:
        """
        Send a message via stdout.

        Args:
            message: Message to send
        """
        try:
            message_json = json.dumps(message.model_dump(), separators=(",", ":"))

            async with self._write_lock:
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(None, self._write_stdout_sync, message_json)

            logger.debug("Sent message", message_type=type(message).__name__)

        except Exception as e:
            logger.error("Failed to send message", error=str(e), exc_info=True)
            raise TransportError(f"Failed to send message: {e}")

    def _write_stdout_sync(self, message_json: str) -> None:
        sys.stdout.write(message_json + "\n")
        sys.stdout.flush()

    async def send_response(self, response: MCPResponse) -> None:
        """Send a response message."""
        logger.debug(
            "Sending MCP response",
            response_id=response.id,
            has_result=response.result is not None,
            has_error=response.error is not None,
        )
        await self.send_message(response)

    async def _run_transport_loop(self) -> None:
        """Main transport loop for processing stdin messages."""
        logger.debug("Starting transport loop")

        async for line in self._read_stdin_lines():
            if not self._running:
                break

            try:
                await self._process_line(line)
            except Exception as e:
                logger.error("Error processing line", error=str(e), line=line[:100])
                # Continue processing other messages

    async def _read_stdin_lines(self) -> AsyncIterator[str]:
        """Async generator for reading lines from stdin."""
        loop = asyncio.get_running_loop()

        while self._running:
            line = await loop.run_in_executor(None, sys.stdin.readline)

            if not line:  # EOF
                logger.info("Received EOF on stdin")
                break

            line = line.strip()
            if line:
                yield line

    async def _process_line(self, line: str) -> None:
        """
        Process a single line from stdin.

        Requests are answered from independent tasks so a slow upstream call
        does not hold up the next message.
        """
        try:
            message = parse_message(line)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON received", error=str(e), line=line[:100])
            await self.send_response(create_error_response(None, -32700, "Parse error"))
            return
        except InvalidMessageError as e:
            logger.error("Invalid request format", error=str(e))
            await self.send_response(create_error_response(None, -32600, f"Invalid request: {e}"))
            return

        if isinstance(message, MCPNotification):
            logger.info("Received notification", method=message.method)
            return

        logger.info("Processing request", method=message.method, request_id=message.id)
        task = asyncio.create_task(self._respond(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _respond(self, request: MCPRequest) -> None:
        response = await self._safe_call_handler(request, RequestContext(transport="stdio"))
        await self.send_response(response)


@dataclass
class SSESession:
    """One open event stream and the requests it is answering."""

    session_id: str
    queue: "asyncio.Queue[Optional[str]]" = field(default_factory=asyncio.Queue)
    tasks: Set[asyncio.Task] = field(default_factory=set)


class HttpTransport(_BaseTransport):
    """
    HTTP transport for MCP communication.

    Serves the stateless ``POST /mcp`` binding and the streaming
    ``GET /sse`` + ``POST /message`` binding from one aiohttp application.
    Both pass the inbound request headers to the message handler.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 3000,
        server_info: Optional[ServerInfo] = None,
    ):
        super().__init__()
        self.host = host
        self.port = port
        self.server_info = server_info or ServerInfo()
        self._runner: Optional[web.AppRunner] = None
        self._sessions: Dict[str, SSESession] = {}
        self.tool_names: List[str] = []

    def build_app(self) -> web.Application:
        """Create the aiohttp application serving both bindings."""
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_post("/mcp", self._handle_stateless)
        app.router.add_get("/sse", self._handle_sse)
        app.router.add_post("/message", self._handle_sse_message)
        app.on_shutdown.append(self._close_sessions)
        return app

    async def start(self) -> None:
        """Start HTTP server."""
        if self._runner is not None:
            raise TransportError("Transport is already running")

        if not self._message_handler:
            raise TransportError("Message handler not set")

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("HTTP transport listening", host=self.host, port=self.port)

    async def stop(self) -> None:
        """Stop HTTP server."""
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        logger.info("HTTP transport stopped")

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "status": "ok",
                "server": self.server_info.name,
                "version": self.server_info.version,
                "tools": self.tool_names,
                "active_sessions": self.active_sessions,
            }
        )

    def _parse_http_message(
        self, raw: bytes
    ) -> Union[MCPRequest, MCPNotification, web.Response]:
        """Parse a posted message, or build the HTTP 400 answer if it is invalid."""
        try:
            return parse_message(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Invalid JSON received", error=str(e))
            error = create_error_response(None, -32700, "Parse error")
        except InvalidMessageError as e:
            logger.error("Invalid request format", error=str(e))
            error = create_error_response(None, -32600, f"Invalid request: {e}")
        return web.json_response(error.model_dump(), status=400)

    async def _handle_stateless(self, request: web.Request) -> web.Response:
        """Handle one JSON-RPC message and answer in the HTTP response."""
        raw = await request.read()
        message = self._parse_http_message(raw)
        if isinstance(message, web.Response):
            return message

        if isinstance(message, MCPNotification):
            logger.info("Received notification", method=message.method)
            return web.Response(status=202)

        logger.info(
            "Processing request", method=message.method, request_id=message.id, transport="http"
        )
        context = RequestContext(transport="http", headers=request.headers)
        response = await self._safe_call_handler(message, context)
        return web.json_response(response.model_dump())

    async def _handle_sse(self, request: web.Request) -> web.StreamResponse:
        """Open an event stream and announce the endpoint for posting messages."""
        session = SSESession(session_id=uuid.uuid4().hex)
        response = web.StreamResponse(
            headers={
                "Content-Type": "text/event-stream",
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
            }
        )
        await response.prepare(request)

        self._sessions[session.session_id] = session
        logger.info("SSE session opened", session_id=session.session_id)

        try:
            await self._write_event(response, "endpoint", f"/message?sessionId={session.session_id}")
            while True:
                payload = await session.queue.get()
                if payload is None:
                    break
                await self._write_event(response, "message", payload)
        except ConnectionResetError:
            logger.info("SSE client disconnected", session_id=session.session_id)
        finally:
            self._sessions.pop(session.session_id, None)
            for task in list(session.tasks):
                task.cancel()
            logger.info("SSE session closed", session_id=session.session_id)

        return response

    async def _handle_sse_message(self, request: web.Request) -> web.Response:
        """Accept a message for an open stream; the answer is sent as an event."""
        session_id = request.query.get("sessionId", "")
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("Message for unknown SSE session", session_id=session_id)
            return web.Response(status=404, text="Session not found")

        raw = await request.read()
        message = self._parse_http_message(raw)
        if isinstance(message, web.Response):
            return message

        if isinstance(message, MCPNotification):
            logger.info("Received notification", method=message.method, session_id=session_id)
            return web.Response(status=202, text="Accepted")

        logger.info(
            "Processing request",
            method=message.method,
            request_id=message.id,
            transport="sse",
            session_id=session_id,
        )
        context = RequestContext(
            transport="sse",
            headers=request.headers.copy(),
            session_id=session_id,
        )
        task = asyncio.create_task(self._respond_on_stream(session, message, context))
        session.tasks.add(task)
        task.add_done_callback(session.tasks.discard)
        return web.Response(status=202, text="Accepted")

    async def _respond_on_stream(
        self, session: SSESession, request: MCPRequest, context: RequestContext
    ) -> None:
        response = await self._safe_call_handler(request, context)
        await session.queue.put(json.dumps(response.model_dump(), separators=(",", ":")))

    @staticmethod
    async def _write_event(response: web.StreamResponse, event: str, data: str) -> None:
        await response.write(f"event: {event}\ndata: {data}\n\n".encode("utf-8"))

    async def _close_sessions(self, app: web.Application) -> None:
        for session in list(self._sessions.values()):
            session.queue.put_nowait(None)
