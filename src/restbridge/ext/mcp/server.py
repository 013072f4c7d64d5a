"""Tool servers exposing registered operations.

1. **FastMCP** - MCP protocol (stdio, SSE, streamable HTTP) for MCP clients
2. **HTTP/REST** - plain JSON endpoints for web backends

Every operation is advertised with its flat parameter schema; calls are
routed through the registry so validation, retry and error mapping are the
same on both adapters.

Example - MCP:
    >>> from restbridge.ext.mcp import serve_mcp
    >>> serve_mcp(registry, transport="stdio")

Example - HTTP endpoints:
    >>> from restbridge.ext.mcp import create_http_app
    >>> app = create_http_app(registry)

Requires: pip install restbridge[mcp] (for FastMCP)
         pip install restbridge[http] (for HTTP endpoints)
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Literal

from restbridge.foundation.errors import ErrorCode, OperationError
from restbridge.runtime.observability import configure_logging

if TYPE_CHECKING:
    from restbridge.binding import BoundOperation
    from restbridge.foundation.config import RestbridgeSettings
    from restbridge.registry import OperationRegistry

logger = logging.getLogger("restbridge.server")

Transport = Literal["stdio", "sse", "streamable-http", "http"]


def _error_payload(error: OperationError) -> dict[str, Any]:
    return {"error": error.to_dict()}


def _http_status(error: OperationError) -> int:
    """HTTP status for a failed invocation.

    Unknown ids are 404, rejected arguments 400, failures of the underlying
    call 502.
    """
    if error.cause_value is None:
        return 404 if error.code is ErrorCode.NOT_FOUND else 400
    return 502


class OperationServer(ABC):
    """Abstract base for server adapters over an ``OperationRegistry``."""

    __slots__ = ("_name", "_registry")

    def __init__(self, name: str, registry: OperationRegistry) -> None:
        self._name = name
        self._registry = registry

    @property
    def name(self) -> str:
        return self._name

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    @abstractmethod
    def run(self, **kwargs: Any) -> None:
        """Start the server (blocking)."""
        ...

    def list_tools(self) -> list[dict[str, Any]]:
        """List all operations with flat input schemas."""
        return self._registry.list_operations()

    async def _dispatch(self, name: str, args: Mapping[str, Any]) -> tuple[int, dict[str, Any]]:
        try:
            return 200, {"result": await self._registry.invoke(name, args)}
        except OperationError as e:
            return _http_status(e), _error_payload(e)

    async def invoke(self, name: str, args: Mapping[str, Any]) -> dict[str, Any]:
        """Invoke an operation by name.

        Returns ``{"result": ...}`` on success or ``{"error": {...}}`` on
        failure instead of raising.
        """
        _, payload = await self._dispatch(name, args)
        return payload


# ═══════════════════════════════════════════════════════════════════════════════
# FastMCP Adapter
# ═══════════════════════════════════════════════════════════════════════════════


def _import_fastmcp() -> Any:
    try:
        import fastmcp
    except ImportError as e:
        raise ImportError(
            "MCP integration requires fastmcp. "
            "Install with: pip install restbridge[mcp]"
        ) from e
    return fastmcp


@lru_cache(maxsize=1)
def _tool_class() -> type:
    from fastmcp.exceptions import ToolError
    from fastmcp.tools.tool import Tool, ToolResult

    class OperationTool(Tool):
        """FastMCP tool whose input schema is an operation's flat schema."""

        call: Callable[[dict[str, Any]], Awaitable[Any]]

        async def run(self, arguments: dict[str, Any]) -> ToolResult:
            try:
                payload = await self.call(arguments)
            except OperationError as e:
                raise ToolError(f"{e.code.value}: {e.message}") from e
            return ToolResult(content=json.dumps(payload, default=str))

    return OperationTool


def _operation_tool(bound: BoundOperation) -> Any:
    from mcp.types import ToolAnnotations

    return _tool_class()(
        name=bound.id,
        description=bound.description,
        parameters=bound.json_schema(),
        annotations=ToolAnnotations(**bound.annotations) if bound.annotations else None,
        call=bound,
    )


class MCPServer(OperationServer):
    """FastMCP-backed server for MCP clients.

    Example:
        >>> server = MCPServer("vtex", registry)
        >>> server.run(transport="sse", port=8080)
    """

    __slots__ = ("_mcp",)

    def __init__(self, name: str, registry: OperationRegistry) -> None:
        super().__init__(name, registry)
        self._mcp = self._create_server()

    def _create_server(self) -> Any:
        fastmcp = _import_fastmcp()
        mcp = fastmcp.FastMCP(self._name)
        for bound in self._registry:
            mcp.add_tool(_operation_tool(bound))
        logger.info("MCP server '%s' exposing %d operations", self._name, len(self._registry))
        return mcp

    def run(
        self,
        transport: Transport = "stdio",
        *,
        host: str = "127.0.0.1",
        port: int = 8080,
    ) -> None:
        """Start MCP server.

        Args:
            transport: "stdio", "sse", "streamable-http" or "http"
            host: Host for HTTP transports
            port: Port for HTTP transports
        """
        if transport == "stdio":
            self._mcp.run()
        else:
            self._mcp.run(transport=transport, host=host, port=port)

    @property
    def fastmcp(self) -> Any:
        """Access underlying FastMCP instance."""
        return self._mcp


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP REST Adapter
# ═══════════════════════════════════════════════════════════════════════════════


class HTTPOperationServer(OperationServer):
    """HTTP/REST server for web backend integration.

    - GET  /operations              → list operations
    - GET  /operations/{id}/schema  → flat input schema
    - POST /operations/{id}         → invoke with a JSON object body
    """

    __slots__ = ("_app",)

    def __init__(self, name: str, registry: OperationRegistry) -> None:
        super().__init__(name, registry)
        self._app = self._create_app()

    def _create_app(self) -> Any:
        try:
            from starlette.applications import Starlette
            from starlette.requests import Request
            from starlette.responses import JSONResponse
            from starlette.routing import Route
        except ImportError as e:
            raise ImportError(
                "HTTP server requires starlette. "
                "Install with: pip install restbridge[http]"
            ) from e

        async def list_operations(request: Request) -> JSONResponse:
            return JSONResponse({"server": self._name, "operations": self.list_tools()})

        async def get_schema(request: Request) -> JSONResponse:
            name = request.path_params["id"]
            if (op := self._registry.get(name)) is None:
                return JSONResponse(
                    _error_payload(OperationError(name, f"Operation '{name}' not found", ErrorCode.NOT_FOUND)),
                    status_code=404,
                )
            return JSONResponse({
                "name": op.id,
                "description": op.description,
                "inputSchema": op.json_schema(),
            })

        async def invoke_operation(request: Request) -> JSONResponse:
            name = request.path_params["id"]
            raw = await request.body()
            try:
                args = json.loads(raw) if raw else {}
            except ValueError:
                args = None
            if not isinstance(args, dict):
                error = OperationError(name, "Invalid parameters: body must be a JSON object", ErrorCode.INVALID_PARAMS)
                return JSONResponse(_error_payload(error), status_code=400)

            status, payload = await self._dispatch(name, args)
            return JSONResponse(json.loads(json.dumps(payload, default=str)), status_code=status)

        return Starlette(routes=[
            Route("/operations", list_operations, methods=["GET"]),
            Route("/operations/{id}", invoke_operation, methods=["POST"]),
            Route("/operations/{id}/schema", get_schema, methods=["GET"]),
        ])

    def run(self, host: str = "127.0.0.1", port: int = 8000) -> None:
        """Start HTTP server."""
        try:
            import uvicorn
        except ImportError as e:
            raise ImportError(
                "HTTP server requires uvicorn. "
                "Install with: pip install restbridge[http]"
            ) from e

        uvicorn.run(self._app, host=host, port=port)

    @property
    def app(self) -> Any:
        """ASGI app for embedding in larger applications."""
        return self._app


# ═══════════════════════════════════════════════════════════════════════════════
# Factory Functions
# ═══════════════════════════════════════════════════════════════════════════════


def serve_mcp(
    registry: OperationRegistry,
    *,
    name: str = "restbridge",
    transport: Transport = "stdio",
    host: str = "127.0.0.1",
    port: int = 8080,
) -> None:
    """Expose operations via the MCP protocol."""
    MCPServer(name, registry).run(transport=transport, host=host, port=port)


def serve_http(
    registry: OperationRegistry,
    *,
    name: str = "restbridge",
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:
    """Expose operations via HTTP REST endpoints."""
    HTTPOperationServer(name, registry).run(host=host, port=port)


def serve(registry: OperationRegistry, settings: RestbridgeSettings) -> None:
    """Configure logging from ``settings.logging`` and start the MCP server
    configured by ``settings.server``.
    """
    configure_logging(settings.logging)
    server = settings.server
    serve_mcp(registry, name=server.name, transport=server.transport, host=server.host, port=server.port)


def create_http_app(registry: OperationRegistry, name: str = "restbridge") -> Any:
    """Create the Starlette ASGI app without running it.

    Example:
        >>> main_app = Starlette()
        >>> main_app.mount("/tools", create_http_app(registry))
    """
    return HTTPOperationServer(name, registry).app


def create_mcp_server(registry: OperationRegistry, name: str = "restbridge") -> MCPServer:
    """Create MCP server without starting it."""
    return MCPServer(name, registry)
