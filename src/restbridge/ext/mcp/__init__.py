"""Tool servers for registered operations.

Requires: pip install restbridge[mcp] and/or restbridge[http]
"""

from .server import (
    HTTPOperationServer,
    MCPServer,
    OperationServer,
    Transport,
    create_http_app,
    create_mcp_server,
    serve,
    serve_http,
    serve_mcp,
)

__all__ = [
    "OperationServer", "MCPServer", "HTTPOperationServer", "Transport",
    "serve", "serve_mcp", "serve_http", "create_http_app", "create_mcp_server",
]
