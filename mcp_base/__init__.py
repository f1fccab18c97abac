"""Request-dispatch and stdio transport core for MCP servers."""
from .jsonrpc import ErrorCode, JSONRPCError, JSONRPCHandler, JSONRPCRequest, JSONRPCResponse, Method
from .mcp_handler import EntryKind, MCPRegistry, RegistryEntry
from .capabilities import negotiate_capabilities
from .config import ServerOptions
from .models import (
    Content,
    PromptArgument,
    PromptDefinition,
    PromptMessage,
    ResourceContents,
    ResourceDefinition,
    ServerCapabilities,
    ToolDefinition,
    ToolResult,
)
from .mcp_transport import StdioTransport, parse_request
from .server import MCPServer, run, serve
from .utils.errors import MCPError

__version__ = "0.1.0"

__all__ = [
    "Content",
    "EntryKind",
    "ErrorCode",
    "JSONRPCError",
    "JSONRPCHandler",
    "JSONRPCRequest",
    "JSONRPCResponse",
    "MCPError",
    "MCPRegistry",
    "MCPServer",
    "Method",
    "PromptArgument",
    "PromptDefinition",
    "PromptMessage",
    "RegistryEntry",
    "ResourceContents",
    "ResourceDefinition",
    "ServerCapabilities",
    "ServerOptions",
    "StdioTransport",
    "ToolDefinition",
    "ToolResult",
    "negotiate_capabilities",
    "parse_request",
    "run",
    "serve",
]
