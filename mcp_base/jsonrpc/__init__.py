"""JSON-RPC 2.0 implementation for MCP protocol."""
from .models import JSONRPCRequest, JSONRPCResponse, JSONRPCError, ErrorCode, Method
from .handler import JSONRPCHandler

__all__ = [
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCError",
    "ErrorCode",
    "Method",
    "JSONRPCHandler",
]
