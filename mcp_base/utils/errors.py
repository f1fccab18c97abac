"""Custom exception classes for the MCP server."""
import traceback
from typing import Any, Optional

from ..jsonrpc.models import ErrorCode, JSONRPCError


class MCPError(Exception):
    """Base exception for MCP protocol errors.

    Carries the code, message and optional data of the JSON-RPC error object
    it will be converted to before reaching the transport.
    """

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_error(self) -> JSONRPCError:
        return JSONRPCError(code=self.code, message=self.message, data=self.data)

    @property
    def is_protocol_error(self) -> bool:
        return self.code in ErrorCode.PROTOCOL_ERRORS


class TransportClosedError(RuntimeError):
    """Raised when writing to a transport that has been closed."""

    pass


class RegistryFrozenError(RuntimeError):
    """Raised when registering after the server started serving."""

    pass


def parse_error(message: str, data: Optional[Any] = None) -> MCPError:
    return MCPError(ErrorCode.PARSE_ERROR, message, data)


def invalid_request(message: str, data: Optional[Any] = None) -> MCPError:
    return MCPError(ErrorCode.INVALID_REQUEST, message, data)


def method_not_found(method: str) -> MCPError:
    return MCPError(
        ErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}", {"method": method}
    )


def invalid_params(message: str, data: Optional[Any] = None) -> MCPError:
    return MCPError(ErrorCode.INVALID_PARAMS, message, data)


def internal_error(message: str, data: Optional[Any] = None) -> MCPError:
    return MCPError(ErrorCode.INTERNAL_ERROR, message, data)


def resource_not_found(uri: str) -> MCPError:
    return MCPError(ErrorCode.RESOURCE_NOT_FOUND, f"Resource not found: {uri}", {"uri": uri})


def resource_unavailable(uri: str, reason: Optional[str] = None) -> MCPError:
    """Resource exists but its handler could not produce contents."""
    suffix = f" ({reason})" if reason else ""
    return MCPError(
        ErrorCode.RESOURCE_UNAVAILABLE,
        f"Resource unavailable: {uri}{suffix}",
        {"uri": uri, "reason": reason},
    )


def tool_execution_error(tool: str, message: str, data: Optional[dict] = None) -> MCPError:
    """Tool is missing or its handler failed."""
    return MCPError(
        ErrorCode.TOOL_EXECUTION_ERROR,
        f"Tool execution failed: {tool} - {message}",
        {"tool": tool, **(data or {})},
    )


def prompt_not_found(name: str) -> MCPError:
    return MCPError(ErrorCode.PROMPT_NOT_FOUND, f"Prompt not found: {name}", {"name": name})


def error_from_exception(exc: BaseException) -> MCPError:
    """Convert an arbitrary exception into an MCP error.

    Structured errors pass through unchanged. Anything else becomes an
    INTERNAL_ERROR carrying the exception name, message and stack.
    """
    if isinstance(exc, MCPError):
        return exc

    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return internal_error(
        str(exc) or type(exc).__name__,
        {"name": type(exc).__name__, "message": str(exc), "stack": stack},
    )
