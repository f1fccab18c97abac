"""JSON-RPC 2.0 request/response models."""
from enum import Enum
from pydantic import BaseModel
from typing import Any, Dict, Optional, Union, Literal

JSONRPC_VERSION = "2.0"


class JSONRPCRequest(BaseModel):
    """JSON-RPC 2.0 request model.

    A request without an ``id`` is a notification and is never answered.
    """

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: str
    params: Optional[Any] = None
    id: Optional[Union[int, str]] = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class JSONRPCError(BaseModel):
    """JSON-RPC 2.0 error model."""

    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCResponse(BaseModel):
    """JSON-RPC 2.0 response model."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: Optional[Union[int, str]]
    result: Optional[Any] = None
    error: Optional[JSONRPCError] = None

    def to_wire(self) -> Dict[str, Any]:
        """Dump to the wire shape: exactly one of ``result`` or ``error``."""
        data: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump(exclude_none=True)
        else:
            data["result"] = self.result
        return data


class ErrorCode:
    """JSON-RPC 2.0 standard error codes and MCP application codes."""

    # Standard JSON-RPC 2.0 error codes
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # MCP application error codes
    RESOURCE_NOT_FOUND = -32001
    RESOURCE_UNAVAILABLE = -32002
    TOOL_EXECUTION_ERROR = -32003
    PROMPT_NOT_FOUND = -32004

    PROTOCOL_ERRORS = frozenset(
        {PARSE_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND, INVALID_PARAMS, INTERNAL_ERROR}
    )
    DOMAIN_ERRORS = frozenset(
        {RESOURCE_NOT_FOUND, RESOURCE_UNAVAILABLE, TOOL_EXECUTION_ERROR, PROMPT_NOT_FOUND}
    )


class Method(str, Enum):
    """Methods served by the dispatcher."""

    INITIALIZE = "initialize"
    PING = "ping"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    RESOURCES_LIST = "resources/list"
    RESOURCES_READ = "resources/read"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"
