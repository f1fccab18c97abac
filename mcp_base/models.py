"""MCP definition and payload models."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PROTOCOL_VERSION = "2024-11-05"


class ToolDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    inputSchema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class ResourceDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    uri: str
    name: str
    description: Optional[str] = None
    mimeType: Optional[str] = None


class PromptArgument(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    required: Optional[bool] = None


class PromptDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    arguments: Optional[List[PromptArgument]] = None


class Content(BaseModel):
    """A piece of content in a tool result or prompt message."""

    type: Literal["text", "image", "resource"] = "text"
    text: Optional[str] = None
    data: Optional[str] = None
    mimeType: Optional[str] = None


class ToolResult(BaseModel):
    content: List[Content]
    isError: Optional[bool] = None

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolResult":
        return cls(content=[Content(type="text", text=text)], isError=is_error or None)


class ResourceContents(BaseModel):
    uri: str
    mimeType: Optional[str] = None
    text: Optional[str] = None
    blob: Optional[str] = None  # base64


class PromptMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: Content


# Per-method request params


class ClientInfo(BaseModel):
    name: str
    version: Optional[str] = None


class InitializeParams(BaseModel):
    protocolVersion: Optional[str] = None
    capabilities: Dict[str, Any] = Field(default_factory=dict)
    clientInfo: Optional[ClientInfo] = None


class ToolCallParams(BaseModel):
    name: str
    arguments: Optional[Dict[str, Any]] = None


class ResourceReadParams(BaseModel):
    uri: str


class PromptGetParams(BaseModel):
    name: str
    arguments: Optional[Dict[str, Any]] = None


class ServerCapabilities(BaseModel):
    """Capability descriptor exchanged during the initialize handshake."""

    model_config = ConfigDict(extra="allow")

    tools: Optional[Dict[str, Any]] = None
    resources: Optional[Dict[str, Any]] = None
    prompts: Optional[Dict[str, Any]] = None
    logging: Optional[Dict[str, Any]] = None
    experimental: Optional[Dict[str, Any]] = None


class ServerInfo(BaseModel):
    """Introspection snapshot of a running server."""

    name: str
    version: str
    transport: str
    capabilities: ServerCapabilities
