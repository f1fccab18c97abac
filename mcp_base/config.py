"""Server configuration."""
import os
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .mcp_transport import DEFAULT_LINE_LIMIT
from .models import DEFAULT_PROTOCOL_VERSION


class ServerOptions(BaseModel):
    """Options for an MCP server instance."""

    name: str
    version: str = "0.1.0"
    transport: Literal["stdio"] = "stdio"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    # Seconds to wait for in-flight dispatches after input EOF; None waits forever
    shutdown_grace: Optional[float] = 5.0
    static_capabilities: Dict[str, Any] = Field(default_factory=dict)
    # Longest accepted input line in bytes; longer lines get a PARSE_ERROR
    max_line_bytes: int = Field(default=DEFAULT_LINE_LIMIT, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def from_env(cls, **overrides: Any) -> "ServerOptions":
        """Build options from environment variables, then apply overrides."""
        values: Dict[str, Any] = {
            "name": os.getenv("MCP_SERVER_NAME", "mcp-base-server"),
            "version": os.getenv("MCP_SERVER_VERSION", "0.1.0"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }
        grace = os.getenv("MCP_SHUTDOWN_GRACE")
        if grace is not None:
            values["shutdown_grace"] = None if grace.lower() in ("", "none") else float(grace)
        max_line = os.getenv("MCP_MAX_LINE_BYTES")
        if max_line:
            values["max_line_bytes"] = int(max_line)
        values.update(overrides)
        return cls(**values)
