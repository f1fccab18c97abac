"""Example MCP server over stdio: ``python -m mcp_base``.

Registers an ``echo`` tool, a ``config://server`` resource and a
``greeting`` prompt.
"""
import json
import logging
import sys

from .config import ServerOptions
from .models import (
    Content,
    PromptArgument,
    PromptDefinition,
    PromptMessage,
    ResourceContents,
    ResourceDefinition,
    ToolDefinition,
    ToolResult,
)
from .server import MCPServer, run

logger = logging.getLogger(__name__)

ECHO_SCHEMA = {
    "type": "object",
    "properties": {
        "message": {"type": "string", "minLength": 1},
        "count": {"type": "integer", "minimum": 1, "maximum": 10, "default": 1},
    },
    "required": ["message"],
}


def register_all(server: MCPServer) -> None:
    """Register the example tool, resource and prompt."""
    validator = server.validator
    validator.compile("echo_args", ECHO_SCHEMA)

    # Tool: echo
    async def echo(arguments: dict) -> ToolResult:
        result = validator.validate("echo_args", arguments)
        if not result.success:
            return ToolResult.text(f"Validation error: {result.formatted_message()}", is_error=True)

        message, count = result.data["message"], result.data["count"]
        logger.info(f"Echo tool called: message={message!r} count={count}")
        return ToolResult.text(" ".join([message] * count))

    server.register_tool(
        ToolDefinition(
            name="echo",
            description="Echo back a message multiple times",
            inputSchema=ECHO_SCHEMA,
        ),
        echo,
    )

    # Resource: server configuration
    def read_config(uri: str) -> ResourceContents:
        return ResourceContents(
            uri=uri,
            mimeType="application/json",
            text=json.dumps(server.get_config().model_dump(exclude_none=True), indent=2),
        )

    server.register_resource(
        ResourceDefinition(
            uri="config://server",
            name="Server Configuration",
            description="Current server configuration",
            mimeType="application/json",
        ),
        read_config,
    )

    # Prompt: greeting
    def greeting(arguments: dict) -> list:
        name = arguments.get("name")
        if not name:
            raise ValueError("Argument 'name' is required")
        return [
            PromptMessage(
                role="user",
                content=Content(type="text", text=f"Say hello to {name} in a friendly way."),
            )
        ]

    server.register_prompt(
        PromptDefinition(
            name="greeting",
            description="Generate a greeting message",
            arguments=[PromptArgument(name="name", description="Name to greet", required=True)],
        ),
        greeting,
    )


def main() -> None:
    options = ServerOptions.from_env()
    # stdout carries the protocol; logs go to stderr
    logging.basicConfig(
        level=options.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run(MCPServer(options, setup=register_all))


if __name__ == "__main__":
    main()
