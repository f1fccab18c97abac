"""MCP server: registry, dispatcher and stdio transport composed together."""
import asyncio
import logging
import signal
import sys
from typing import Awaitable, Callable, Optional, Set, TextIO, Union

from .config import ServerOptions
from .jsonrpc.handler import JSONRPCHandler, invoke
from .jsonrpc.models import JSONRPCResponse
from .mcp_handler import MCPRegistry
from .mcp_transport import (
    StdioTransport,
    connect_stdin,
    parse_error_response,
    parse_request,
    read_lines,
)
from .models import (
    PromptDefinition,
    ResourceDefinition,
    ServerCapabilities,
    ServerInfo,
    ToolDefinition,
)
from .utils.errors import MCPError, TransportClosedError
from .utils.validation import SchemaValidator

module_logger = logging.getLogger(__name__)

SetupHook = Callable[["MCPServer"], Union[None, Awaitable[None]]]


class MCPServer:
    """An MCP server serving one stdio channel.

    Registration happens in ``setup``, which receives the server and runs
    once at the beginning of :meth:`start`. The registry is frozen before the
    first line is read.

    ``logger`` replaces the module logger for lifecycle messages and
    ``validator`` is shared with handlers as ``server.validator``. ``output``
    is the stream responses are written to (stdout when omitted).
    """

    def __init__(
        self,
        options: ServerOptions,
        setup: Optional[SetupHook] = None,
        logger: Optional[logging.Logger] = None,
        validator: Optional[SchemaValidator] = None,
        output: Optional[TextIO] = None,
    ):
        self.options = options
        self.setup = setup
        self.logger = logger if logger is not None else module_logger
        self.validator = validator if validator is not None else SchemaValidator()
        self.registry = MCPRegistry()
        self.jsonrpc_handler = JSONRPCHandler(
            self.registry,
            server_name=options.name,
            server_version=options.version,
            static_capabilities=options.static_capabilities,
            default_protocol_version=options.protocol_version,
        )
        self.transport: Optional[StdioTransport] = None
        self._output = output
        self._in_flight: Set[asyncio.Task] = set()
        self._stopped = False

    def register_tool(self, definition: ToolDefinition, handler: Callable) -> None:
        self.registry.register_tool(definition, handler)

    def register_resource(self, definition: ResourceDefinition, handler: Callable) -> None:
        self.registry.register_resource(definition, handler)

    def register_prompt(self, definition: PromptDefinition, handler: Callable) -> None:
        self.registry.register_prompt(definition, handler)

    def capabilities(self) -> ServerCapabilities:
        return self.jsonrpc_handler.capabilities()

    def get_config(self) -> ServerInfo:
        return ServerInfo(
            name=self.options.name,
            version=self.options.version,
            transport=self.options.transport,
            capabilities=self.capabilities(),
        )

    async def start(self, reader: Optional[asyncio.StreamReader] = None) -> None:
        """Run setup, then serve lines from ``reader`` (stdin by default) until EOF."""
        self.logger.info(
            f"Starting MCP server: name={self.options.name} "
            f"version={self.options.version} transport={self.options.transport}"
        )

        try:
            if self.setup is not None:
                await invoke(self.setup, self)
            self.registry.freeze()

            counts = self.registry.counts()
            self.logger.info(
                f"Registered {counts['tool']} tools, {counts['resource']} resources, "
                f"{counts['prompt']} prompts"
            )

            self.transport = StdioTransport(self._output)
            if reader is None:
                reader = await connect_stdin(self.options.max_line_bytes)
        except Exception:
            self.logger.error("Failed to start server", exc_info=True)
            raise

        self.logger.info("Listening on stdio")
        async for line in read_lines(reader):
            task = asyncio.create_task(self._process_line(line))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

        self.logger.info("Stdio closed")
        await self._drain()
        await self.stop()

    async def stop(self) -> None:
        """Close the transport. In-flight handlers are left to finish."""
        if self._stopped:
            return
        self._stopped = True
        self.logger.info("Stopping MCP server")
        if self.transport is not None:
            await self.transport.close()

    async def _drain(self) -> None:
        if not self._in_flight:
            return
        grace = self.options.shutdown_grace
        _, pending = await asyncio.wait(set(self._in_flight), timeout=grace)
        if pending:
            self.logger.warning(f"Closing transport with {len(pending)} request(s) still in flight")

    async def _process_line(self, line: Union[str, MCPError]) -> None:
        response: Optional[JSONRPCResponse]
        if isinstance(line, MCPError):
            # Oversized line, dropped by the reader before decoding
            response = JSONRPCResponse(id=None, error=line.to_error())
        else:
            try:
                request = parse_request(line)
            except MCPError as e:
                self.logger.warning(f"Rejected malformed input: {e.message}")
                response = parse_error_response(line, e)
            else:
                response = await self.jsonrpc_handler.handle_message(request)

        if response is None or self.transport is None:
            return
        try:
            await self.transport.send(response)
        except TransportClosedError:
            self.logger.warning(f"Dropping response id={response.id}: transport closed")
        except Exception:
            self.logger.error(f"Failed to write response id={response.id}", exc_info=True)


async def serve(server: MCPServer, reader: Optional[asyncio.StreamReader] = None) -> int:
    """Run ``server`` until EOF or SIGINT/SIGTERM; returns the exit status."""
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()

    def on_signal(sig: signal.Signals) -> None:
        server.logger.info(f"Received {sig.name}")
        stop_requested.set()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, on_signal, sig)
            installed.append(sig)
        except NotImplementedError:
            # Event loops without signal support (Windows)
            server.logger.debug(f"Signal handlers unavailable for {sig.name}")

    serve_task = asyncio.create_task(server.start(reader))
    signal_task = asyncio.create_task(stop_requested.wait())
    try:
        done, _ = await asyncio.wait(
            {serve_task, signal_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if signal_task in done:
            await server.stop()
            serve_task.cancel()
            return 0

        serve_task.result()
        return 0
    finally:
        signal_task.cancel()
        for sig in installed:
            loop.remove_signal_handler(sig)


def run(server: MCPServer) -> None:
    """Process entry point: serve, then exit 0 (or 1 on start-up failure)."""
    try:
        status = asyncio.run(serve(server))
    except Exception as e:
        server.logger.error(f"Server terminated: {e}")
        status = 1
    sys.exit(status)
