"""JSON-RPC 2.0 request dispatcher for the MCP methods."""
from typing import Any, Awaitable, Callable, Dict, List, Optional
import inspect
import logging

from pydantic import BaseModel, ValidationError

from ..capabilities import negotiate_capabilities
from ..mcp_handler import EntryKind, MCPRegistry
from ..models import (
    DEFAULT_PROTOCOL_VERSION,
    ClientInfo,
    InitializeParams,
    PromptDefinition,
    PromptGetParams,
    ResourceReadParams,
    ServerCapabilities,
    ToolCallParams,
)
from ..utils import errors
from .models import (
    JSONRPCRequest,
    JSONRPCResponse,
    Method,
)

logger = logging.getLogger(__name__)


def to_jsonable(value: Any) -> Any:
    """Dump pydantic models (also nested in lists/dicts) to plain JSON values."""
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_none=True)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    return value


async def invoke(handler: Callable, *args: Any) -> Any:
    """Call a sync or async handler and wait for its completion."""
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _validation_details(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]


class JSONRPCHandler:
    """Handles JSON-RPC 2.0 requests and routes them to the MCP registry.

    Routing is a fixed table keyed by :class:`Method`. :meth:`handle_request`
    never raises: every failure becomes an error response carrying the
    request id.
    """

    def __init__(
        self,
        registry: MCPRegistry,
        server_name: str,
        server_version: str,
        static_capabilities: Optional[Dict[str, Any]] = None,
        default_protocol_version: str = DEFAULT_PROTOCOL_VERSION,
    ):
        self.registry = registry
        self.server_name = server_name
        self.server_version = server_version
        self.static_capabilities = static_capabilities or {}
        self.default_protocol_version = default_protocol_version

        # Filled in by the initialize handshake
        self.protocol_version: Optional[str] = None
        self.client_info: Optional[ClientInfo] = None
        self.client_capabilities: Dict[str, Any] = {}

        self.methods: Dict[Method, Callable[[Any], Awaitable[Any]]] = {
            Method.INITIALIZE: self._initialize,
            Method.PING: self._ping,
            Method.TOOLS_LIST: self._tools_list,
            Method.TOOLS_CALL: self._tools_call,
            Method.RESOURCES_LIST: self._resources_list,
            Method.RESOURCES_READ: self._resources_read,
            Method.PROMPTS_LIST: self._prompts_list,
            Method.PROMPTS_GET: self._prompts_get,
        }

    def capabilities(self) -> ServerCapabilities:
        return negotiate_capabilities(self.registry, self.static_capabilities)

    async def handle_request(self, request: JSONRPCRequest) -> JSONRPCResponse:
        """Handle a JSON-RPC 2.0 request.

        Args:
            request: A well-formed JSONRPCRequest (parsing happens in the transport)

        Returns:
            JSONRPCResponse with result or error
        """
        logger.info(f"Handling request: method={request.method} id={request.id}")

        try:
            try:
                method = Method(request.method)
            except ValueError:
                raise errors.method_not_found(request.method) from None

            handler = self.methods[method]
            result = await handler(request.params)

            return JSONRPCResponse(id=request.id, result=to_jsonable(result))

        except errors.MCPError as e:
            logger.warning(
                f"Request failed: method={request.method} id={request.id} "
                f"code={e.code} message={e.message}"
            )
            return JSONRPCResponse(id=request.id, error=e.to_error())
        except ValidationError as e:
            # Params did not match the method's params model
            logger.warning(f"Invalid params for {request.method}: {e.error_count()} error(s)")
            return JSONRPCResponse(
                id=request.id,
                error=errors.invalid_params(
                    f"Invalid params for {request.method}", _validation_details(e)
                ).to_error(),
            )
        except Exception as e:
            logger.error(f"Internal error handling {request.method}: {e}", exc_info=True)
            return JSONRPCResponse(
                id=request.id, error=errors.error_from_exception(e).to_error()
            )

    async def handle_message(self, request: JSONRPCRequest) -> Optional[JSONRPCResponse]:
        """Handle a request or notification.

        Notifications are dispatched for their side effects but never answered.
        """
        response = await self.handle_request(request)
        if request.is_notification:
            if response.error is not None:
                logger.debug(
                    f"Notification {request.method} failed: {response.error.message}"
                )
            return None
        return response

    # Built-in methods

    async def _initialize(self, params: Any) -> Dict[str, Any]:
        init = InitializeParams.model_validate(params or {})
        version = init.protocolVersion or self.default_protocol_version
        self.protocol_version = version
        self.client_info = init.clientInfo
        self.client_capabilities = init.capabilities

        client_name = init.clientInfo.name if init.clientInfo else "unknown"
        logger.info(f"Initializing: client={client_name} protocolVersion={version}")
        if version != self.default_protocol_version:
            logger.warning(f"Client protocol version mismatch: {version}")

        return {
            "protocolVersion": version,
            "capabilities": self.capabilities().model_dump(exclude_none=True),
            "serverInfo": {"name": self.server_name, "version": self.server_version},
        }

    async def _ping(self, params: Any) -> Dict[str, Any]:
        return {}

    async def _tools_list(self, params: Any) -> Dict[str, Any]:
        return {"tools": self.registry.list_tools()}

    async def _tools_call(self, params: Any) -> Any:
        call = ToolCallParams.model_validate(params or {})
        entry = self.registry.lookup(EntryKind.TOOL, call.name)
        if entry is None:
            raise errors.tool_execution_error(call.name, "Tool not found")

        logger.debug(f"Executing tool: {call.name}")
        try:
            return await invoke(entry.handler, call.arguments or {})
        except Exception as e:
            logger.warning(f"Tool {call.name} failed: {e}", exc_info=True)
            raise errors.tool_execution_error(call.name, str(e) or type(e).__name__) from e

    async def _resources_list(self, params: Any) -> Dict[str, Any]:
        return {"resources": self.registry.list_resources()}

    async def _resources_read(self, params: Any) -> Dict[str, Any]:
        read = ResourceReadParams.model_validate(params or {})
        entry = self.registry.lookup(EntryKind.RESOURCE, read.uri)
        if entry is None:
            raise errors.resource_not_found(read.uri)

        logger.debug(f"Reading resource: {read.uri}")
        try:
            contents = await invoke(entry.handler, read.uri)
        except Exception as e:
            logger.warning(f"Resource {read.uri} unavailable: {e}", exc_info=True)
            raise errors.resource_unavailable(read.uri, str(e) or type(e).__name__) from e

        if not isinstance(contents, (list, tuple)):
            contents = [contents]
        return {"contents": list(contents)}

    async def _prompts_list(self, params: Any) -> Dict[str, Any]:
        return {"prompts": self.registry.list_prompts()}

    async def _prompts_get(self, params: Any) -> Dict[str, Any]:
        get = PromptGetParams.model_validate(params or {})
        entry = self.registry.lookup(EntryKind.PROMPT, get.name)
        if entry is None:
            raise errors.prompt_not_found(get.name)

        logger.debug(f"Getting prompt: {get.name}")
        try:
            messages = await invoke(entry.handler, get.arguments or {})
            if isinstance(messages, (BaseModel, dict)):
                messages = [messages]
            if not isinstance(messages, (list, tuple)):
                raise TypeError(
                    f"Prompt handler returned {type(messages).__name__}, expected a list of messages"
                )
        except Exception as e:
            logger.warning(f"Prompt {get.name} failed: {e}", exc_info=True)
            raise errors.internal_error(
                f"Prompt execution failed: {str(e) or type(e).__name__}"
            ) from e

        result: Dict[str, Any] = {"messages": list(messages)}
        definition: PromptDefinition = entry.definition
        if definition.description:
            result["description"] = definition.description
        return result
