"""MCP registry for tools, resources and prompts."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
import logging

from .models import (
    PromptArgument,
    PromptDefinition,
    ResourceDefinition,
    ToolDefinition,
)
from .utils.errors import RegistryFrozenError

logger = logging.getLogger(__name__)

Definition = Union[ToolDefinition, ResourceDefinition, PromptDefinition]


class EntryKind(str, Enum):
    TOOL = "tool"
    RESOURCE = "resource"
    PROMPT = "prompt"


@dataclass(frozen=True)
class RegistryEntry:
    """A definition paired with the callable that serves it."""

    definition: Definition
    handler: Callable


class MCPRegistry:
    """Name-indexed storage of tools, resources and prompts.

    Tools are keyed by name, resources by URI and prompts by name. Entries
    keep insertion order; registering an existing key overwrites it.
    """

    def __init__(self):
        self._tables: Dict[EntryKind, Dict[str, RegistryEntry]] = {
            kind: {} for kind in EntryKind
        }
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Reject further registration; called when serving begins."""
        self._frozen = True

    def _store(self, kind: EntryKind, key: str, entry: RegistryEntry) -> None:
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {kind.value} '{key}': registry is frozen"
            )
        self._tables[kind][key] = entry
        logger.debug(f"Registered {kind.value}: {key}")

    def register_tool(self, definition: ToolDefinition, handler: Callable) -> None:
        """Register a tool; the handler receives the call arguments dict."""
        self._store(EntryKind.TOOL, definition.name, RegistryEntry(definition, handler))

    def register_resource(self, definition: ResourceDefinition, handler: Callable) -> None:
        """Register a resource; the handler receives the requested URI."""
        self._store(EntryKind.RESOURCE, definition.uri, RegistryEntry(definition, handler))

    def register_prompt(self, definition: PromptDefinition, handler: Callable) -> None:
        """Register a prompt; the handler receives the prompt arguments dict."""
        self._store(EntryKind.PROMPT, definition.name, RegistryEntry(definition, handler))

    def tool(
        self,
        name: Optional[str] = None,
        description: str = "",
        input_schema: Optional[Dict[str, Any]] = None,
    ) -> Callable:
        """Decorator form of :meth:`register_tool`."""

        def decorator(func: Callable) -> Callable:
            definition = ToolDefinition(
                name=name or func.__name__,
                description=description or (func.__doc__ or "").strip(),
                inputSchema=input_schema or {"type": "object", "properties": {}},
            )
            self.register_tool(definition, func)
            return func

        return decorator

    def resource(
        self,
        uri: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> Callable:
        """Decorator form of :meth:`register_resource`."""

        def decorator(func: Callable) -> Callable:
            definition = ResourceDefinition(
                uri=uri, name=name or func.__name__, description=description, mimeType=mime_type
            )
            self.register_resource(definition, func)
            return func

        return decorator

    def prompt(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        arguments: Optional[List[PromptArgument]] = None,
    ) -> Callable:
        """Decorator form of :meth:`register_prompt`."""

        def decorator(func: Callable) -> Callable:
            definition = PromptDefinition(
                name=name or func.__name__, description=description, arguments=arguments
            )
            self.register_prompt(definition, func)
            return func

        return decorator

    def unregister(self, kind: EntryKind, key: str) -> bool:
        """Remove an entry. Administrative only; not reachable from the wire."""
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot unregister {kind.value} '{key}': registry is frozen"
            )
        removed = self._tables[kind].pop(key, None) is not None
        if removed:
            logger.debug(f"Unregistered {kind.value}: {key}")
        return removed

    def lookup(self, kind: EntryKind, key: str) -> Optional[RegistryEntry]:
        return self._tables[kind].get(key)

    def list_tools(self) -> List[ToolDefinition]:
        return [entry.definition for entry in self._tables[EntryKind.TOOL].values()]

    def list_resources(self) -> List[ResourceDefinition]:
        return [entry.definition for entry in self._tables[EntryKind.RESOURCE].values()]

    def list_prompts(self) -> List[PromptDefinition]:
        return [entry.definition for entry in self._tables[EntryKind.PROMPT].values()]

    def counts(self) -> Dict[str, int]:
        return {kind.value: len(table) for kind, table in self._tables.items()}
