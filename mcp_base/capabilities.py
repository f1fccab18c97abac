"""Capability negotiation derived from registry contents."""
from typing import Any, Dict, Optional

from .mcp_handler import EntryKind, MCPRegistry
from .models import ServerCapabilities


def negotiate_capabilities(
    registry: MCPRegistry, static: Optional[Dict[str, Any]] = None
) -> ServerCapabilities:
    """Report which categories have at least one registered entry.

    ``static`` entries (e.g. ``{"logging": {}}``) come from configuration and
    are merged in as-is. Static flags for tools, resources or prompts (e.g.
    ``{"tools": {"listChanged": False}}``) only appear when that category is
    present.
    """
    counts = registry.counts()
    capabilities: Dict[str, Any] = dict(static or {})

    for kind, category in (
        (EntryKind.TOOL, "tools"),
        (EntryKind.RESOURCE, "resources"),
        (EntryKind.PROMPT, "prompts"),
    ):
        flags = capabilities.pop(category, None)
        if counts[kind.value] > 0:
            capabilities[category] = dict(flags or {})

    return ServerCapabilities(**capabilities)
