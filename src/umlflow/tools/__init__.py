"""Tool providers: in-process callables and remote MCP servers."""

from __future__ import annotations

from umlflow.tools.mcp import MCPToolProvider
from umlflow.tools.static import StaticToolProvider

__all__ = ["MCPToolProvider", "StaticToolProvider"]
