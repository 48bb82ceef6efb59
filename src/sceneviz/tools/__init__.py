"""Tool registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP


def register_all_tools(mcp: FastMCP) -> None:
    from sceneviz.tools.ask import register_ask_tools
    from sceneviz.tools.playback import register_playback_tools

    register_ask_tools(mcp)
    register_playback_tools(mcp)
