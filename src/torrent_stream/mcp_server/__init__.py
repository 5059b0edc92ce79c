"""
MCP server package for the torrent stream client.

Exposes torrent inspection and streaming via the Model Context Protocol.
"""

from .server import mcp

__all__ = ["mcp"]
