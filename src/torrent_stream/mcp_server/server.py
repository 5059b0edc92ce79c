"""
Main MCP server setup and entry point.

This module initializes the FastMCP server and registers all tools and resources.
"""

from fastmcp import FastMCP

from .resources import register_resources
from .tools import register_tools

mcp = FastMCP(
    "Torrent Stream",
    instructions="Streams files from torrents over HTTP while they download. "
    "Use the tools to inspect a torrent, start streaming one of its files and check stream progress.",
)

register_tools(mcp)
register_resources(mcp)


def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
