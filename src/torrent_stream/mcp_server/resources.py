"""MCP resources describing the active stream."""

from .tools import build_status


def register_resources(mcp) -> None:
    """Register all MCP resources with the server."""

    @mcp.resource("stream://active")
    async def resource_active_stream() -> str:
        """Show the active stream."""
        status = await build_status()
        if not status.active:
            return "No active stream."

        lines = [f"# {status.name}\n"]
        lines.append(f"- **Info hash**: {status.info_hash}")
        if status.file:
            lines.append(f"- **File**: {status.file.path} ({status.file.size_formatted})")
        if status.url:
            lines.append(f"- **URL**: {status.url}")
        lines.append(f"- **Pieces**: {status.completed_pieces}/{status.total_pieces}")
        return "\n".join(lines)
