"""Shared state for the MCP server."""

from __future__ import annotations

from ..client import StreamClient
from ..config import ClientOptions

# One client per server process; started on first use
_client: StreamClient | None = None


async def get_client() -> StreamClient:
    """Return the shared client, starting it if needed."""
    global _client
    if _client is None:
        client = StreamClient(options=ClientOptions())
        await client.start()
        _client = client
    return _client


async def reset_client() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.destroy()
