"""MCP tools for inspecting and streaming torrents."""

import asyncio

from ..engine import TorrentHandle
from ..torrent_id import resolve_torrent_id
from ..utils import format_size
from .models import StreamFileInfo, StreamStatus, TorrentSummary
from .state import get_client


def file_info(handle: TorrentHandle, index: int) -> StreamFileInfo:
    file = handle.files[index]
    return StreamFileInfo(index=index, path=file.path, size_bytes=file.length, size_formatted=format_size(file.length))


async def build_status() -> StreamStatus:
    client = await get_client()
    handle = client.torrent
    if handle is None or client.index is None:
        return StreamStatus(active=False)

    storage = handle.storage
    return StreamStatus(
        active=True,
        info_hash=handle.info_hash,
        name=handle.name,
        file=file_info(handle, client.index),
        url=f"{client.server.url}{client.index}" if client.server else None,
        completed_pieces=storage.completed_pieces() if storage else 0,
        total_pieces=storage.piece_count if storage else 0,
    )


def register_tools(mcp) -> None:
    """Register all MCP tools with the server."""

    @mcp.tool()
    async def inspect_torrent(torrent_id: str) -> TorrentSummary:
        """
        Resolve a torrent identifier and describe it.

        Args:
            torrent_id: Magnet link, info hash, http(s) url or path to a .torrent file.

        Returns:
            Info hash, name and, when metadata is available, the file list.
        """
        descriptor = await resolve_torrent_id(torrent_id)
        torrent = descriptor.metainfo
        if torrent is None:
            return TorrentSummary(
                info_hash=descriptor.info_hash,
                name=descriptor.name,
                has_metadata=False,
                announce_urls=descriptor.announce,
            )

        files = [
            StreamFileInfo(index=i, path=f.full_path, size_bytes=f.length, size_formatted=f.format_size())
            for i, f in enumerate(torrent.get_files())
        ]
        return TorrentSummary(
            info_hash=descriptor.info_hash,
            name=torrent.name,
            has_metadata=True,
            total_size_bytes=torrent.total_size,
            files=files,
            announce_urls=descriptor.announce,
        )

    @mcp.tool()
    async def stream_torrent(torrent_id: str, index: int | None = None, timeout: float = 30.0) -> StreamStatus:
        """
        Add a torrent and make one of its files the active stream.

        Args:
            torrent_id: Magnet link, info hash, http(s) url or path to a .torrent file.
            index: File to stream. Defaults to the largest file.
            timeout: Seconds to wait for the torrent to become ready.

        Returns:
            Status of the active stream including its HTTP url.
        """
        client = await get_client()
        loop = asyncio.get_running_loop()
        outcome: asyncio.Future = loop.create_future()

        def on_error(error: Exception) -> None:
            if not outcome.done():
                outcome.set_exception(error)

        def on_torrent(active: TorrentHandle) -> None:
            if active is handle and not outcome.done():
                outcome.set_result(active)

        client.on("error", on_error)
        client.on("torrent", on_torrent)
        handle = client.add(torrent_id, index=index)
        try:
            await asyncio.wait_for(outcome, timeout)
        finally:
            client.off("error", on_error)
            client.off("torrent", on_torrent)
        return await build_status()

    @mcp.tool()
    async def stream_status() -> StreamStatus:
        """
        Get the status of the active stream.

        Returns:
            Active torrent, file, url and piece progress.
        """
        return await build_status()
