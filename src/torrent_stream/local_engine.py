"""
Engine that serves torrent data already present on disk.

It speaks no peer wire protocol: torrents with known metainfo are checked
against the download directory and become ready immediately. Pieces can still
be added later through `handle.storage.write_piece`, which wakes any readers
waiting on them.
"""

from __future__ import annotations

import asyncio
import logging

from .engine import TorrentHandle

logger = logging.getLogger(__name__)


class LocalEngine:
    """A swarm engine backed only by local storage."""

    def __init__(self) -> None:
        self.torrents: dict[str, TorrentHandle] = {}

    def add(self, handle: TorrentHandle) -> None:
        descriptor = handle.descriptor
        if descriptor is None:
            raise ValueError("Torrent handle has no descriptor")

        self.torrents[descriptor.info_hash] = handle
        if handle.options.blocklist:
            logger.debug(f"Ignoring {len(handle.options.blocklist)} blocklist entries, no peers are contacted")

        if descriptor.metainfo is None:
            logger.warning(f"No metadata source for {descriptor.info_hash}; torrent will not become ready")
            return

        asyncio.get_running_loop().call_soon(self._load, handle)

    def _load(self, handle: TorrentHandle) -> None:
        if handle.destroyed:
            return
        metainfo = handle.descriptor.metainfo
        storage = handle.options.storage(handle.download_dir, metainfo)
        storage.verify()
        handle.set_metadata(metainfo, storage)

    async def destroy(self) -> None:
        for handle in self.torrents.values():
            handle.close()
        self.torrents.clear()
