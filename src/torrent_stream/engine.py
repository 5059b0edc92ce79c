"""
Swarm engine interface and the torrent handle it populates.

The engine owns peers, piece selection and downloading. This package only
needs it to accept a handle and, once metadata is known, call
`TorrentHandle.set_metadata` with storage that can serve lazy reads.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .config import TorrentOptions
    from .models import TorrentDescriptor
    from .storage import FileSystemStorage
    from .torrent_parser import Torrent

logger = logging.getLogger(__name__)


class SwarmEngine(Protocol):
    """What the client needs from a swarm engine."""

    def add(self, handle: TorrentHandle) -> None:
        """Start fetching the torrent described by `handle.descriptor`."""
        ...

    async def destroy(self) -> None:
        """Stop all torrents and release resources."""
        ...


class FileEntry:
    """A file inside a torrent, readable as lazy byte ranges."""

    def __init__(self, handle: TorrentHandle, name: str, path: str, length: int, offset: int) -> None:
        self.handle = handle
        self.name = name
        self.path = path
        self.length = length
        self.offset = offset
        self.selected = False

    def __repr__(self) -> str:
        return f"FileEntry(path={self.path!r}, length={self.length}, offset={self.offset})"

    def select(self) -> None:
        """Mark this file for prioritized download."""
        self.selected = True

    def deselect(self) -> None:
        self.selected = False

    async def read_range(self, start: int = 0, end: int | None = None) -> AsyncIterator[bytes]:
        """
        Read bytes [start, end] of this file, inclusive.

        Suspends whenever the underlying pieces are not yet downloaded.
        """
        if end is None:
            end = self.length - 1
        if self.length == 0 or end < start:
            return
        if self.handle.storage is None:
            raise RuntimeError("Torrent has no storage yet")

        reader = self.handle.storage.read(self.offset + start, end - start + 1)
        try:
            async for chunk in reader:
                yield chunk
        finally:
            await reader.aclose()


class TorrentHandle:
    """A torrent added to the client, populated once metadata arrives."""

    def __init__(self, torrent_id: object, options: TorrentOptions) -> None:
        self.torrent_id = torrent_id
        self.options = options
        self.index: int | None = options.index
        self.descriptor: TorrentDescriptor | None = None
        self.metainfo: Torrent | None = None
        self.storage: FileSystemStorage | None = None
        self.files: list[FileEntry] = []
        self.ready = False
        self.destroyed = False
        self._ready_callbacks: list[Callable[[TorrentHandle], None]] = []
        self._ready_waiters: list[asyncio.Future] = []

    def __repr__(self) -> str:
        return f"TorrentHandle(info_hash={self.info_hash!r}, ready={self.ready})"

    @property
    def info_hash(self) -> str | None:
        return self.descriptor.info_hash if self.descriptor else None

    @property
    def name(self) -> str | None:
        if self.metainfo is not None:
            return self.metainfo.name
        return self.descriptor.name if self.descriptor else None

    @property
    def download_dir(self) -> Path:
        return self.options.download_dir

    def on_ready(self, callback: Callable[[TorrentHandle], None]) -> None:
        """
        Register a callback for when metadata is available.

        The callback is always scheduled on the loop, never run inline.
        """
        if self.ready:
            asyncio.get_running_loop().call_soon(callback, self)
        else:
            self._ready_callbacks.append(callback)

    async def wait_ready(self) -> TorrentHandle:
        if self.ready:
            return self
        future = asyncio.get_running_loop().create_future()
        self._ready_waiters.append(future)
        return await future

    def set_metadata(self, torrent: Torrent, storage: FileSystemStorage) -> None:
        """
        Populate files from metadata and announce readiness.

        Called by the engine exactly once per torrent.
        """
        if self.ready:
            raise RuntimeError("Torrent metadata already set")

        self.metainfo = torrent
        self.storage = storage

        offset = 0
        files = []
        for file_info in torrent.get_files():
            files.append(FileEntry(self, file_info.path[-1], file_info.full_path, file_info.length, offset))
            offset += file_info.length
        self.files = files
        self.ready = True
        logger.debug(f"Torrent {self.info_hash} ready with {len(files)} file(s)")

        loop = asyncio.get_running_loop()
        callbacks, self._ready_callbacks = self._ready_callbacks, []
        for callback in callbacks:
            loop.call_soon(callback, self)
        waiters, self._ready_waiters = self._ready_waiters, []
        for future in waiters:
            if not future.done():
                future.set_result(self)

    def select(self, index: int) -> FileEntry:
        """Make `files[index]` the selected file."""
        if not 0 <= index < len(self.files):
            raise IndexError(f"File index {index} out of range (0-{len(self.files) - 1})")
        for file in self.files:
            file.deselect()
        self.index = index
        file = self.files[index]
        file.select()
        return file

    def close(self) -> None:
        """Release storage and cancel anyone waiting for readiness."""
        self.destroyed = True
        if self.storage is not None:
            self.storage.close()
        waiters, self._ready_waiters = self._ready_waiters, []
        for future in waiters:
            future.cancel()
        self._ready_callbacks.clear()
