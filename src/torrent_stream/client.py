"""
Streaming torrent client.

Adds torrents from any identifier form, picks the file to expose once metadata
arrives and serves it over HTTP.

Only one torrent is active at a time: every torrent that becomes ready
replaces the previous one as the target of unqualified HTTP requests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from .blocklist import load_blocklist
from .config import ClientOptions, TorrentOptions
from .engine import FileEntry, SwarmEngine, TorrentHandle
from .events import EventEmitter
from .local_engine import LocalEngine
from .models import BlocklistEntry
from .server import StreamServer
from .torrent_id import TorrentId, resolve_torrent_id

logger = logging.getLogger(__name__)


def select_default(files: Sequence[FileEntry]) -> int:
    """
    Pick the file to serve when none was requested: the largest one.

    Ties go to the earliest file.
    """
    if not files:
        raise ValueError("Torrent has no files")
    best = 0
    for i, file in enumerate(files):
        if file.length > files[best].length:
            best = i
    return best


class StreamClient(EventEmitter):
    """
    Torrent client that exposes the active file over HTTP.

    Events:
        listening: the HTTP server is accepting connections
        add (handle): a torrent was handed to the engine
        torrent (handle): a torrent is ready and is now the active one
        error (exception): resolving or adding a torrent failed
    """

    def __init__(self, engine: SwarmEngine | None = None, options: ClientOptions | None = None, **kwargs: Any) -> None:
        """
        Initialize the client.

        Args:
            engine: Swarm engine to download with (LocalEngine by default)
            options: Client options; keyword arguments override fields
        """
        super().__init__()
        base = options or ClientOptions()
        self.options = base.model_copy(update=kwargs) if kwargs else base
        self.engine: SwarmEngine = engine if engine is not None else LocalEngine()
        self.torrents: list[TorrentHandle] = []
        self.blocklist: list[BlocklistEntry] = []
        self.server: StreamServer | None = None
        self.listening = False
        self.destroyed = False

        # Active torrent state
        self.torrent: TorrentHandle | None = None
        self.index: int | None = None
        self._active_waiters: list[asyncio.Future] = []

        self._tasks: set[asyncio.Task] = set()

    async def start(self) -> None:
        """Load the blocklist and start the HTTP server unless disabled."""
        if self.options.blocklist:
            self.blocklist = await load_blocklist(self.options.blocklist)

        if self.options.list_only or self.options.port is None:
            return

        self.server = StreamServer(
            self,
            host=self.options.host,
            port=self.options.port,
            ready_timeout=self.options.ready_timeout,
            always_partial=self.options.always_partial,
            socket_timeout=self.options.socket_timeout,
        )
        await self.server.start()
        self.listening = True
        self.emit("listening")

    def add(self, torrent_id: TorrentId, **options: Any) -> TorrentHandle:
        """
        Add a torrent to the client.

        Returns immediately; the "add" event fires once the identifier has
        been resolved and handed to the engine, and failures are reported on
        the "error" event rather than raised.

        Args:
            torrent_id: Magnet uri, info hash, torrent file, parsed torrent, http url or path
            **options: TorrentOptions fields (index, download_dir, storage)

        Returns:
            The handle for the new torrent
        """
        logger.debug(f"add {torrent_id!r}")
        torrent_options = TorrentOptions(
            **{"download_dir": self.options.download_dir, "blocklist": self.blocklist, **options}
        )
        handle = TorrentHandle(torrent_id, torrent_options)
        self.torrents.append(handle)

        task = asyncio.get_running_loop().create_task(self._add(handle))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return handle

    async def _add(self, handle: TorrentHandle) -> None:
        try:
            handle.descriptor = await resolve_torrent_id(handle.torrent_id)
            logger.debug(f"Resolved {handle.info_hash}")
            handle.on_ready(self._on_torrent)
            self.engine.add(handle)
        except Exception as e:
            logger.debug(f"Failed to add torrent: {e}")
            self.torrents.remove(handle)
            self._emit_error(e)
            return

        asyncio.get_running_loop().call_soon(self.emit, "add", handle)

    def _emit_error(self, error: Exception) -> None:
        if not self.emit("error", error):
            logger.error(f"Unhandled client error: {error}")

    def _on_torrent(self, handle: TorrentHandle) -> None:
        if handle.destroyed or self.destroyed:
            return
        logger.debug(f"on torrent {handle.info_hash}")

        if not handle.files:
            self._emit_error(ValueError(f"Torrent {handle.info_hash} has no files"))
            return

        index = handle.index
        if index is None or index >= len(handle.files):
            if index is not None:
                logger.warning(f"File index {index} out of range, serving the largest file")
            index = select_default(handle.files)
        handle.select(index)

        self.index = index
        self.torrent = handle

        waiters, self._active_waiters = self._active_waiters, []
        for future in waiters:
            if not future.done():
                future.set_result(handle)
        self.emit("torrent", handle)

    async def wait_active(self, timeout: float | None = None) -> TorrentHandle:
        """
        Wait until a torrent is active and return it.

        Raises:
            asyncio.TimeoutError: If no torrent becomes active in time
        """
        if self.torrent is not None:
            return self.torrent
        future = asyncio.get_running_loop().create_future()
        self._active_waiters.append(future)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            if future in self._active_waiters:
                self._active_waiters.remove(future)

    def get(self, info_hash: str) -> TorrentHandle | None:
        """Find an added torrent by info hash."""
        for handle in self.torrents:
            if handle.info_hash == info_hash.lower():
                return handle
        return None

    async def destroy(self) -> None:
        """Destroy the client, including all torrents and the HTTP server."""
        logger.debug("destroy")
        self.destroyed = True

        for task in list(self._tasks):
            task.cancel()
        waiters, self._active_waiters = self._active_waiters, []
        for future in waiters:
            future.cancel()

        tasks = [self.engine.destroy()]
        if self.server is not None:
            tasks.append(self.server.close())
        await asyncio.gather(*tasks)

        for handle in self.torrents:
            handle.close()
        self.listening = False
