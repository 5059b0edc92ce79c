"""
HTTP server that streams the active torrent file with Range support.

Routes:
    /favicon.ico  empty response
    /             the active file
    /<n>          file n of the active torrent
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import re
from typing import TYPE_CHECKING

from aiohttp import hdrs, web

from .config import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_READY_TIMEOUT, DEFAULT_SOCKET_TIMEOUT
from .models import ByteRange
from .storage import StorageError

if TYPE_CHECKING:
    from .client import StreamClient
    from .engine import FileEntry

logger = logging.getLogger(__name__)

INDEX_RE = re.compile(r"^[0-9]+$")


class RangeNotSatisfiableError(Exception):
    """Raised for a Range header that is malformed or outside the file."""

    pass


def parse_range(header: str, length: int) -> ByteRange | None:
    """
    Parse the first range of a Range header against a file length.

    Only the first range is honored; any others are ignored.

    Args:
        header: Value of the Range header, e.g. "bytes=0-99"
        length: Total length of the resource

    Returns:
        The inclusive range, or None if the header uses a unit other than bytes

    Raises:
        RangeNotSatisfiableError: If the range is malformed or unsatisfiable
    """
    unit, sep, ranges = header.partition("=")
    if not sep:
        raise RangeNotSatisfiableError(f"Malformed Range header: {header!r}")
    if unit.strip().lower() != "bytes":
        return None

    first, dash, last = ranges.split(",")[0].strip().partition("-")
    first, last = first.strip(), last.strip()
    if not dash or not (first or last):
        raise RangeNotSatisfiableError(f"Malformed Range header: {header!r}")

    if not first:
        # Suffix range: the last N bytes
        if not last.isdigit() or int(last) == 0:
            raise RangeNotSatisfiableError(f"Malformed Range header: {header!r}")
        start = max(length - int(last), 0)
        end = length - 1
    else:
        if not first.isdigit() or (last and not last.isdigit()):
            raise RangeNotSatisfiableError(f"Malformed Range header: {header!r}")
        start = int(first)
        end = min(int(last), length - 1) if last else length - 1

    if length == 0 or start >= length or end < start:
        raise RangeNotSatisfiableError(f"Range {header!r} not satisfiable for length {length}")
    return ByteRange(start=start, end=end)


class StreamServer:
    """Serves files of the client's active torrent."""

    def __init__(
        self,
        client: StreamClient,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        ready_timeout: float | None = DEFAULT_READY_TIMEOUT,
        always_partial: bool = True,
        socket_timeout: float = DEFAULT_SOCKET_TIMEOUT,
    ) -> None:
        """
        Initialize the server.

        Args:
            client: Client whose active torrent is served
            host: Bind address
            port: Port to listen on, 0 for any free port
            ready_timeout: Seconds a request waits for an active torrent, None for no limit
            always_partial: Answer 206 even for requests without a Range header
            socket_timeout: Idle timeout applied to every connection
        """
        self.client = client
        self.host = host
        self.port = port
        self.ready_timeout = ready_timeout
        self.always_partial = always_partial
        self.socket_timeout = socket_timeout
        self.app = self.make_app()
        self.runner: web.AppRunner | None = None

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/favicon.ico", self.handle_favicon)
        app.router.add_get("/", self.handle_file)
        app.router.add_get("/{index}", self.handle_file)
        app.router.add_route("*", "/{tail:.*}", self.handle_not_found)
        return app

    @property
    def url(self) -> str:
        host = "localhost" if self.host in ("0.0.0.0", "::", "") else self.host
        return f"http://{host}:{self.port}/"

    async def start(self) -> None:
        """Start listening."""
        self.runner = web.AppRunner(self.app, keepalive_timeout=self.socket_timeout, handler_cancellation=True)
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()
        if self.runner.addresses:
            self.port = self.runner.addresses[0][1]
        logger.info(f"Streaming server listening on {self.url}")

    async def close(self) -> None:
        """Stop listening; closing a server that is not running is a no-op."""
        runner, self.runner = self.runner, None
        if runner is None:
            return
        try:
            await runner.cleanup()
        except RuntimeError as e:
            logger.debug(f"Server already closed: {e}")

    async def handle_favicon(self, request: web.Request) -> web.Response:
        return web.Response()

    async def handle_not_found(self, request: web.Request) -> web.Response:
        return web.Response(status=404)

    async def handle_file(self, request: web.Request) -> web.StreamResponse:
        logger.debug(f"{request.method} {request.path}")

        try:
            torrent = await self.client.wait_active(self.ready_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"No active torrent after {self.ready_timeout}s, rejecting {request.path}")
            return web.Response(status=503)

        index_str = request.match_info.get("index")
        if index_str is None:
            index = self.client.index
        elif INDEX_RE.match(index_str):
            index = int(index_str)
        else:
            return web.Response(status=404)

        if index is None or index >= len(torrent.files):
            return web.Response(status=404)

        return await self.stream_file(request, torrent.files[index])

    async def stream_file(self, request: web.Request, file: FileEntry) -> web.StreamResponse:
        """Write the requested range of `file` to the response as pieces arrive."""
        headers = {hdrs.ACCEPT_RANGES: "bytes"}

        byte_range = None
        if hdrs.RANGE in request.headers:
            try:
                byte_range = parse_range(request.headers[hdrs.RANGE], file.length)
            except RangeNotSatisfiableError as e:
                logger.debug(str(e))
                headers[hdrs.CONTENT_RANGE] = f"bytes */{file.length}"
                return web.Response(status=416, headers=headers)

        if byte_range is not None:
            logger.debug(f"range {byte_range.start}-{byte_range.end}")
            headers[hdrs.CONTENT_RANGE] = f"bytes {byte_range.start}-{byte_range.end}/{file.length}"
            status = 206
            start, end, length = byte_range.start, byte_range.end, byte_range.length
        else:
            status = 206 if self.always_partial else 200
            start, end, length = 0, file.length - 1, file.length

        response = web.StreamResponse(status=status, headers=headers)
        response.content_type = mimetypes.guess_type(file.name)[0] or "application/octet-stream"
        response.content_length = length
        await response.prepare(request)

        if request.method == hdrs.METH_HEAD or length == 0:
            return response

        reader = file.read_range(start, end)
        try:
            async for chunk in reader:
                await response.write(chunk)
        except ConnectionResetError:
            logger.debug(f"Client disconnected while streaming {file.path}")
            return response
        except asyncio.CancelledError:
            logger.debug(f"Request for {file.path} cancelled")
            raise
        except StorageError as e:
            logger.warning(f"Aborting stream of {file.path}: {e}")
            raise
        finally:
            await reader.aclose()

        await response.write_eof()
        return response
