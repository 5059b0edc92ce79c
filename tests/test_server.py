"""Tests for the HTTP range streaming server."""

import asyncio
import logging
from pathlib import Path

import aiohttp
import pytest

from torrent_stream.client import StreamClient
from torrent_stream.config import ClientOptions
from torrent_stream.models import ByteRange
from torrent_stream.server import RangeNotSatisfiableError, StreamServer, parse_range

from .conftest import pieces_of


async def activate(client: StreamClient, torrent_id, **options):
    client.add(torrent_id, **options)
    return await client.wait_active(timeout=2)


class TestParseRange:
    """Tests for parse_range()."""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("bytes=10-19", (10, 19)),
            ("bytes=10-", (10, 99)),
            ("bytes=-10", (90, 99)),
            ("bytes=90-500", (90, 99)),
            ("bytes=-500", (0, 99)),
            ("bytes=0-0, 50-60", (0, 0)),
            (" bytes = 5 - 6 ", (5, 6)),
        ],
    )
    def test_valid(self, header: str, expected: tuple[int, int]) -> None:
        assert parse_range(header, 100) == ByteRange(start=expected[0], end=expected[1])

    @pytest.mark.parametrize(
        "header",
        ["bytes", "bytes=", "bytes=-", "bytes=a-b", "bytes=20-10", "bytes=100-", "bytes=-0", "bytes=1-2-3"],
    )
    def test_rejected(self, header: str) -> None:
        with pytest.raises(RangeNotSatisfiableError):
            parse_range(header, 100)

    def test_other_unit_is_ignored(self) -> None:
        assert parse_range("items=0-5", 100) is None

    def test_empty_file(self) -> None:
        with pytest.raises(RangeNotSatisfiableError):
            parse_range("bytes=0-", 0)


class TestStreamServer:
    """Tests for requests against a running server."""

    @pytest.mark.asyncio
    async def test_head(self, http_client: StreamClient, metainfo: bytes) -> None:
        await activate(http_client, metainfo)

        async with aiohttp.ClientSession() as session:
            async with session.head(f"{http_client.server.url}0") as resp:
                body = await resp.read()

        assert resp.status == 206
        assert resp.headers["Accept-Ranges"] == "bytes"
        assert resp.headers["Content-Length"] == "100"
        assert resp.headers["Content-Type"] == "video/mp4"
        assert body == b""

    @pytest.mark.asyncio
    async def test_range_arrives_as_pieces_download(
        self, http_client: StreamClient, metainfo: bytes, content: bytes
    ) -> None:
        handle = await activate(http_client, metainfo)

        async with aiohttp.ClientSession() as session:
            async with session.get(f"{http_client.server.url}0", headers={"Range": "bytes=10-19"}) as resp:
                assert resp.status == 206
                assert resp.headers["Content-Range"] == "bytes 10-19/100"
                assert resp.headers["Content-Length"] == "10"

                body = asyncio.create_task(resp.read())
                await asyncio.sleep(0.1)
                assert not body.done()

                pieces = pieces_of(content)
                handle.storage.write_piece(0, pieces[0])
                handle.storage.write_piece(1, pieces[1])

                assert await asyncio.wait_for(body, 5) == content[10:20]

    @pytest.mark.asyncio
    async def test_full_file(
        self, http_client: StreamClient, download_dir: Path, metainfo: bytes, content: bytes
    ) -> None:
        (download_dir / "movie.mp4").write_bytes(content)
        await activate(http_client, metainfo)

        async with aiohttp.ClientSession() as session:
            async with session.get(http_client.server.url) as resp:
                body = await resp.read()

        assert resp.status == 206
        assert "Content-Range" not in resp.headers
        assert resp.headers["Content-Length"] == "100"
        assert body == content

    @pytest.mark.asyncio
    async def test_index_out_of_range(self, http_client: StreamClient, multi_metainfo: bytes) -> None:
        await activate(http_client, multi_metainfo)

        async with aiohttp.ClientSession() as session:
            async with session.get(f"{http_client.server.url}5") as resp:
                body = await resp.read()

        assert resp.status == 404
        assert body == b""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["abc", "-1", "1.5", "0/extra"])
    async def test_bad_paths(self, http_client: StreamClient, metainfo: bytes, path: str) -> None:
        await activate(http_client, metainfo)

        async with aiohttp.ClientSession() as session:
            async with session.get(f"{http_client.server.url}{path}") as resp:
                body = await resp.read()

        assert resp.status == 404
        assert body == b""

    @pytest.mark.asyncio
    async def test_root_serves_selected_file(
        self, http_client: StreamClient, download_dir: Path, multi_metainfo: bytes
    ) -> None:
        folder = download_dir / "collection"
        (folder / "extras").mkdir(parents=True)
        (folder / "extras" / "sample.mkv").write_bytes(b"a" * 10)
        (folder / "feature.mkv").write_bytes(b"b" * 50)
        (folder / "subs.srt").write_bytes(b"c" * 50)
        await activate(http_client, multi_metainfo, index=2)

        async with aiohttp.ClientSession() as session:
            async with session.get(http_client.server.url, headers={"Range": "bytes=-5"}) as resp:
                body = await resp.read()

        assert resp.headers["Content-Range"] == "bytes 45-49/50"
        assert body == b"c" * 5

    @pytest.mark.asyncio
    async def test_favicon(self, http_client: StreamClient) -> None:
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{http_client.server.url}favicon.ico") as resp:
                body = await resp.read()

        assert resp.status == 200
        assert body == b""

    @pytest.mark.asyncio
    async def test_request_waits_for_active_torrent(
        self, http_client: StreamClient, download_dir: Path, metainfo: bytes, content: bytes
    ) -> None:
        (download_dir / "movie.mp4").write_bytes(content)

        async with aiohttp.ClientSession() as session:

            async def fetch() -> tuple[int, bytes]:
                async with session.get(http_client.server.url, headers={"Range": "bytes=0-9"}) as resp:
                    return resp.status, await resp.read()

            request = asyncio.create_task(fetch())
            await asyncio.sleep(0.1)
            assert not request.done()

            http_client.add(metainfo)
            status, body = await asyncio.wait_for(request, 5)

        assert status == 206
        assert body == content[:10]

    @pytest.mark.asyncio
    async def test_unsatisfiable_range(self, http_client: StreamClient, metainfo: bytes) -> None:
        await activate(http_client, metainfo)

        async with aiohttp.ClientSession() as session:
            async with session.get(f"{http_client.server.url}0", headers={"Range": "bytes=200-300"}) as resp:
                await resp.read()

        assert resp.status == 416
        assert resp.headers["Content-Range"] == "bytes */100"

    @pytest.mark.asyncio
    async def test_non_ascii_digits_are_not_an_index(self, http_client: StreamClient, multi_metainfo: bytes) -> None:
        await activate(http_client, multi_metainfo)

        async with aiohttp.ClientSession() as session:
            async with session.get(f"{http_client.server.url}١") as resp:
                await resp.read()

        assert resp.status == 404

    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_read(self, http_client: StreamClient, metainfo: bytes) -> None:
        handle = await activate(http_client, metainfo)
        event = handle.storage._piece_events[0]

        async with aiohttp.ClientSession() as session:
            async with session.get(f"{http_client.server.url}0", headers={"Range": "bytes=0-9"}) as resp:
                assert resp.status == 206
                await asyncio.sleep(0.1)
                assert len(event._waiters) == 1
                resp.close()

        for _ in range(50):
            if not event._waiters:
                break
            await asyncio.sleep(0.05)
        assert len(event._waiters) == 0
        assert not handle.storage.closed

    @pytest.mark.asyncio
    async def test_storage_closed_mid_stream(
        self, http_client: StreamClient, metainfo: bytes, caplog: pytest.LogCaptureFixture
    ) -> None:
        handle = await activate(http_client, metainfo)

        with caplog.at_level(logging.WARNING, logger="torrent_stream.server"):
            async with aiohttp.ClientSession() as session:
                async with session.get(f"{http_client.server.url}0", headers={"Range": "bytes=0-9"}) as resp:
                    assert resp.status == 206
                    body = asyncio.create_task(resp.read())
                    await asyncio.sleep(0.1)

                    handle.storage.close()

                    with pytest.raises(aiohttp.ClientError):
                        await asyncio.wait_for(body, 5)

        assert "Aborting stream" in caplog.text


class TestServerOptions:
    """Tests for configurable server behavior."""

    @pytest.mark.asyncio
    async def test_full_status_without_range(
        self, download_dir: Path, metainfo: bytes, content: bytes
    ) -> None:
        (download_dir / "movie.mp4").write_bytes(content)
        client = StreamClient(
            options=ClientOptions(port=0, host="127.0.0.1", download_dir=download_dir, always_partial=False)
        )
        await client.start()
        try:
            await activate(client, metainfo)
            async with aiohttp.ClientSession() as session:
                async with session.get(client.server.url) as resp:
                    body = await resp.read()
        finally:
            await client.destroy()

        assert resp.status == 200
        assert body == content

    @pytest.mark.asyncio
    async def test_ready_timeout(self, download_dir: Path) -> None:
        client = StreamClient(
            options=ClientOptions(port=0, host="127.0.0.1", download_dir=download_dir, ready_timeout=0.1)
        )
        await client.start()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"{client.server.url}0") as resp:
                    body = await resp.read()
        finally:
            await client.destroy()

        assert resp.status == 503
        assert body == b""

    @pytest.mark.asyncio
    async def test_list_only_starts_no_server(self, download_dir: Path) -> None:
        client = StreamClient(options=ClientOptions(list_only=True, download_dir=download_dir))
        await client.start()

        assert client.server is None
        assert not client.listening
        await client.destroy()

    @pytest.mark.asyncio
    async def test_close_twice(self, client: StreamClient) -> None:
        server = StreamServer(client, host="127.0.0.1", port=0)
        await server.start()

        await server.close()
        await server.close()
