"""Shared fixtures for torrent stream tests."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest
import pytest_asyncio

from torrent_stream.bencode import encode
from torrent_stream.client import StreamClient
from torrent_stream.config import ClientOptions

PIECE_LENGTH = 16


def make_metainfo(
    files: bytes | list[tuple[list[str], bytes]],
    name: str = "movie.mp4",
    piece_length: int = PIECE_LENGTH,
    announce: str = "http://tracker.example.com/announce",
) -> tuple[bytes, bytes]:
    """
    Build a .torrent file for the given content.

    Args:
        files: Content of a single-file torrent, or (path, content) pairs
        name: Torrent name
        piece_length: Piece size in bytes

    Returns:
        Tuple of (metainfo bytes, concatenated content)
    """
    info: dict = {"name": name, "piece length": piece_length}
    if isinstance(files, bytes):
        content = files
        info["length"] = len(content)
    else:
        content = b"".join(data for _, data in files)
        info["files"] = [{"length": len(data), "path": path} for path, data in files]

    info["pieces"] = b"".join(
        hashlib.sha1(content[i : i + piece_length]).digest() for i in range(0, len(content), piece_length)
    )
    return encode({"announce": announce, "info": info}), content


def pieces_of(content: bytes, piece_length: int = PIECE_LENGTH) -> list[bytes]:
    return [content[i : i + piece_length] for i in range(0, len(content), piece_length)]


@pytest.fixture
def content() -> bytes:
    return bytes(range(100))


@pytest.fixture
def metainfo(content: bytes) -> bytes:
    data, _ = make_metainfo(content)
    return data


@pytest.fixture
def multi_metainfo() -> bytes:
    data, _ = make_metainfo(
        [
            (["extras", "sample.mkv"], b"a" * 10),
            (["feature.mkv"], b"b" * 50),
            (["subs.srt"], b"c" * 50),
        ],
        name="collection",
    )
    return data


@pytest.fixture
def download_dir(tmp_path: Path) -> Path:
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest_asyncio.fixture
async def client(download_dir: Path):
    """A started client with no HTTP server."""
    client = StreamClient(options=ClientOptions(port=None, download_dir=download_dir))
    await client.start()
    yield client
    await client.destroy()


@pytest_asyncio.fixture
async def http_client(download_dir: Path):
    """A started client serving HTTP on a free local port."""
    client = StreamClient(
        options=ClientOptions(port=0, host="127.0.0.1", download_dir=download_dir, ready_timeout=5.0)
    )
    await client.start()
    yield client
    await client.destroy()
