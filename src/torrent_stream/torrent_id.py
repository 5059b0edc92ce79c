"""
Torrent identifier resolution.

A torrent can be referenced by any of:

- magnet uri (str)
- torrent file contents (bytes)
- info hash (hex or base32 str, or 20 raw bytes)
- parsed torrent (TorrentDescriptor, MagnetLink or Torrent)
- http/https url to a .torrent file (str)
- filesystem path to a .torrent file (str or Path)

`resolve_torrent_id` normalizes all of them to a TorrentDescriptor.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Union

import aiohttp

from .bencode import BencodeError
from .magnet import MagnetError, MagnetLink, decode_info_hash, is_info_hash, is_magnet_link
from .models import TorrentDescriptor
from .torrent_parser import Torrent, TorrentParser

logger = logging.getLogger(__name__)

TorrentId = Union[str, bytes, Path, TorrentDescriptor, MagnetLink, Torrent]

HTTP_URL_RE = re.compile(r"^https?:", re.IGNORECASE)
FETCH_TIMEOUT = 30.0

INVALID_TORRENT_MESSAGE = (
    "Invalid torrent. Need magnet uri, info hash, torrent file, http url, or filesystem path."
)


class InvalidTorrentError(Exception):
    """Raised when an identifier matches none of the accepted forms."""

    def __init__(self, message: str = INVALID_TORRENT_MESSAGE) -> None:
        super().__init__(message)


class TorrentFetchError(Exception):
    """Raised when downloading a .torrent file over HTTP fails."""

    pass


def parse_torrent_id(torrent_id: TorrentId) -> TorrentDescriptor | None:
    """
    Structurally parse an identifier without any I/O.

    Args:
        torrent_id: Magnet uri, info hash, torrent file bytes or a parsed object

    Returns:
        A descriptor, or None if the identifier needs fetching/reading
    """
    if isinstance(torrent_id, TorrentDescriptor):
        return torrent_id
    if isinstance(torrent_id, Torrent):
        return TorrentDescriptor.from_torrent(torrent_id)
    if isinstance(torrent_id, MagnetLink):
        return _from_magnet(torrent_id)

    if isinstance(torrent_id, str):
        try:
            if is_magnet_link(torrent_id):
                return _from_magnet(MagnetLink.parse(torrent_id))
            if is_info_hash(torrent_id):
                return TorrentDescriptor(info_hash=decode_info_hash(torrent_id).hex())
        except MagnetError as e:
            logger.debug(f"Not a valid magnet/info hash: {e}")
        return None

    if isinstance(torrent_id, (bytes, bytearray)):
        data = bytes(torrent_id)
        if len(data) == 20:
            return TorrentDescriptor(info_hash=data.hex())
        try:
            return TorrentDescriptor.from_torrent(TorrentParser(data).parse())
        except (BencodeError, ValueError) as e:
            logger.debug(f"Not valid torrent metainfo: {e}")
        return None

    return None


def _from_magnet(magnet: MagnetLink) -> TorrentDescriptor:
    return TorrentDescriptor(
        info_hash=magnet.info_hash_hex,
        name=magnet.display_name,
        announce=magnet.trackers,
        web_seeds=magnet.web_seeds,
    )


async def resolve_torrent_id(torrent_id: TorrentId) -> TorrentDescriptor:
    """
    Resolve any accepted identifier form to a TorrentDescriptor.

    Tries, in order: structural parse, HTTP(S) download, filesystem read.
    There are no retries; a single failure is final.

    Args:
        torrent_id: The identifier to resolve

    Returns:
        The resolved descriptor

    Raises:
        TorrentFetchError: If an http(s) url could not be downloaded
        InvalidTorrentError: If none of the strategies produced a torrent
    """
    if not isinstance(torrent_id, Path):
        parsed = parse_torrent_id(torrent_id)
        if parsed is not None:
            # Never complete synchronously, even when no I/O is needed
            await asyncio.sleep(0)
            return parsed

    if isinstance(torrent_id, str) and HTTP_URL_RE.match(torrent_id):
        data = await fetch_torrent(torrent_id)
    elif isinstance(torrent_id, (str, Path)):
        data = await read_torrent(torrent_id)
    else:
        await asyncio.sleep(0)
        raise InvalidTorrentError()

    parsed = parse_torrent_id(data)
    if parsed is None:
        raise InvalidTorrentError()
    return parsed


async def fetch_torrent(url: str) -> bytes:
    """Download a .torrent file and return its body."""
    logger.debug(f"Fetching torrent from {url}")
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=FETCH_TIMEOUT)) as response:
                if response.status != 200:
                    raise TorrentFetchError(f"Error downloading torrent. HTTP status {response.status}")
                return await response.read()
    except asyncio.TimeoutError as e:
        raise TorrentFetchError("Error downloading torrent. Request timed out") from e
    except aiohttp.ClientError as e:
        raise TorrentFetchError(f"Error downloading torrent. {e}") from e


async def read_torrent(path: str | Path) -> bytes:
    """Read a .torrent file from disk without blocking the event loop."""
    logger.debug(f"Reading torrent from {path}")
    try:
        return await asyncio.to_thread(Path(path).read_bytes)
    except (OSError, ValueError) as e:
        raise InvalidTorrentError() from e
