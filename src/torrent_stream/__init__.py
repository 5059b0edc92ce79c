"""
Stream files from torrents over HTTP while they download.
"""

from .blocklist import load_blocklist
from .client import StreamClient, select_default
from .config import ClientOptions, TorrentOptions
from .engine import FileEntry, SwarmEngine, TorrentHandle
from .local_engine import LocalEngine
from .models import BlocklistEntry, ByteRange, TorrentDescriptor
from .server import StreamServer, parse_range
from .storage import FileSystemStorage, StorageError
from .torrent_id import InvalidTorrentError, TorrentFetchError, parse_torrent_id, resolve_torrent_id

__all__ = [
    "BlocklistEntry",
    "ByteRange",
    "ClientOptions",
    "FileEntry",
    "FileSystemStorage",
    "InvalidTorrentError",
    "LocalEngine",
    "StorageError",
    "StreamClient",
    "StreamServer",
    "SwarmEngine",
    "TorrentDescriptor",
    "TorrentFetchError",
    "TorrentHandle",
    "TorrentOptions",
    "load_blocklist",
    "parse_range",
    "parse_torrent_id",
    "resolve_torrent_id",
    "select_default",
]
