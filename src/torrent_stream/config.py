"""Client configuration and defaults."""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

from .models import BlocklistEntry
from .storage import FileSystemStorage

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9000
DEFAULT_DOWNLOAD_DIR = Path(tempfile.gettempdir()) / "torrent-stream"

# Seconds an HTTP request may wait for a torrent to become active
DEFAULT_READY_TIMEOUT = 120.0

# Idle connection timeout; pieces can take a long time to arrive
DEFAULT_SOCKET_TIMEOUT = 36000.0


class ClientOptions(BaseModel):
    """Options for a StreamClient."""

    port: int | None = Field(default=DEFAULT_PORT, ge=0, le=65535, description="HTTP port, None to disable")
    host: str = Field(default=DEFAULT_HOST, description="HTTP bind address")
    list_only: bool = Field(default=False, description="Only list files, never start the HTTP server")
    blocklist: Path | None = Field(default=None, description="Blocklist file, optionally gzip compressed")
    download_dir: Path = Field(default=DEFAULT_DOWNLOAD_DIR, description="Where torrent data is stored")
    ready_timeout: float | None = Field(
        default=DEFAULT_READY_TIMEOUT, gt=0, description="Max wait for an active torrent, None waits forever"
    )
    always_partial: bool = Field(default=True, description="Answer 206 even when no Range was requested")
    socket_timeout: float = Field(default=DEFAULT_SOCKET_TIMEOUT, gt=0, description="Idle connection timeout")


class TorrentOptions(BaseModel):
    """Per-torrent options handed to the swarm engine."""

    download_dir: Path = Field(default=DEFAULT_DOWNLOAD_DIR)
    index: int | None = Field(default=None, ge=0, description="File to serve, largest file if unset")
    storage: type[FileSystemStorage] = Field(default=FileSystemStorage, description="Storage backend class")
    blocklist: list[BlocklistEntry] = Field(default_factory=list)
