"""Pydantic models for the MCP server."""

from pydantic import BaseModel


class StreamFileInfo(BaseModel):
    """A file inside a torrent."""

    index: int
    path: str
    size_bytes: int
    size_formatted: str


class TorrentSummary(BaseModel):
    """What is known about a torrent after resolving its identifier."""

    info_hash: str
    name: str | None = None
    has_metadata: bool
    total_size_bytes: int | None = None
    files: list[StreamFileInfo] = []
    announce_urls: list[str] = []


class StreamStatus(BaseModel):
    """State of the active stream."""

    active: bool
    info_hash: str | None = None
    name: str | None = None
    file: StreamFileInfo | None = None
    url: str | None = None
    completed_pieces: int = 0
    total_pieces: int = 0
