"""
A .torrent metainfo parser that decodes bencoded data and extracts torrent metadata.
Uses Pydantic for structured data validation and type safety.
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from .bencode import BencodeError, decode_all, find_info_span
from .utils import format_size


def _text(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _check_path_component(part: str) -> str:
    if part in ("", ".", "..") or "/" in part or "\\" in part or "\x00" in part:
        raise ValueError(f"Unsafe path component: {part!r}")
    return part


class TorrentFile(BaseModel):
    """Represents a single file in a torrent."""

    length: int = Field(ge=0, description="File size in bytes")
    path: list[str] = Field(description="Path components for the file")

    @field_validator("path")
    @classmethod
    def check_path(cls, path: list[str]) -> list[str]:
        """Reject paths that could escape the download directory."""
        if not path:
            raise ValueError("File path must not be empty")
        return [_check_path_component(part) for part in path]

    @computed_field
    @property
    def full_path(self) -> str:
        """Get the full path as a string."""
        return "/".join(self.path)

    def format_size(self) -> str:
        """Format the file size as human-readable string."""
        return format_size(self.length)


class TorrentInfo(BaseModel):
    """The 'info' dictionary from a torrent file."""

    name: str = Field(description="Name of the torrent (file or directory)")
    piece_length: int = Field(alias="piece length", ge=1, description="Size of each piece in bytes")
    pieces: bytes = Field(description="Concatenated SHA-1 hashes of all pieces")
    length: int | None = Field(default=None, ge=0, description="Total length for single-file torrents")
    files: list[TorrentFile] | None = Field(default=None, description="List of files for multi-file torrents")
    private: int | None = Field(default=None, description="Private torrent flag")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def decode_bytes_fields(cls, data: Any) -> Any:
        """Decode bytes fields to strings where appropriate."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        data["name"] = _text(data.get("name"))

        if data.get("files"):
            if not isinstance(data["files"], list):
                raise ValueError("'files' must be a list")
            decoded_files = []
            for file_info in data["files"]:
                if isinstance(file_info, TorrentFile):
                    decoded_files.append(file_info)
                    continue
                if not isinstance(file_info, dict):
                    raise ValueError(f"File entry must be a dictionary, got {type(file_info).__name__}")
                path = file_info.get("path", [])
                if isinstance(path, list):
                    path = [str(_text(p)) for p in path]
                decoded_files.append({"length": file_info.get("length", 0), "path": path})
            data["files"] = decoded_files

        return data

    @field_validator("name")
    @classmethod
    def check_name(cls, name: str) -> str:
        return _check_path_component(name)

    @model_validator(mode="after")
    def check_pieces(self) -> "TorrentInfo":
        """Require exactly one 20-byte hash per piece of content."""
        if self.length is None and self.files is None:
            raise ValueError("Info dictionary needs 'length' or 'files'")
        if len(self.pieces) % 20:
            raise ValueError(f"'pieces' length {len(self.pieces)} is not a multiple of 20")
        expected = -(-self.total_size // self.piece_length)
        if self.piece_count != expected:
            raise ValueError(f"Expected {expected} piece hashes, got {self.piece_count}")
        return self

    @computed_field
    @property
    def piece_count(self) -> int:
        """Get the number of pieces (each SHA-1 hash is 20 bytes)."""
        return len(self.pieces) // 20

    @computed_field
    @property
    def total_size(self) -> int:
        """Get the total size of all files."""
        if self.length is not None:
            return self.length
        if self.files:
            return sum(f.length for f in self.files)
        return 0

    @computed_field
    @property
    def is_single_file(self) -> bool:
        """Check if this is a single-file torrent."""
        return self.length is not None

    def get_files(self) -> list[TorrentFile]:
        """Get the list of files in the torrent."""
        if self.files:
            return self.files
        return [TorrentFile(length=self.length or 0, path=[self.name])]

    def get_piece_hash(self, piece_index: int) -> bytes:
        """Get the SHA-1 hash for a specific piece."""
        if piece_index < 0 or piece_index >= self.piece_count:
            raise IndexError(f"Piece index {piece_index} out of range (0-{self.piece_count - 1})")
        start = piece_index * 20
        return self.pieces[start : start + 20]

    def get_piece_size(self, piece_index: int) -> int:
        """Get the length of a piece; the last one may be shorter."""
        if piece_index == self.piece_count - 1:
            return self.total_size - piece_index * self.piece_length
        return self.piece_length


class Torrent(BaseModel):
    """Complete torrent metadata."""

    info: TorrentInfo = Field(description="The info dictionary")
    info_hash: str = Field(description="Hex SHA-1 of the raw info dictionary")
    announce: str | None = Field(default=None, description="Primary tracker URL")
    announce_list: list[list[str]] | None = Field(
        default=None, alias="announce-list", description="Tiered list of tracker URLs"
    )
    url_list: list[str] | None = Field(default=None, alias="url-list", description="Web seed URLs")
    creation_date: int | None = Field(default=None, alias="creation date", description="Creation timestamp")
    comment: str | None = Field(default=None, description="Optional comment")
    created_by: str | None = Field(default=None, alias="created by", description="Creator software")
    encoding: str | None = Field(default=None, description="String encoding used")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def decode_bytes_fields(cls, data: Any) -> Any:
        """Decode bytes fields to strings where appropriate."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("announce", "comment", "created by", "encoding"):
            if key in data:
                data[key] = _text(data[key])

        if data.get("announce-list"):
            data["announce-list"] = [
                [str(_text(url)) for url in tier] for tier in data["announce-list"] if isinstance(tier, list)
            ]

        # url-list may be a single string or a list of strings
        if "url-list" in data:
            url_list = data["url-list"]
            if not isinstance(url_list, list):
                url_list = [url_list]
            data["url-list"] = [str(_text(url)) for url in url_list if url]

        return data

    @computed_field
    @property
    def name(self) -> str:
        """Get the torrent name."""
        return self.info.name

    @computed_field
    @property
    def total_size(self) -> int:
        """Get total size in bytes."""
        return self.info.total_size

    @computed_field
    @property
    def creation_datetime(self) -> datetime | None:
        """Get creation date as datetime object."""
        if self.creation_date:
            return datetime.fromtimestamp(self.creation_date)
        return None

    def get_announce_urls(self) -> list[str]:
        """Get all unique announce URLs."""
        urls: list[str] = []

        if self.announce:
            urls.append(self.announce)

        if self.announce_list:
            for tier in self.announce_list:
                for url in tier:
                    if url not in urls:
                        urls.append(url)

        return urls

    def get_files(self) -> list[TorrentFile]:
        """Get the list of files."""
        return self.info.get_files()


class TorrentParser:
    """Parser for bencoded .torrent metainfo."""

    def __init__(self, data: bytes) -> None:
        """
        Initialize the parser with raw metainfo bytes.

        Args:
            data: Contents of a .torrent file
        """
        self._raw_data = data
        self._torrent: Torrent | None = None

    @classmethod
    def from_path(cls, torrent_path: str | Path) -> "TorrentParser":
        """Create a parser from a .torrent file on disk."""
        path = Path(torrent_path)
        if not path.exists():
            raise FileNotFoundError(f"Torrent file not found: {torrent_path}")
        return cls(path.read_bytes())

    def parse(self) -> Torrent:
        """
        Parse the metainfo and return a Torrent model.

        Returns:
            Torrent model containing all parsed data

        Raises:
            BencodeError: If the data is not valid metainfo
        """
        data = decode_all(self._raw_data)
        if not isinstance(data, dict):
            raise BencodeError("Torrent file must start with a dictionary")
        if not isinstance(data.get("info"), dict):
            raise BencodeError("Torrent file missing 'info' dictionary")

        start, end = find_info_span(self._raw_data)
        data["info_hash"] = hashlib.sha1(self._raw_data[start:end]).hexdigest()

        try:
            self._torrent = Torrent.model_validate(data)
        except ValueError as e:
            raise BencodeError(f"Invalid torrent metainfo: {e}") from e
        return self._torrent

    @property
    def torrent(self) -> Torrent:
        """Get the parsed Torrent model, parsing if needed."""
        if self._torrent is None:
            self.parse()
        return self._torrent  # type: ignore

    def get_info_hash(self) -> str:
        """Return the hex SHA-1 of the 'info' dictionary."""
        return self.torrent.info_hash
