"""Pydantic models shared across the torrent stream client."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from .magnet import HEX_INFO_HASH_RE
from .torrent_parser import Torrent


class TorrentDescriptor(BaseModel):
    """Canonical, engine-ready description of a torrent."""

    info_hash: str = Field(description="Lowercase hex info hash")
    name: str | None = Field(default=None, description="Display name, if known")
    announce: list[str] = Field(default_factory=list, description="Tracker URLs")
    web_seeds: list[str] = Field(default_factory=list, description="Web seed URLs")
    metainfo: Torrent | None = Field(default=None, description="Full metainfo once known")

    @field_validator("info_hash")
    @classmethod
    def normalize_info_hash(cls, value: str) -> str:
        if not HEX_INFO_HASH_RE.match(value):
            raise ValueError(f"Info hash must be 40 hex characters, got {value!r}")
        return value.lower()

    @model_validator(mode="after")
    def check_metainfo(self) -> "TorrentDescriptor":
        if self.metainfo is not None and self.metainfo.info_hash != self.info_hash:
            raise ValueError("Metainfo does not match info hash")
        return self

    @classmethod
    def from_torrent(cls, torrent: Torrent) -> "TorrentDescriptor":
        """Build a descriptor from parsed metainfo."""
        return cls(
            info_hash=torrent.info_hash,
            name=torrent.name,
            announce=torrent.get_announce_urls(),
            web_seeds=torrent.url_list or [],
            metainfo=torrent,
        )


class ByteRange(BaseModel):
    """Inclusive byte range within a file of known length."""

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "ByteRange":
        if self.end < self.start:
            raise ValueError(f"Range end {self.end} is before start {self.start}")
        return self

    @property
    def length(self) -> int:
        return self.end - self.start + 1


class BlocklistEntry(BaseModel):
    """An excluded IP range, boundaries kept as text."""

    start: str
    end: str

    model_config = {"frozen": True}
