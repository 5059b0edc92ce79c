"""
Magnet link parser and info hash helpers.
"""

from __future__ import annotations

import base64
import binascii
import re
import urllib.parse

from pydantic import BaseModel, Field, computed_field

HEX_INFO_HASH_RE = re.compile(r"^[0-9a-fA-F]{40}$")
BASE32_INFO_HASH_RE = re.compile(r"^[A-Za-z2-7]{32}$")


class MagnetError(Exception):
    """Exception raised for magnet link errors."""

    pass


def is_info_hash(text: str) -> bool:
    """
    Check if a string is an info hash in hex (40 chars) or base32 (32 chars) form.

    Args:
        text: String to check

    Returns:
        True if it looks like an info hash
    """
    return bool(HEX_INFO_HASH_RE.match(text) or BASE32_INFO_HASH_RE.match(text))


def decode_info_hash(hash_str: str) -> bytes:
    """
    Decode a textual info hash to its 20 raw bytes.

    Raises:
        MagnetError: If the text is not a valid hex or base32 info hash
    """
    if len(hash_str) == 40:
        try:
            return bytes.fromhex(hash_str)
        except ValueError as e:
            raise MagnetError(f"Invalid hex info hash: {hash_str}") from e
    elif len(hash_str) == 32:
        try:
            return base64.b32decode(hash_str.upper())
        except binascii.Error as e:
            raise MagnetError(f"Invalid base32 info hash: {hash_str}") from e
    raise MagnetError(f"Invalid info hash length: {len(hash_str)}")


class MagnetLink(BaseModel):
    """Parsed magnet link data."""

    info_hash: bytes = Field(description="20-byte info hash")
    display_name: str | None = Field(default=None, description="Display name of the torrent")
    trackers: list[str] = Field(default_factory=list, description="List of tracker URLs")
    exact_length: int | None = Field(default=None, description="Exact file length if known")
    web_seeds: list[str] = Field(default_factory=list, description="Web seed URLs")

    @computed_field
    @property
    def info_hash_hex(self) -> str:
        """Get info hash as hex string."""
        return self.info_hash.hex()

    @classmethod
    def parse(cls, magnet_uri: str) -> "MagnetLink":
        """
        Parse a magnet URI.

        Args:
            magnet_uri: The magnet URI to parse

        Returns:
            MagnetLink object with parsed data

        Raises:
            MagnetError: If the URI is invalid
        """
        if not is_magnet_link(magnet_uri):
            raise MagnetError("Invalid magnet URI: must start with 'magnet:?'")

        params = urllib.parse.parse_qs(magnet_uri[8:])

        info_hash: bytes | None = None
        for xt in params.get("xt", []):
            if xt.startswith("urn:btih:"):
                info_hash = decode_info_hash(xt[9:])
                break

        if info_hash is None:
            raise MagnetError("Magnet URI missing info hash (xt=urn:btih:...)")

        if len(info_hash) != 20:
            raise MagnetError(f"Info hash must be 20 bytes, got {len(info_hash)}")

        dn_list = params.get("dn", [])
        display_name = dn_list[0] if dn_list else None

        xl_list = params.get("xl", [])
        try:
            exact_length = int(xl_list[0]) if xl_list else None
        except ValueError as e:
            raise MagnetError(f"Invalid exact length: {xl_list[0]}") from e

        return cls(
            info_hash=info_hash,
            display_name=display_name,
            trackers=params.get("tr", []),
            exact_length=exact_length,
            web_seeds=params.get("ws", []),
        )

    def to_uri(self) -> str:
        """
        Convert back to a magnet URI.

        Returns:
            Magnet URI string
        """
        params = [f"xt=urn:btih:{self.info_hash_hex}"]

        if self.display_name:
            params.append(f"dn={urllib.parse.quote(self.display_name)}")

        for tracker in self.trackers:
            params.append(f"tr={urllib.parse.quote(tracker)}")

        if self.exact_length:
            params.append(f"xl={self.exact_length}")

        for ws in self.web_seeds:
            params.append(f"ws={urllib.parse.quote(ws)}")

        return "magnet:?" + "&".join(params)


def is_magnet_link(uri: str) -> bool:
    """
    Check if a string is a magnet link.

    Args:
        uri: String to check

    Returns:
        True if it's a magnet link
    """
    return uri.startswith("magnet:?")
