"""Tests for magnet link parsing."""

import base64

import pytest

from torrent_stream.magnet import MagnetError, MagnetLink, decode_info_hash, is_info_hash, is_magnet_link

INFO_HASH = "dd8255ecdc7ca55fb0bbf81323d87062db1f6d1c"


class TestMagnetLinkParsing:
    """Tests for MagnetLink.parse()."""

    def test_parse_simple_magnet(self) -> None:
        """Test parsing a simple magnet link with just info hash."""
        magnet = MagnetLink.parse(f"magnet:?xt=urn:btih:{INFO_HASH}")

        assert magnet.info_hash_hex == INFO_HASH
        assert len(magnet.info_hash) == 20
        assert magnet.display_name is None
        assert magnet.trackers == []

    def test_parse_magnet_with_display_name(self) -> None:
        """Test parsing magnet with display name."""
        magnet = MagnetLink.parse(f"magnet:?xt=urn:btih:{INFO_HASH}&dn=Ubuntu+25.10")

        assert magnet.display_name == "Ubuntu 25.10"

    def test_parse_magnet_with_trackers(self) -> None:
        """Test parsing magnet with tracker URLs."""
        uri = (
            f"magnet:?xt=urn:btih:{INFO_HASH}"
            "&tr=udp%3A%2F%2Ftracker1.example.com%3A6969"
            "&tr=udp://tracker2.example.com:6969"
        )
        magnet = MagnetLink.parse(uri)

        assert magnet.trackers == ["udp://tracker1.example.com:6969", "udp://tracker2.example.com:6969"]

    def test_parse_magnet_with_all_fields(self) -> None:
        """Test parsing magnet with all common fields."""
        uri = (
            f"magnet:?xt=urn:btih:{INFO_HASH}"
            "&dn=Ubuntu+25.10+Desktop+ISO"
            "&xl=4000000000"
            "&tr=udp://tracker.example.com:6969"
            "&ws=http://example.com/file.iso"
        )
        magnet = MagnetLink.parse(uri)

        assert magnet.display_name == "Ubuntu 25.10 Desktop ISO"
        assert magnet.exact_length == 4000000000
        assert magnet.web_seeds == ["http://example.com/file.iso"]

    def test_parse_base32_info_hash(self) -> None:
        """Test parsing magnet with base32 encoded info hash."""
        magnet = MagnetLink.parse("magnet:?xt=urn:btih:3WBIF3K4R4FVPHMZEYYWZQZQ4KNBPXB4")

        assert len(magnet.info_hash) == 20
        assert len(magnet.info_hash_hex) == 40

    def test_parse_invalid_uri_format(self) -> None:
        with pytest.raises(MagnetError, match="must start with"):
            MagnetLink.parse("http://example.com/file.torrent")

    def test_parse_missing_info_hash(self) -> None:
        with pytest.raises(MagnetError, match="missing info hash"):
            MagnetLink.parse("magnet:?dn=SomeTorrent")

    def test_parse_invalid_hex_hash(self) -> None:
        with pytest.raises(MagnetError, match="Invalid hex info hash"):
            MagnetLink.parse("magnet:?xt=urn:btih:zzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzzz")

    def test_parse_invalid_hash_length(self) -> None:
        with pytest.raises(MagnetError, match="Invalid info hash length"):
            MagnetLink.parse("magnet:?xt=urn:btih:abc123")

    def test_parse_invalid_exact_length(self) -> None:
        with pytest.raises(MagnetError, match="Invalid exact length"):
            MagnetLink.parse(f"magnet:?xt=urn:btih:{INFO_HASH}&xl=big")


class TestMagnetLinkToUri:
    """Tests for MagnetLink.to_uri()."""

    def test_to_uri_keeps_fields(self) -> None:
        magnet = MagnetLink.parse(f"magnet:?xt=urn:btih:{INFO_HASH}&dn=Test&tr=http://t.example.com/a")
        result = magnet.to_uri()

        assert result.startswith(f"magnet:?xt=urn:btih:{INFO_HASH}")
        assert "dn=Test" in result
        assert MagnetLink.parse(result).trackers == ["http://t.example.com/a"]


class TestInfoHashHelpers:
    """Tests for is_magnet_link(), is_info_hash() and decode_info_hash()."""

    def test_is_magnet_link(self) -> None:
        assert is_magnet_link("magnet:?xt=urn:btih:abc123") is True
        assert is_magnet_link("/path/to/file.torrent") is False
        assert is_magnet_link("http://example.com/file.torrent") is False

    def test_is_info_hash(self) -> None:
        assert is_info_hash(INFO_HASH) is True
        assert is_info_hash(INFO_HASH.upper()) is True
        assert is_info_hash("3WBIF3K4R4FVPHMZEYYWZQZQ4KNBPXB4") is True
        assert is_info_hash("movie.torrent") is False
        assert is_info_hash(INFO_HASH[:-1]) is False

    def test_base32_and_hex_agree(self) -> None:
        raw = decode_info_hash(INFO_HASH)
        assert decode_info_hash(base64.b32encode(raw).decode()) == raw
