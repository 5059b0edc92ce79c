"""Tests for the command-line interface."""

from pathlib import Path

import pytest

from torrent_stream.cli import build_parser, run


class TestBuildParser:
    def test_defaults(self) -> None:
        args = build_parser().parse_args(["movie.torrent"])

        assert args.torrent == "movie.torrent"
        assert args.port == 9000
        assert args.index is None
        assert not args.list
        assert not args.no_server

    def test_flags(self) -> None:
        args = build_parser().parse_args(["movie.torrent", "-p", "8888", "-i", "2", "-l", "-o", "/tmp/out"])

        assert args.port == 8888
        assert args.index == 2
        assert args.list
        assert args.output == Path("/tmp/out")

    def test_negative_index_rejected(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["movie.torrent", "-i", "-1"])

        assert "file index must be 0 or greater" in capsys.readouterr().err


class TestRun:
    @pytest.mark.asyncio
    async def test_list_files(
        self, tmp_path: Path, download_dir: Path, metainfo: bytes, capsys: pytest.CaptureFixture[str]
    ) -> None:
        torrent_path = tmp_path / "movie.torrent"
        torrent_path.write_bytes(metainfo)
        args = build_parser().parse_args([str(torrent_path), "-l", "-o", str(download_dir)])

        assert await run(args) == 0

        out = capsys.readouterr().out
        assert "movie.mp4" in out
        assert " * 0. movie.mp4 (100 bytes)" in out

    @pytest.mark.asyncio
    async def test_invalid_torrent(
        self, tmp_path: Path, download_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        args = build_parser().parse_args([str(tmp_path / "missing.torrent"), "-l", "-o", str(download_dir)])

        assert await run(args) == 1
        assert "Error:" in capsys.readouterr().err
