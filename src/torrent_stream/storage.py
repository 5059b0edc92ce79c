"""
File system storage for torrent pieces.

Pieces are written to the torrent's files on disk and can be read back as
lazy byte ranges that wait for missing pieces to arrive.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import BinaryIO

from .torrent_parser import Torrent

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Exception raised for piece storage errors."""

    pass


class FileSystemStorage:
    """Maps torrent pieces onto files in a download directory."""

    def __init__(self, output_dir: Path, torrent: Torrent) -> None:
        """
        Initialize storage.

        Args:
            output_dir: Directory to write files to
            torrent: Parsed metainfo describing files and pieces
        """
        self.output_dir = Path(output_dir)
        self.torrent = torrent
        self.piece_length = torrent.info.piece_length
        self.total_length = torrent.total_size
        self.closed = False
        self.file_handles: dict[Path, BinaryIO] = {}
        # (path, start offset in torrent, length) for every non-empty file
        self.file_spans: list[tuple[Path, int, int]] = []
        self._piece_events = [asyncio.Event() for _ in range(torrent.info.piece_count)]

        self._calculate_spans()

    def _calculate_spans(self) -> None:
        """Calculate where each file sits in the torrent's byte space."""
        if self.torrent.info.is_single_file:
            base = self.output_dir
        else:
            base = self.output_dir / self.torrent.name

        current_offset = 0
        for file_info in self.torrent.get_files():
            if file_info.length:
                self.file_spans.append((base.joinpath(*file_info.path), current_offset, file_info.length))
            current_offset += file_info.length

    def _segments(self, offset: int, length: int) -> list[tuple[Path, int, int, int]]:
        """
        Split a torrent byte span into per-file segments.

        Returns:
            List of (file_path, offset_in_file, length, offset_in_span)
        """
        segments = []
        span_end = offset + length
        for path, file_start, file_length in self.file_spans:
            file_end = file_start + file_length
            overlap_start = max(offset, file_start)
            overlap_end = min(span_end, file_end)
            if overlap_start < overlap_end:
                segments.append((path, overlap_start - file_start, overlap_end - overlap_start, overlap_start - offset))
        return segments

    def _get_file_handle(self, file_path: Path) -> BinaryIO:
        """Get or create a file handle for random access."""
        if file_path not in self.file_handles:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            mode = "r+b" if file_path.exists() else "w+b"
            self.file_handles[file_path] = open(file_path, mode)
        return self.file_handles[file_path]

    @property
    def piece_count(self) -> int:
        return len(self._piece_events)

    def has_piece(self, piece_index: int) -> bool:
        """Check whether a piece has been written or verified."""
        return self._piece_events[piece_index].is_set()

    def completed_pieces(self) -> int:
        return sum(1 for event in self._piece_events if event.is_set())

    def write_piece(self, piece_index: int, piece_data: bytes) -> None:
        """
        Verify a piece and write it to the appropriate file(s).

        Args:
            piece_index: Index of the piece
            piece_data: Piece data to write

        Raises:
            StorageError: If the piece is out of range or fails verification
        """
        if self.closed:
            raise StorageError("Storage is closed")
        if not 0 <= piece_index < self.piece_count:
            raise StorageError(f"Piece index {piece_index} out of range")
        if len(piece_data) != self.torrent.info.get_piece_size(piece_index):
            raise StorageError(f"Piece {piece_index} has wrong length {len(piece_data)}")
        if hashlib.sha1(piece_data).digest() != self.torrent.info.get_piece_hash(piece_index):
            raise StorageError(f"Piece {piece_index} verification failed")

        offset = piece_index * self.piece_length
        for file_path, offset_in_file, length, offset_in_piece in self._segments(offset, len(piece_data)):
            f = self._get_file_handle(file_path)
            f.seek(offset_in_file)
            f.write(piece_data[offset_in_piece : offset_in_piece + length])
            f.flush()

        self._piece_events[piece_index].set()
        logger.debug(f"Stored piece {piece_index}")

    def verify(self) -> int:
        """
        Hash-check data already on disk and mark matching pieces available.

        Returns:
            Number of pieces available after the check
        """
        for piece_index in range(self.piece_count):
            if self.has_piece(piece_index):
                continue
            data = self._read_existing(piece_index)
            if data is not None and hashlib.sha1(data).digest() == self.torrent.info.get_piece_hash(piece_index):
                self._piece_events[piece_index].set()

        available = self.completed_pieces()
        logger.info(f"Verified {available}/{self.piece_count} pieces in {self.output_dir}")
        return available

    def _read_existing(self, piece_index: int) -> bytes | None:
        offset = piece_index * self.piece_length
        length = self.torrent.info.get_piece_size(piece_index)
        parts = []
        for file_path, offset_in_file, seg_length, _ in self._segments(offset, length):
            try:
                with open(file_path, "rb") as f:
                    f.seek(offset_in_file)
                    chunk = f.read(seg_length)
            except OSError:
                return None
            if len(chunk) != seg_length:
                return None
            parts.append(chunk)
        return b"".join(parts)

    def _read_span(self, offset: int, length: int) -> bytes:
        parts = []
        for file_path, offset_in_file, seg_length, _ in self._segments(offset, length):
            f = self._get_file_handle(file_path)
            f.seek(offset_in_file)
            parts.append(f.read(seg_length))
        return b"".join(parts)

    async def read(self, offset: int, length: int) -> AsyncIterator[bytes]:
        """
        Lazily read a span of the torrent, waiting for missing pieces.

        Chunks never cross a piece boundary.

        Args:
            offset: Start offset in the torrent's byte space
            length: Number of bytes to read

        Yields:
            Chunks of data in order
        """
        if offset < 0 or length < 0 or offset + length > self.total_length:
            raise StorageError(f"Read of {length} bytes at {offset} is outside the torrent")

        remaining = length
        while remaining > 0:
            piece_index = offset // self.piece_length
            event = self._piece_events[piece_index]
            if not event.is_set():
                logger.debug(f"Waiting for piece {piece_index}")
                await event.wait()
            if self.closed:
                raise StorageError("Storage closed while reading")

            piece_end = (piece_index + 1) * self.piece_length
            chunk_length = min(remaining, piece_end - offset)
            yield self._read_span(offset, chunk_length)
            offset += chunk_length
            remaining -= chunk_length

    def close(self) -> None:
        """Close all open file handles and release pending readers."""
        self.closed = True
        for f in self.file_handles.values():
            f.close()
        self.file_handles.clear()
        # Wake readers so they observe the closed flag
        for event in self._piece_events:
            event.set()
