"""
IP blocklist loading.

Lines look like `Some label: 1.2.3.4-1.2.3.9`; comments and anything that does
not match are skipped. Files ending in `.gz` are first decompressed to a
sibling `.txt` file.
"""

from __future__ import annotations

import asyncio
import gzip
import logging
import re
import shutil
from pathlib import Path

from .models import BlocklistEntry

logger = logging.getLogger(__name__)

BLOCKLIST_RE = re.compile(r"^\s*[^#].*?\s*:\s*([a-f0-9.:]+?)\s*-\s*([a-f0-9.:]+?)\s*$")


def parse_blocklist(text: str) -> list[BlocklistEntry]:
    """Parse blocklist text into ordered entries."""
    blocklist = []
    for line in text.split("\n"):
        match = BLOCKLIST_RE.match(line)
        if match:
            blocklist.append(BlocklistEntry(start=match.group(1), end=match.group(2)))
    return blocklist


def decompress_blocklist(path: Path) -> Path:
    """Decompress `name.gz` to `name.txt` next to it and return the new path."""
    target = path.with_suffix(".txt")
    with gzip.open(path, "rb") as src, open(target, "wb") as dst:
        shutil.copyfileobj(src, dst)
    return target


def _load(path: Path) -> list[BlocklistEntry]:
    if path.suffix == ".gz":
        path = decompress_blocklist(path)
    return parse_blocklist(path.read_text(encoding="utf-8", errors="replace"))


async def load_blocklist(path: str | Path) -> list[BlocklistEntry]:
    """
    Load a blocklist file, compressed or not.

    Args:
        path: Path to a plain text or .gz blocklist

    Returns:
        Entries in file order
    """
    blocklist = await asyncio.to_thread(_load, Path(path))
    logger.info(f"Loaded {len(blocklist)} blocklist entries from {path}")
    return blocklist
