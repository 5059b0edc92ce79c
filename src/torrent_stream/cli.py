"""
Command-line interface for streaming a torrent over HTTP.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .client import StreamClient
from .config import DEFAULT_DOWNLOAD_DIR, DEFAULT_PORT, DEFAULT_READY_TIMEOUT, ClientOptions
from .engine import TorrentHandle


def file_index(value: str) -> int:
    index = int(value)
    if index < 0:
        raise argparse.ArgumentTypeError(f"file index must be 0 or greater, got {index}")
    return index


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stream a file from a torrent over HTTP")
    parser.add_argument(
        "torrent", type=str, help="Magnet link, info hash, http(s) url or path to a .torrent file"
    )
    parser.add_argument("-p", "--port", type=int, default=DEFAULT_PORT, help=f"HTTP port (default: {DEFAULT_PORT})")
    parser.add_argument("--no-server", action="store_true", help="Do not start the HTTP server")
    parser.add_argument("-l", "--list", action="store_true", help="List files in the torrent and exit")
    parser.add_argument("-b", "--blocklist", type=Path, help="IP blocklist file (plain text or .gz)")
    parser.add_argument("-i", "--index", type=file_index, help="Index of the file to stream (default: largest file)")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=DEFAULT_DOWNLOAD_DIR,
        help=f"Directory for torrent data (default: {DEFAULT_DOWNLOAD_DIR})",
    )
    parser.add_argument(
        "--ready-timeout",
        type=float,
        default=DEFAULT_READY_TIMEOUT,
        help=f"Seconds a request waits for the torrent to be ready (default: {DEFAULT_READY_TIMEOUT:g})",
    )
    parser.add_argument(
        "--full-status", action="store_true", help="Answer 200 instead of 206 when no Range is requested"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return parser


def print_files(handle: TorrentHandle) -> None:
    """Print the files of a ready torrent, marking the selected one."""
    print(f"{handle.name} ({handle.info_hash})")
    for i, file in enumerate(handle.files):
        marker = "*" if i == handle.index else " "
        print(f" {marker} {i}. {file.path} ({file.length} bytes)")


async def run(args: argparse.Namespace) -> int:
    options = ClientOptions(
        port=None if args.no_server else args.port,
        list_only=args.list,
        blocklist=args.blocklist,
        download_dir=args.output,
        ready_timeout=args.ready_timeout,
        always_partial=not args.full_status,
    )
    client = StreamClient(options=options)
    failed: asyncio.Future = asyncio.get_running_loop().create_future()
    done = asyncio.Event()

    def on_error(error: Exception) -> None:
        if not failed.done():
            failed.set_result(error)

    def on_torrent(handle: TorrentHandle) -> None:
        print_files(handle)
        if args.list:
            done.set()
        elif client.server is not None:
            print(f"\nStreaming {handle.files[handle.index].path} at {client.server.url}")

    client.on("error", on_error)
    client.on("torrent", on_torrent)

    waiters: list[asyncio.Future] = [failed]
    try:
        await client.start()
        client.add(args.torrent, index=args.index)

        waiters.append(asyncio.ensure_future(done.wait()))
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        if failed.done():
            print(f"Error: {failed.result()}", file=sys.stderr)
            return 1
        return 0
    finally:
        for waiter in waiters:
            waiter.cancel()
        await client.destroy()


def main() -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        print("\nStopping...")


if __name__ == "__main__":
    main()
