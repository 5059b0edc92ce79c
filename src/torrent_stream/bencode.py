"""
Bencode encoding and decoding.
"""

from __future__ import annotations

from typing import Any


class BencodeError(Exception):
    """Exception raised for bencode parsing errors."""

    pass


def encode(value: Any) -> bytes:
    """
    Encode a Python value to bencode format.

    Args:
        value: The value to encode

    Returns:
        Bencoded bytes
    """
    if isinstance(value, bool):
        raise BencodeError(f"Cannot encode type: {type(value)}")
    if isinstance(value, int):
        return f"i{value}e".encode()
    elif isinstance(value, bytes):
        return f"{len(value)}:".encode() + value
    elif isinstance(value, str):
        value_bytes = value.encode("utf-8")
        return f"{len(value_bytes)}:".encode() + value_bytes
    elif isinstance(value, list):
        return b"l" + b"".join(encode(item) for item in value) + b"e"
    elif isinstance(value, dict):
        result = b"d"
        # Bencode requires keys to be sorted as raw strings
        keys = {k.encode("utf-8") if isinstance(k, str) else k: k for k in value}
        for key in sorted(keys):
            result += encode(key)
            result += encode(value[keys[key]])
        result += b"e"
        return result
    else:
        raise BencodeError(f"Cannot encode type: {type(value)}")


def decode(data: bytes, index: int = 0) -> tuple[Any, int]:
    """
    Decode bencoded data.

    Args:
        data: The raw bytes to decode
        index: Current position in the data

    Returns:
        Tuple of (decoded_value, new_index)
    """
    if index >= len(data):
        raise BencodeError(f"Unexpected end of data at index {index}")

    char = data[index : index + 1]

    # Integer: i<number>e
    if char == b"i":
        end_index = data.find(b"e", index + 1)
        if end_index == -1:
            raise BencodeError(f"Unterminated integer at index {index}")
        try:
            value = int(data[index + 1 : end_index])
        except ValueError as e:
            raise BencodeError(f"Invalid integer at index {index}") from e
        return value, end_index + 1

    # List: l<elements>e
    elif char == b"l":
        index += 1
        result: list[Any] = []
        while index < len(data) and data[index : index + 1] != b"e":
            value, index = decode(data, index)
            result.append(value)
        if index >= len(data):
            raise BencodeError(f"Unterminated list at index {index}")
        return result, index + 1

    # Dictionary: d<key-value pairs>e
    elif char == b"d":
        index += 1
        result_dict: dict[Any, Any] = {}
        while index < len(data) and data[index : index + 1] != b"e":
            key, index = decode(data, index)
            value, index = decode(data, index)
            if isinstance(key, bytes):
                key = key.decode("utf-8", errors="replace")
            result_dict[key] = value
        if index >= len(data):
            raise BencodeError(f"Unterminated dictionary at index {index}")
        return result_dict, index + 1

    # String: <length>:<data>
    elif char.isdigit():
        colon_index = data.find(b":", index)
        if colon_index == -1:
            raise BencodeError(f"No colon found for string at index {index}")
        try:
            length = int(data[index:colon_index])
        except ValueError as e:
            raise BencodeError(f"Invalid string length at index {index}") from e

        start_index = colon_index + 1
        end_index = start_index + length
        if end_index > len(data):
            raise BencodeError(f"String length exceeds data at index {index}")
        return data[start_index:end_index], end_index

    else:
        raise BencodeError(f"Unexpected character '{char.decode('latin-1', errors='replace')}' at index {index}")


def decode_all(data: bytes) -> Any:
    """Decode a complete bencoded document, rejecting trailing bytes."""
    value, end_index = decode(data, 0)
    if end_index != len(data):
        raise BencodeError(f"Trailing data at index {end_index}")
    return value


def find_info_span(data: bytes) -> tuple[int, int]:
    """
    Locate the raw 'info' value inside a bencoded metainfo dictionary.

    The info hash must be computed over the original bytes, so this walks the
    top-level dictionary instead of re-encoding the decoded value.

    Args:
        data: Bencoded metainfo

    Returns:
        Tuple of (start, end) offsets of the info dictionary
    """
    if data[:1] != b"d":
        raise BencodeError("Torrent data must start with a dictionary")

    index = 1
    while index < len(data) and data[index : index + 1] != b"e":
        key, index = decode(data, index)
        start = index
        _, index = decode(data, index)
        if key == b"info":
            return start, index

    raise BencodeError("Torrent data missing 'info' dictionary")
