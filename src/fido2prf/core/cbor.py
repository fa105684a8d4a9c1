"""Tiny subset of the CTAP2 canonical CBOR encoding used for identity records.

Layout of every item:
- 1 byte: major type (high 3 bits) | minor value (low 5 bits)
- minor 0..23: the argument itself
- minor 24: 1 following byte holds the argument
- minor 25: 2 following big-endian bytes hold the argument

Only these major types are supported:
- 0: unsigned integer (argument is the value)
- 2: byte string (argument is the length, raw bytes follow)
- 3: text string (argument is the UTF-8 byte length)
- 4: array of text strings (argument is the element count)

Arguments are limited to 16 bits. Nothing here is meant to be extensible,
so the reader is strict and never tries to skip unknown items.
"""
import struct
from typing import List, Optional, Sequence, Tuple


MAJOR_UINT = 0
MAJOR_BYTES = 2
MAJOR_TEXT = 3
MAJOR_ARRAY = 4

MAX_ARGUMENT = 0xFFFF


def _append_type_and_argument(buf: bytearray, major: int, arg: int) -> None:
    if arg < 0 or arg > MAX_ARGUMENT:
        raise OverflowError(f"cbor: argument {arg} does not fit in 16 bits")
    if arg <= 23:
        buf.append((major << 5) | arg)
    elif arg <= 0xFF:
        buf.append((major << 5) | 24)
        buf.append(arg)
    else:
        buf.append((major << 5) | 25)
        buf += struct.pack(">H", arg)


def append_uint(buf: bytearray, value: int) -> bytearray:
    _append_type_and_argument(buf, MAJOR_UINT, value)
    return buf


def append_bytes(buf: bytearray, data: bytes) -> bytearray:
    _append_type_and_argument(buf, MAJOR_BYTES, len(data))
    buf += data
    return buf


def append_string(buf: bytearray, text: str) -> bytearray:
    raw = text.encode("utf-8")
    _append_type_and_argument(buf, MAJOR_TEXT, len(raw))
    buf += raw
    return buf


def append_array(buf: bytearray, items: Sequence[str]) -> bytearray:
    _append_type_and_argument(buf, MAJOR_ARRAY, len(items))
    for item in items:
        append_string(buf, item)
    return buf


class Reader:
    """Cursor over an immutable buffer.

    Every ``read_*`` method returns the decoded value, or ``None`` if the
    buffer is truncated, the major type is not the one requested, or a
    declared length runs past the end. After a failed read the position is
    unspecified and the reader should be discarded.
    """

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._pos = 0

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def empty(self) -> bool:
        return self.remaining() == 0

    def _read_type_and_argument(self) -> Optional[Tuple[int, int]]:
        if self.remaining() < 1:
            return None
        first = self._data[self._pos]
        major, minor = first >> 5, first & 0x1F
        if minor <= 23:
            self._pos += 1
            return major, minor
        if minor == 24:
            if self.remaining() < 2:
                return None
            arg = self._data[self._pos + 1]
            self._pos += 2
            return major, arg
        if minor == 25:
            if self.remaining() < 3:
                return None
            (arg,) = struct.unpack_from(">H", self._data, self._pos + 1)
            self._pos += 3
            return major, arg
        # 26..31 (32/64-bit arguments, indefinite lengths) are not part of the subset
        return None

    def _read_payload(self, major: int) -> Optional[bytes]:
        header = self._read_type_and_argument()
        if header is None or header[0] != major:
            return None
        length = header[1]
        if self.remaining() < length:
            return None
        out = self._data[self._pos:self._pos + length]
        self._pos += length
        return out

    def read_uint(self) -> Optional[int]:
        header = self._read_type_and_argument()
        if header is None or header[0] != MAJOR_UINT:
            return None
        return header[1]

    def read_bytes(self) -> Optional[bytes]:
        return self._read_payload(MAJOR_BYTES)

    def read_string(self) -> Optional[str]:
        raw = self._read_payload(MAJOR_TEXT)
        if raw is None:
            return None
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return None

    def read_array(self) -> Optional[List[str]]:
        header = self._read_type_and_argument()
        if header is None or header[0] != MAJOR_ARRAY:
            return None
        items = []
        for _ in range(header[1]):
            item = self.read_string()
            if item is None:
                return None
            items.append(item)
        return items
