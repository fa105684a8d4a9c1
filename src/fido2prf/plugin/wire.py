"""age stanza text framing, shared by the plugin protocol in both directions.

Stanza layout:
- one line: ``-> `` followed by space-separated arguments
- body: unpadded standard base64, wrapped at 64 columns
- the body always ends with a line shorter than 64 columns, which is an
  empty line when the body length is a multiple of 48 bytes
"""
import base64
from typing import BinaryIO, List, Optional, Tuple

from fido2prf.core.exceptions import ProtocolError

STANZA_PREFIX = b"-> "
COLUMNS_PER_LINE = 64
BYTES_PER_LINE = COLUMNS_PER_LINE // 4 * 3


def b64encode_nopad(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii").rstrip("=")


def b64decode_nopad(text: str) -> bytes:
    """Strict unpadded standard base64: rejects padding and non-canonical input."""
    if "=" in text or len(text) % 4 == 1:
        raise ValueError("invalid unpadded base64")
    try:
        data = base64.b64decode(text + "=" * (-len(text) % 4), validate=True)
    except (ValueError, TypeError) as e:
        raise ValueError("invalid base64") from e
    if b64encode_nopad(data) != text:
        raise ValueError("non-canonical base64")
    return data


def encode_stanza(args: List[str], body: bytes) -> bytes:
    out = bytearray(STANZA_PREFIX)
    out += " ".join(args).encode("ascii")
    out += b"\n"
    encoded = b64encode_nopad(body)
    for i in range(0, len(encoded), COLUMNS_PER_LINE):
        out += encoded[i:i + COLUMNS_PER_LINE].encode("ascii")
        out += b"\n"
    if len(encoded) % COLUMNS_PER_LINE == 0:
        out += b"\n"
    return bytes(out)


def write_stanza(stream: BinaryIO, args: List[str], body: bytes = b"") -> None:
    stream.write(encode_stanza(args, body))
    stream.flush()


def _read_line(stream: BinaryIO) -> Optional[str]:
    line = stream.readline()
    if not line:
        return None
    if not line.endswith(b"\n"):
        raise ProtocolError("unexpected end of stream inside a stanza")
    try:
        return line[:-1].decode("ascii")
    except UnicodeDecodeError as e:
        raise ProtocolError("non-ASCII byte in stanza") from e


def read_stanza(stream: BinaryIO) -> Optional[Tuple[List[str], bytes]]:
    """
    Read one stanza; returns ``(args, body)`` or None on a clean end of stream.
    """
    header = _read_line(stream)
    if header is None:
        return None
    if not header.startswith(STANZA_PREFIX.decode("ascii")):
        raise ProtocolError(f"invalid stanza line: {header[:32]!r}")
    args = header[len(STANZA_PREFIX):].split(" ")
    if not args or not args[0]:
        raise ProtocolError("stanza without a type")

    body = bytearray()
    while True:
        line = _read_line(stream)
        if line is None:
            raise ProtocolError("unexpected end of stream inside a stanza body")
        if len(line) > COLUMNS_PER_LINE:
            raise ProtocolError("stanza body line too long")
        try:
            body += b64decode_nopad(line)
        except ValueError as e:
            raise ProtocolError(f"invalid stanza body: {e}") from e
        if len(line) < COLUMNS_PER_LINE:
            break
    return args, bytes(body)
