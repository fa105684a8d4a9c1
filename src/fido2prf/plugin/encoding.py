"""age plugin identity strings.

A plugin identity is ``AGE-PLUGIN-<NAME>-1<data>`` in upper-case bech32
(BIP 173 checksum, not bech32m). age identities routinely exceed the
90-character limit of BIP 173, so only the checksum primitives of the
``bech32`` package are used and the length limit is not enforced.
"""
from typing import Tuple

from bech32 import CHARSET, bech32_create_checksum, bech32_verify_checksum, convertbits

from fido2prf.core.exceptions import MalformedIdentityError

PREFIX = "age-plugin-"
CHECKSUM_LENGTH = 6


def encode_identity(name: str, data: bytes) -> str:
    hrp = f"{PREFIX}{name.lower()}-"
    words = convertbits(data, 8, 5)
    combined = words + bech32_create_checksum(hrp, words)
    return (hrp + "1" + "".join(CHARSET[w] for w in combined)).upper()


def parse_identity(identity: str) -> Tuple[str, bytes]:
    """Return ``(plugin name, payload)`` for an ``AGE-PLUGIN-…`` string."""
    identity = identity.strip()
    if identity.lower() != identity and identity.upper() != identity:
        raise MalformedIdentityError("invalid identity: mixed case")
    if any(ord(c) < 33 or ord(c) > 126 for c in identity):
        raise MalformedIdentityError("invalid identity: invalid character")

    s = identity.lower()
    pos = s.rfind("1")
    if pos < 1 or pos + 1 + CHECKSUM_LENGTH > len(s):
        raise MalformedIdentityError("invalid identity: separator misplaced")
    hrp, encoded = s[:pos], s[pos + 1:]
    if not hrp.startswith(PREFIX) or not hrp.endswith("-") or len(hrp) <= len(PREFIX) + 1:
        raise MalformedIdentityError("invalid identity: not an age plugin identity")
    if any(c not in CHARSET for c in encoded):
        raise MalformedIdentityError("invalid identity: invalid bech32 character")

    words = [CHARSET.find(c) for c in encoded]
    if not bech32_verify_checksum(hrp, words):
        raise MalformedIdentityError("invalid identity: checksum mismatch")
    data = convertbits(words[:-CHECKSUM_LENGTH], 5, 8, False)
    if data is None:
        raise MalformedIdentityError("invalid identity: bad padding")

    return hrp[len(PREFIX):-1], bytes(data)
