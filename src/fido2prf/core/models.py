"""
Data models shared by the identity protocol and the plugin transport
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from .cbor import Reader, append_array, append_bytes, append_string, append_uint
from .exceptions import MalformedIdentityError, UnsupportedVersionError


IDENTITY_VERSION = 1
DEFAULT_TRANSPORTS = ("usb",)


@dataclass(frozen=True)
class IdentityRecord:
    """
    Serializable reference to one non-resident credential on a security key.

    ``credential_id`` is an opaque handle assigned by the authenticator and is
    never interpreted. ``transports`` is advisory only.
    """

    credential_id: bytes
    relying_party_id: str
    transports: Tuple[str, ...] = DEFAULT_TRANSPORTS
    version: int = IDENTITY_VERSION

    def to_bytes(self) -> bytes:
        buf = bytearray()
        append_uint(buf, self.version)
        append_bytes(buf, self.credential_id)
        append_string(buf, self.relying_party_id)
        append_array(buf, self.transports)
        return bytes(buf)

    @classmethod
    def from_bytes(cls, data: bytes) -> "IdentityRecord":
        """
        Decode a record, rejecting anything that is not exactly
        {version, credential id, relying party id, transports}.
        """
        reader = Reader(data)
        version = reader.read_uint()
        if version is None or version != IDENTITY_VERSION:
            raise UnsupportedVersionError("unsupported fido2prf version")

        credential_id = reader.read_bytes()
        if credential_id is None:
            raise MalformedIdentityError("malformed fido2prf identity: bad credential id")
        relying_party_id = reader.read_string()
        if relying_party_id is None:
            raise MalformedIdentityError("malformed fido2prf identity: bad relying party id")
        transports = reader.read_array()
        if transports is None:
            raise MalformedIdentityError("malformed fido2prf identity: bad transports")
        if not reader.empty():
            raise MalformedIdentityError("malformed fido2prf identity: trailing data")

        return cls(
            credential_id=credential_id,
            relying_party_id=relying_party_id,
            transports=tuple(transports),
            version=version,
        )


@dataclass
class Stanza:
    # One recipient's wrapped file key, as carried in an age header.
    type: str
    args: List[str] = field(default_factory=list)
    body: bytes = b""
