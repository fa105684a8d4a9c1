"""
Hardware-bound age identity backed by the FIDO2 hmac-secret extension.

Wrap:
- draw a fresh 16-byte nonce
- turn it into two hmac-secret salts (:func:`hmac_secret_salt`)
- ask the security key for the secret (PIN + user verification)
- HKDF-extract a wrapping key and seal the file key under it
- emit ``age-encryption.org/fido2prf <base64 nonce>`` with the sealed key as body

Unwrap runs the same steps in reverse for every stanza of this type, and
treats a stanza that fails to open as belonging to someone else.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Callable, List, Sequence

from fido2prf.core.exceptions import (
    AmbiguousDeviceError,
    AuthenticationFailureError,
    DeviceNotFoundError,
    IncorrectIdentityError,
    MalformedIdentityError,
    MalformedStanzaError,
    NoMatchingCredentialError,
    NoMatchingDeviceError,
    UnsupportedHardwareError,
)
from fido2prf.core.models import DEFAULT_TRANSPORTS, IdentityRecord, Stanza
from fido2prf.hardware.device import SecurityKey, list_security_keys
from fido2prf.plugin.encoding import encode_identity, parse_identity
from fido2prf.plugin.wire import b64decode_nopad, b64encode_nopad

from .crypto import FILE_KEY_SIZE, open_file_key, seal_file_key
from .kdf import LABEL, NONCE_SIZE, derive_wrapping_key, generate_nonce, hmac_secret_salt

logger = logging.getLogger(__name__)

PLUGIN_NAME = "fido2prf"
STANZA_TYPE = LABEL.decode("ascii")

PinCallback = Callable[[], str]
DeviceLister = Callable[[], List[SecurityKey]]


def credential_fingerprint(credential_id: bytes) -> str:
    # Short, non-sensitive handle for log lines.
    return hashlib.sha256(credential_id).hexdigest()[:12]


class Fido2PrfIdentity:
    """
    An age identity (and recipient) bound to one non-resident credential.

    ``get_pin`` is called on demand, at most once per hardware assertion,
    and its result is never kept. ``list_devices`` enumerates the security
    keys to try, in order.
    """

    def __init__(
        self,
        record: IdentityRecord,
        get_pin: PinCallback,
        list_devices: DeviceLister = list_security_keys,
    ):
        self._record = record
        self._get_pin = get_pin
        self._list_devices = list_devices

    @property
    def record(self) -> IdentityRecord:
        return self._record

    @classmethod
    def from_data(cls, data: bytes, get_pin: PinCallback, list_devices: DeviceLister = list_security_keys) -> "Fido2PrfIdentity":
        return cls(IdentityRecord.from_bytes(data), get_pin, list_devices)

    @classmethod
    def from_string(cls, identity: str, get_pin: PinCallback, list_devices: DeviceLister = list_security_keys) -> "Fido2PrfIdentity":
        name, data = parse_identity(identity)
        if name != PLUGIN_NAME:
            raise MalformedIdentityError("not a fido2prf identity")
        return cls.from_data(data, get_pin, list_devices)

    def to_string(self) -> str:
        return encode_identity(PLUGIN_NAME, self._record.to_bytes())

    # ------------------------------------------------------------------
    # Hardware
    # ------------------------------------------------------------------

    def _assert(self, nonce: bytes) -> bytes:
        """Return the hmac-secret output for ``nonce`` from the first device holding the credential."""
        rp_id = self._record.relying_party_id
        credential_id = self._record.credential_id
        fingerprint = credential_fingerprint(credential_id)

        devices = self._list_devices()
        if not devices:
            raise DeviceNotFoundError("no FIDO2 devices found")

        try:
            for device in devices:
                # Probe without user presence so devices that don't hold the
                # credential are skipped without a touch or PIN prompt.
                try:
                    device.assertion(rp_id, credential_id, user_presence=False)
                except NoMatchingCredentialError:
                    logger.debug("credential %s not on %s", fingerprint, device.name)
                    continue

                logger.debug("credential %s found on %s", fingerprint, device.name)
                pin = self._get_pin()
                secret = device.assertion(
                    rp_id,
                    credential_id,
                    salt=hmac_secret_salt(nonce),
                    pin=pin,
                    user_presence=True,
                )
                if not secret:
                    raise UnsupportedHardwareError("FIDO2 device doesn't support the hmac-secret extension")
                return secret
        finally:
            for device in devices:
                device.close()

        raise NoMatchingDeviceError("identity doesn't match any FIDO2 device")

    # ------------------------------------------------------------------
    # age Recipient / Identity
    # ------------------------------------------------------------------

    def wrap(self, file_key: bytes) -> List[Stanza]:
        if len(file_key) != FILE_KEY_SIZE:
            raise ValueError(f"file key must be {FILE_KEY_SIZE} bytes")

        nonce = generate_nonce()
        secret = self._assert(nonce)
        key = derive_wrapping_key(secret)
        body = seal_file_key(key, file_key)
        return [Stanza(type=STANZA_TYPE, args=[b64encode_nopad(nonce)], body=body)]

    def unwrap(self, stanzas: Sequence[Stanza]) -> bytes:
        for stanza in stanzas:
            if stanza.type != STANZA_TYPE:
                continue
            nonce = _parse_nonce(stanza)
            secret = self._assert(nonce)
            key = derive_wrapping_key(secret)
            try:
                return open_file_key(key, stanza.body, FILE_KEY_SIZE)
            except AuthenticationFailureError:
                logger.debug("stanza did not open with credential %s", credential_fingerprint(self._record.credential_id))
                continue
        raise IncorrectIdentityError("incorrect identity for recipient block")


def _parse_nonce(stanza: Stanza) -> bytes:
    if len(stanza.args) != 1:
        raise MalformedStanzaError("fido2prf: invalid stanza: expected 1 argument")
    try:
        nonce = b64decode_nopad(stanza.args[0])
    except ValueError as e:
        raise MalformedStanzaError("fido2prf: invalid nonce") from e
    if len(nonce) != NONCE_SIZE:
        raise MalformedStanzaError("fido2prf: invalid nonce")
    return nonce


def new_credential(
    relying_party_id: str,
    pin: str,
    list_devices: DeviceLister = list_security_keys,
) -> str:
    """
    Create a non-resident hmac-secret credential on the single connected
    security key and return its ``AGE-PLUGIN-FIDO2PRF-1…`` identity string.
    """
    devices = list_devices()
    try:
        if not devices:
            raise DeviceNotFoundError("no FIDO2 devices found")
        if len(devices) != 1:
            raise AmbiguousDeviceError("multiple FIDO2 devices found, please remove all but one")

        credential_id = devices[0].make_credential(relying_party_id, pin)
    finally:
        for d in devices:
            d.close()

    logger.debug("created credential %s for %s", credential_fingerprint(credential_id), relying_party_id)
    record = IdentityRecord(
        credential_id=credential_id,
        relying_party_id=relying_party_id,
        transports=DEFAULT_TRANSPORTS,
    )
    return encode_identity(PLUGIN_NAME, record.to_bytes())
