"""Shared fixtures: an in-memory security key standing in for real hardware."""

import hashlib
import hmac
import os

import pytest

from fido2prf.core.exceptions import NoMatchingCredentialError, PINError, UnsupportedHardwareError
from fido2prf.core.models import IdentityRecord
from fido2prf.hardware.device import SecurityKey
from fido2prf.security.identity import Fido2PrfIdentity

PIN = "1234"
RP_ID = "age-encryption.org"


class FakeSecurityKey(SecurityKey):
    """
    Deterministic authenticator: the hmac-secret output for a salt is
    HMAC-SHA256(device_key, credential_id || salt half), per 32-byte half.
    """

    def __init__(self, name="fake0", pin=PIN, hmac_secret=True, device_key=None):
        self.name = name
        self.pin = pin
        self.hmac_secret = hmac_secret
        self.device_key = device_key or os.urandom(32)
        self.credentials = set()
        self.calls = []
        self.closed = False

    def add_credential(self, rp_id=RP_ID, credential_id=None):
        credential_id = credential_id or os.urandom(48)
        self.credentials.add((rp_id, credential_id))
        return credential_id

    def supports_hmac_secret(self):
        return self.hmac_secret

    def make_credential(self, rp_id, pin):
        self.calls.append(("make_credential", rp_id))
        if pin != self.pin:
            raise PINError("security key rejected the PIN (PIN_INVALID)")
        if not self.hmac_secret:
            raise UnsupportedHardwareError("FIDO2 device doesn't support the hmac-secret extension")
        return self.add_credential(rp_id)

    def assertion(self, rp_id, credential_id, salt=None, pin=None, user_presence=True):
        self.calls.append(("assertion", user_presence, pin))
        if (rp_id, credential_id) not in self.credentials:
            raise NoMatchingCredentialError("no such credential on this device")
        if not user_presence:
            return None
        if pin != self.pin:
            raise PINError("security key rejected the PIN (PIN_INVALID)")
        if not self.hmac_secret:
            return None
        return b"".join(
            hmac.new(self.device_key, credential_id + half, hashlib.sha256).digest()
            for half in (salt[:32], salt[32:])
        )

    def close(self):
        self.closed = True


class PinCounter:
    """PIN callback that records how often it was asked."""

    def __init__(self, pin=PIN):
        self.pin = pin
        self.count = 0

    def __call__(self):
        self.count += 1
        return self.pin


@pytest.fixture
def device():
    return FakeSecurityKey()


@pytest.fixture
def record(device):
    return IdentityRecord(credential_id=device.add_credential(), relying_party_id=RP_ID)


@pytest.fixture
def get_pin():
    return PinCounter()


@pytest.fixture
def identity(record, get_pin, device):
    return Fido2PrfIdentity(record, get_pin, lambda: [device])
