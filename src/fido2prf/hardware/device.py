"""
Security key access for fido2prf.

The identity protocol only ever talks to a :class:`SecurityKey`, a narrow
handle exposing credential creation and (probe or hmac-secret) assertions.
:class:`HidSecurityKey` implements it on top of ``python-fido2`` for USB HID
authenticators; tests substitute an in-memory key.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fido2.client import ClientError, Fido2Client, UserInteraction
from fido2.ctap import CtapError
from fido2.ctap2 import Ctap2
from fido2.ctap2.extensions import HmacSecretExtension
from fido2.hid import CtapHidDevice
from fido2.webauthn import (
    AuthenticatorSelectionCriteria,
    PublicKeyCredentialCreationOptions,
    PublicKeyCredentialDescriptor,
    PublicKeyCredentialParameters,
    PublicKeyCredentialRequestOptions,
    PublicKeyCredentialRpEntity,
    PublicKeyCredentialType,
    PublicKeyCredentialUserEntity,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from fido2prf.core.exceptions import (
    HardwareError,
    NoMatchingCredentialError,
    PINError,
    UnsupportedHardwareError,
    UserCancelledError,
)

logger = logging.getLogger(__name__)

HMAC_SECRET = "hmac-secret"
ES256 = -7
SALT_SIZE = 32
USER_NAME = "age-encryption.org/fido2prf"

# The client data hash only matters for attestation and signatures, neither
# of which is verified here.
UNUSED_CHALLENGE = bytes(32)

_PIN_ERRORS = {
    CtapError.ERR.PIN_INVALID,
    CtapError.ERR.PIN_BLOCKED,
    CtapError.ERR.PIN_AUTH_INVALID,
    CtapError.ERR.PIN_AUTH_BLOCKED,
    CtapError.ERR.PIN_NOT_SET,
}

_CANCEL_ERRORS = {
    CtapError.ERR.KEEPALIVE_CANCEL,
    CtapError.ERR.OPERATION_DENIED,
    CtapError.ERR.USER_ACTION_TIMEOUT,
    CtapError.ERR.ACTION_TIMEOUT,
}


def translate_error(error: Exception) -> HardwareError:
    """Map a python-fido2 error onto the fido2prf hardware error taxonomy."""
    cause = error.cause if isinstance(error, ClientError) and error.cause is not None else error
    if isinstance(cause, CtapError):
        if cause.code == CtapError.ERR.NO_CREDENTIALS:
            return NoMatchingCredentialError("no such credential on this device")
        if cause.code in _PIN_ERRORS:
            return PINError(f"security key rejected the PIN ({cause.code.name})")
        if cause.code in _CANCEL_ERRORS:
            return UserCancelledError(f"security key request was cancelled ({cause.code.name})")
    if isinstance(error, ClientError) and error.code == ClientError.ERR.TIMEOUT:
        return UserCancelledError("timed out waiting for the security key")
    return HardwareError(f"security key error: {error}")


class SecurityKey:
    """Capability handle for one connected authenticator."""

    name = "security key"

    def supports_hmac_secret(self) -> bool:
        raise NotImplementedError

    def make_credential(self, rp_id: str, pin: str) -> bytes:
        """Create a non-resident ES256 credential with hmac-secret; return its id."""
        raise NotImplementedError

    def assertion(
        self,
        rp_id: str,
        credential_id: bytes,
        salt: Optional[bytes] = None,
        pin: Optional[str] = None,
        user_presence: bool = True,
    ) -> Optional[bytes]:
        """
        Run an assertion for ``credential_id`` under ``rp_id``.

        With ``user_presence=False`` this is a silent probe: it returns None
        when the credential is present and raises
        :class:`NoMatchingCredentialError` when it is not.

        Otherwise the 64-byte ``salt`` is sent through hmac-secret with user
        verification and the secret is returned, or None if the device did
        not produce one.
        """
        raise NotImplementedError

    def close(self) -> None:
        pass


class _PinInteraction(UserInteraction):
    # Hands a single PIN to python-fido2 when it asks for one.

    def __init__(self, pin: Optional[str]):
        self._pin = pin

    def prompt_up(self):
        logger.info("Touch your security key to continue")

    def request_pin(self, permissions, rp_id):
        return self._pin

    def request_uv(self, permissions, rp_id):
        return True


class HidSecurityKey(SecurityKey):
    """A :class:`SecurityKey` backed by a USB HID CTAP2 device."""

    def __init__(self, device: CtapHidDevice):
        self._device = device
        self.name = str(getattr(device.descriptor, "path", "hid device"))

    def _ctap2(self) -> Ctap2:
        try:
            return Ctap2(self._device)
        except ValueError as e:
            raise UnsupportedHardwareError(f"{self.name} does not support CTAP2") from e

    def _client(self, rp_id: str, pin: Optional[str]) -> Fido2Client:
        # The relying party id is a namespace here, not a web origin.
        return Fido2Client(
            self._device,
            f"https://{rp_id}",
            verify=lambda _rp_id, _origin: True,
            user_interaction=_PinInteraction(pin),
            # hmacCreateSecret/hmacGetSecret are ignored unless explicitly allowed.
            extensions=[HmacSecretExtension(allow_hmac_secret=True)],
        )

    def supports_hmac_secret(self) -> bool:
        return HMAC_SECRET in (self._ctap2().info.extensions or [])

    def make_credential(self, rp_id: str, pin: str) -> bytes:
        if not self.supports_hmac_secret():
            raise UnsupportedHardwareError("FIDO2 device doesn't support the hmac-secret extension")

        options = PublicKeyCredentialCreationOptions(
            rp=PublicKeyCredentialRpEntity(name=rp_id, id=rp_id),
            # Not used for non-resident credentials, but required by CTAP2.
            user=PublicKeyCredentialUserEntity(name=USER_NAME, id=b"\x00"),
            challenge=UNUSED_CHALLENGE,
            pub_key_cred_params=[
                PublicKeyCredentialParameters(type=PublicKeyCredentialType.PUBLIC_KEY, alg=ES256)
            ],
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement.DISCOURAGED,
                user_verification=UserVerificationRequirement.REQUIRED,
            ),
            extensions={"hmacCreateSecret": True},
        )
        try:
            result = self._client(rp_id, pin).make_credential(options)
        except (ClientError, CtapError) as e:
            raise translate_error(e) from e

        if not getattr(result.extension_results, "hmac_create_secret", None):
            raise UnsupportedHardwareError("FIDO2 device did not enable hmac-secret for the credential")
        return bytes(result.attestation_object.auth_data.credential_data.credential_id)

    def assertion(
        self,
        rp_id: str,
        credential_id: bytes,
        salt: Optional[bytes] = None,
        pin: Optional[str] = None,
        user_presence: bool = True,
    ) -> Optional[bytes]:
        if not user_presence:
            self._probe(rp_id, credential_id)
            return None

        if salt is None or len(salt) != 2 * SALT_SIZE:
            raise ValueError("hmac-secret assertions need a 64-byte salt")

        options = PublicKeyCredentialRequestOptions(
            challenge=UNUSED_CHALLENGE,
            rp_id=rp_id,
            allow_credentials=[
                PublicKeyCredentialDescriptor(type=PublicKeyCredentialType.PUBLIC_KEY, id=credential_id)
            ],
            user_verification=UserVerificationRequirement.REQUIRED,
            extensions={"hmacGetSecret": {"salt1": salt[:SALT_SIZE], "salt2": salt[SALT_SIZE:]}},
        )
        try:
            selection = self._client(rp_id, pin).get_assertion(options)
        except (ClientError, CtapError) as e:
            raise translate_error(e) from e

        # Attribute access keeps bytes; item access would give base64url strings.
        outputs = getattr(selection.get_response(0).extension_results, "hmac_get_secret", None)
        if outputs is None or outputs.output1 is None or outputs.output2 is None:
            return None
        return bytes(outputs.output1) + bytes(outputs.output2)

    def _probe(self, rp_id: str, credential_id: bytes) -> None:
        ctap2 = self._ctap2()
        try:
            ctap2.get_assertion(
                rp_id,
                UNUSED_CHALLENGE,
                allow_list=[{"type": "public-key", "id": credential_id}],
                options={"up": False},
            )
        except CtapError as e:
            raise translate_error(e) from e

    def close(self) -> None:
        try:
            self._device.close()
        except OSError as e:
            logger.debug("closing %s failed: %s", self.name, e)


def list_security_keys() -> List[SecurityKey]:
    """Return a handle for every connected FIDO HID device, in enumeration order."""
    devices = [HidSecurityKey(d) for d in CtapHidDevice.list_devices()]
    logger.debug("found %d FIDO2 device(s)", len(devices))
    return devices
