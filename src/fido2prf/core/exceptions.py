"""
Exceptions for fido2prf
Everything derives from Fido2PrfError so callers have one general error catcher
"""


class Fido2PrfError(Exception):
    # general container for errors
    pass


class MalformedIdentityError(Fido2PrfError):
    # raised when an identity string or record does not decode exactly
    pass


class UnsupportedVersionError(MalformedIdentityError):
    # raised when the identity record carries a version other than 1
    pass


class MalformedStanzaError(Fido2PrfError):
    # raised when a fido2prf stanza has the wrong arguments or nonce
    pass


class HardwareError(Fido2PrfError):
    # raised when talking to a security key fails
    pass


class DeviceNotFoundError(HardwareError):
    # raised when no security key is connected
    pass


class AmbiguousDeviceError(HardwareError):
    # raised when credential creation finds more than one security key
    pass


class NoMatchingCredentialError(HardwareError):
    # raised when a probed device does not hold the credential (skip, not abort)
    pass


class UnsupportedHardwareError(HardwareError):
    # raised when a device lacks the hmac-secret extension
    pass


class PINError(HardwareError):
    # raised when the PIN is wrong, blocked or could not be read
    pass


class UserCancelledError(HardwareError):
    # raised when the user cancels, times out or denies the request
    pass


class AuthenticationFailureError(Fido2PrfError):
    # raised on an AEAD tag mismatch
    pass


class InvalidCiphertextLengthError(AuthenticationFailureError):
    # raised when a wrapped file key has the wrong size
    pass


class IncorrectIdentityError(Fido2PrfError):
    # raised when no stanza could be opened with this identity
    pass


class NoMatchingDeviceError(IncorrectIdentityError):
    # raised when no connected device holds the credential
    pass


class ProtocolError(Fido2PrfError):
    # raised on malformed plugin protocol traffic
    pass
