"""AEAD wrapping of 16-byte age file keys.

Wrapped layout:
- 16 bytes: ChaCha20-Poly1305 ciphertext of the file key
- 16 bytes: Poly1305 tag

The AEAD nonce is always 12 zero bytes. That is only sound because every
wrapping key is derived from a fresh hardware secret (one per message nonce),
so a key never seals two different file keys.
"""
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from fido2prf.core.exceptions import AuthenticationFailureError, InvalidCiphertextLengthError


FILE_KEY_SIZE = 16
TAG_SIZE = 16
ZERO_NONCE = bytes(12)


def seal_file_key(key: bytes, file_key: bytes) -> bytes:
    aead = ChaCha20Poly1305(key)
    return aead.encrypt(ZERO_NONCE, file_key, None)


def open_file_key(key: bytes, ciphertext: bytes, size: int = FILE_KEY_SIZE) -> bytes:
    if len(ciphertext) != size + TAG_SIZE:
        raise InvalidCiphertextLengthError("encrypted value has unexpected length")
    aead = ChaCha20Poly1305(key)
    try:
        return aead.decrypt(ZERO_NONCE, ciphertext, None)
    except InvalidTag as e:
        raise AuthenticationFailureError("file key authentication failed") from e
