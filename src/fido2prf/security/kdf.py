"""Salt and key derivation for fido2prf."""
import hashlib
import os

from cryptography.hazmat.primitives import hashes, hmac

LABEL = b"age-encryption.org/fido2prf"
NONCE_SIZE = 16
PRF_PREFIX = b"WebAuthn PRF\x00"


def generate_nonce(length: int = NONCE_SIZE) -> bytes:
    """Return a fresh per-message nonce from the OS CSPRNG."""
    return os.urandom(length)


def _prf_input_salt(label: bytes, index: int, nonce: bytes) -> bytes:
    h = hashlib.sha256()
    h.update(PRF_PREFIX)
    h.update(label)
    h.update(bytes([index]))
    h.update(nonce)
    return h.digest()


def hmac_secret_salt(nonce: bytes, label: bytes = LABEL) -> bytes:
    """
    Map the two PRF evaluation points for ``nonce`` onto hmac-secret salts.

    The PRF inputs are ``label || 0x01 || nonce`` and ``label || 0x02 || nonce``,
    each hashed the way WebAuthn hashes PRF inputs into hmac-secret salts:
    ``SHA-256("WebAuthn PRF" || 0x00 || input)``. Both salts are used so that
    one user presence check cannot decrypt two files at once.

    Returns 64 bytes: salt1 || salt2.
    """
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")
    return _prf_input_salt(label, 1, nonce) + _prf_input_salt(label, 2, nonce)


def derive_wrapping_key(secret: bytes, label: bytes = LABEL) -> bytes:
    """
    HKDF-SHA256 extract step only: PRK = HMAC-SHA256(label, secret).
    Returns the 32-byte key used to seal a single file key.
    """
    if not secret:
        raise ValueError("hardware secret is empty")
    h = hmac.HMAC(label, hashes.SHA256())
    h.update(secret)
    return h.finalize()
