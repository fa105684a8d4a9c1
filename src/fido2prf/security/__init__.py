"""Security helpers: salt/key derivation, file key sealing and the fido2prf identity.

This package provides:
- hmac-secret salt derivation from a per-message nonce
- HKDF-extract of the wrapping key from the hardware secret
- ChaCha20-Poly1305 sealing of 16-byte age file keys
- the Wrap/Unwrap identity protocol and credential generation
"""

from .kdf import generate_nonce, hmac_secret_salt, derive_wrapping_key
from .crypto import seal_file_key, open_file_key
from .identity import Fido2PrfIdentity, new_credential, PLUGIN_NAME, STANZA_TYPE

__all__ = [
    "generate_nonce",
    "hmac_secret_salt",
    "derive_wrapping_key",
    "seal_file_key",
    "open_file_key",
    "Fido2PrfIdentity",
    "new_credential",
    "PLUGIN_NAME",
    "STANZA_TYPE",
]
