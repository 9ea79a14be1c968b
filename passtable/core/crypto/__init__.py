"""
Passtable Cryptographic Core
============================

Symmetric protection of the serialized vault payload.

Architecture:
    AES-CBC with PKCS#7 padding, random IV appended to the ciphertext,
    base64 text framing.

Security Properties:
    - Secure RNG for every IV
    - Key and working buffers wiped after use
    - Cipher finalization failures reported as one opaque result

WARNING: The passphrase is stretched to a key size with a fixed public
         padding sequence. It is not a key derivation function.
"""

from passtable.core.crypto.aes_cbc import (
    CiphertextFormatError,
    CryptoEngineError,
    CryptoError,
    EmptyInputError,
    InvalidKeyLengthError,
    decrypt,
    encrypt,
    prepare_key,
)

__all__ = [
    "encrypt",
    "decrypt",
    "prepare_key",
    "CryptoError",
    "CryptoEngineError",
    "InvalidKeyLengthError",
    "EmptyInputError",
    "CiphertextFormatError",
]
