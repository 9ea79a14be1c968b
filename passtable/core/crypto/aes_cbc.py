"""
AES-CBC Payload Encryption
==========================

Encrypts and decrypts the serialized vault under the primary passphrase.

Blob Format (before base64):
    [AES-CBC/PKCS7 ciphertext][16-byte IV]

Key Preparation:
    The UTF-8 passphrase (1..32 bytes) is extended to the nearest AES key
    size (16, 24 or 32 bytes) with characters of the public KEY_PADDING
    sequence. This is a length normalization, NOT a key derivation
    function: it adds no entropy and no salt. It must stay byte-for-byte
    identical or existing files can no longer be opened.

Failure Model:
    - Precondition violations (key length, empty input, malformed base64)
      raise CryptoEngineError subclasses
    - Padding or block errors while finishing the cipher return
      CryptoError.FAILED and never raise, so a wrong passphrase and a
      corrupted ciphertext look the same to the caller

WARNING:
    - Key, IV, plaintext and working buffers are wiped after every call,
      on success and on failure
"""

from __future__ import annotations

import base64
import binascii
import secrets
from enum import Enum
from typing import Final

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from passtable.core.memory.zeroization import ZeroizeContext, secure_zero
from passtable.security.constants import (
    AES_BLOCK_SIZE,
    AES_KEY_SIZES,
    ERROR_SENTINEL,
    IV_LENGTH_BYTES,
    KEY_PADDING,
    MAX_PASSPHRASE_BYTES,
)

_PADDING_BITS: Final[int] = AES_BLOCK_SIZE * 8


class CryptoError(Enum):
    """Opaque marker returned by decrypt() when the cipher cannot finish."""
    FAILED = ERROR_SENTINEL


class CryptoEngineError(ValueError):
    """Base class for invalid crypto engine arguments."""
    pass


class InvalidKeyLengthError(CryptoEngineError):
    """Raised when the passphrase is empty or longer than 32 bytes."""
    pass


class EmptyInputError(CryptoEngineError):
    """Raised when there is nothing to encrypt or decrypt."""
    pass


class CiphertextFormatError(CryptoEngineError):
    """Raised when the ciphertext blob is not valid base64 text."""
    pass


def prepare_key(passphrase: str) -> bytearray:
    """
    Extend the passphrase to an AES key size with the fixed padding sequence.

    Args:
        passphrase: Primary passphrase, 1..32 bytes once UTF-8 encoded

    Returns:
        Key buffer of 16, 24 or 32 bytes. The caller must wipe it.

    Raises:
        InvalidKeyLengthError: If the encoded passphrase is empty or too long
    """
    encoded = bytearray(passphrase.encode("utf-8"))
    with ZeroizeContext(encoded):
        length = len(encoded)
        if length == 0 or length > MAX_PASSPHRASE_BYTES:
            raise InvalidKeyLengthError(
                f"Passphrase must be 1 to {MAX_PASSPHRASE_BYTES} bytes long"
            )

        key_size = next(size for size in AES_KEY_SIZES if length <= size)
        key = bytearray(key_size)
        key[:length] = encoded
        key[length:] = KEY_PADDING[: key_size - length].encode("ascii")
        return key


def generate_iv() -> bytearray:
    """Generate a random 16-byte IV from the OS CSPRNG."""
    return bytearray(secrets.token_bytes(IV_LENGTH_BYTES))


def encrypt(plaintext: bytes, passphrase: str) -> str:
    """
    Encrypt plaintext under the passphrase.

    Args:
        plaintext: Non-empty payload
        passphrase: Primary passphrase (1..32 bytes UTF-8)

    Returns:
        base64 text of ciphertext ++ IV

    Raises:
        InvalidKeyLengthError: If the passphrase length is out of range
        EmptyInputError: If plaintext is empty
    """
    key = prepare_key(passphrase)
    with ZeroizeContext(key):
        if not plaintext:
            raise EmptyInputError("Nothing to encrypt")

        msg = bytearray(plaintext)
        iv = generate_iv()
        with ZeroizeContext(msg, iv):
            padder = padding.PKCS7(_PADDING_BITS).padder()
            padded = bytearray(padder.update(msg))
            padded += padder.finalize()

            result = bytearray(len(padded) + AES_BLOCK_SIZE - 1)
            with ZeroizeContext(padded, result):
                encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
                written = encryptor.update_into(padded, result)
                tail = encryptor.finalize()
                blob = bytes(memoryview(result)[:written]) + tail + bytes(iv)
                return base64.b64encode(blob).decode("ascii")


def decrypt(blob: str | bytes, passphrase: str) -> bytes | CryptoError:
    """
    Decrypt a blob produced by encrypt().

    Args:
        blob: base64 text of ciphertext ++ IV
        passphrase: Primary passphrase (1..32 bytes UTF-8)

    Returns:
        The plaintext, or CryptoError.FAILED on bad padding / corrupt blocks
        (wrong passphrase or damaged data)

    Raises:
        InvalidKeyLengthError: If the passphrase length is out of range
        CiphertextFormatError: If blob is not base64
        EmptyInputError: If the decoded blob cannot hold ciphertext and IV
    """
    key = prepare_key(passphrase)
    with ZeroizeContext(key):
        try:
            data = bytearray(base64.b64decode(blob, validate=True))
        except (binascii.Error, ValueError) as e:
            raise CiphertextFormatError("Ciphertext is not valid base64") from e

        with ZeroizeContext(data):
            if len(data) <= IV_LENGTH_BYTES:
                raise EmptyInputError("Ciphertext is too short to contain data and IV")

            msg = data[:-IV_LENGTH_BYTES]
            iv = data[-IV_LENGTH_BYTES:]
            result = bytearray(len(msg) + AES_BLOCK_SIZE - 1)
            with ZeroizeContext(msg, iv, result):
                try:
                    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
                    written = decryptor.update_into(msg, result)
                    tail = decryptor.finalize()

                    unpadder = padding.PKCS7(_PADDING_BITS).unpadder()
                    plain = bytearray(unpadder.update(memoryview(result)[:written]))
                    plain += unpadder.update(tail)
                    plain += unpadder.finalize()
                except ValueError:
                    return CryptoError.FAILED

                try:
                    return bytes(plain)
                finally:
                    secure_zero(plain)
