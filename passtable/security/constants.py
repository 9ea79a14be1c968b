"""
Security Constants
==================

Defines the fixed values shared by the crypto engine, the vault store and
the password generator. Changing any of these breaks compatibility with
existing passtable files.
"""

from typing import Final

# Encryption Settings
ENCRYPTION_ALGORITHM: Final[str] = "AES-CBC-PKCS7"
AES_BLOCK_SIZE: Final[int] = 16  # bytes
IV_LENGTH_BYTES: Final[int] = 16
AES_KEY_SIZES: Final[tuple[int, ...]] = (16, 24, 32)
MAX_PASSPHRASE_BYTES: Final[int] = 32

# Public, non-secret sequence used to stretch a passphrase to an AES key size.
KEY_PADDING: Final[str] = "1a3b5c7d9e0f2g4"

# Reserved values. The "/" prefix is never allowed in a primary passphrase.
RESERVED_PREFIX: Final[str] = "/"
ERROR_SENTINEL: Final[str] = "/error"
EMPTY_COLLECTION_SENTINEL: Final[str] = "/emptyCollection"
HAS_PASSWORD_MARKER: Final[str] = "/yes"
NO_PASSWORD_MARKER: Final[str] = "/no"

# Payload template: tag \t note \t username \t password, records joined by \n
FIELD_SEPARATOR: Final[str] = "\t"
RECORD_SEPARATOR: Final[str] = "\n"
FIELDS_PER_RECORD: Final[int] = 4

# Primary passphrase / file name limits
MAX_PRIMARY_PASSPHRASE_LENGTH: Final[int] = 32
MAX_FILE_NAME_LENGTH: Final[int] = 200
FILE_NAME_INVALID_CHARS: Final[str] = "\\ / : * ? \" < > |"
FILE_NAME_INVALID_WIN_WORDS: Final[str] = "COM0..COM9 LPT0..LPT9 CON PRN AUX NUL CONIN$ CONOUT$"

# Fallback save location
FALLBACK_EXTENSION: Final[str] = ".passtable"

# Password generator character collections
NUMBER_CHARS: Final[str] = "0123456789"
LOWERCASE_LETTER_CHARS: Final[str] = "abcdefghijklmnopqrstuvwxyz"
UPPERCASE_LETTER_CHARS: Final[str] = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
SYMBOL_CHARS: Final[str] = "!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"  # all ASCII punctuation, no space
EASY_SYMBOL_CHARS: Final[str] = "@$#&!?+*-_:"
