"""
Passtable - Local Encrypted Credential Vault
============================================

Core engine of a password table: an ordered collection of tagged records
protected as a single AES encrypted file.

Security Notice:
- No record contents, passphrases or ciphertext are logged
- Key and working buffers are wiped after each crypto call
- The passphrase-to-key step is a fixed padding, not a KDF
"""

from passtable.core.config import PasstableConfig
from passtable.core.logging import configure_logging, get_secure_logger
from passtable.core.vault import (
    ErrorKind,
    FillResult,
    ItemResult,
    RecordView,
    SaveResult,
    TagColor,
    Vault,
)
from passtable.security.password_generator import PasswordGenerator

__version__ = "1.4.5"
__author__ = "Passtable Team"

__all__ = [
    "PasstableConfig",
    "configure_logging",
    "get_secure_logger",
    "Vault",
    "RecordView",
    "TagColor",
    "ErrorKind",
    "FillResult",
    "ItemResult",
    "SaveResult",
    "PasswordGenerator",
    "__version__",
]
