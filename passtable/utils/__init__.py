"""
Utils module - Input validation and vault file paths.
"""

from passtable.utils.paths import (
    fallback_file_name,
    fallback_path,
    read_vault_file,
    write_vault_file,
)
from passtable.utils.validators import (
    FileNameCheck,
    PassphraseCheck,
    ValidationError,
    get_primary_allowed_chars,
    validate_path_safe,
    verify_data,
    verify_file_name,
    verify_item,
    verify_primary_passphrase,
    verify_tag,
)

__all__ = [
    "fallback_file_name",
    "fallback_path",
    "read_vault_file",
    "write_vault_file",
    "FileNameCheck",
    "PassphraseCheck",
    "ValidationError",
    "get_primary_allowed_chars",
    "validate_path_safe",
    "verify_data",
    "verify_file_name",
    "verify_item",
    "verify_primary_passphrase",
    "verify_tag",
]
