"""
Validation Utilities
====================

Predicates that guard data entering the vault: record fields, tags,
primary passphrases and file names. None of them has side effects.
"""

from __future__ import annotations

import re
from enum import Enum, auto
from pathlib import Path
from typing import Final, Optional

from passtable.security.constants import (
    MAX_FILE_NAME_LENGTH,
    MAX_PRIMARY_PASSPHRASE_LENGTH,
    RESERVED_PREFIX,
)

_CONTROL_CHARS: Final[re.Pattern[str]] = re.compile(r"[\x00-\x1f]")
# Lone surrogates have no UTF-8 encoding
_SURROGATES: Final[re.Pattern[str]] = re.compile(r"[\ud800-\udfff]")
_NON_PRINTABLE_ASCII: Final[re.Pattern[str]] = re.compile(r"[^ -~]")
_FILE_NAME_INVALID: Final[re.Pattern[str]] = re.compile(r'[\x00-\x1f/\\:*?"<>|]')
_RESERVED_WIN_NAMES: Final[re.Pattern[str]] = re.compile(
    r"(COM[0-9]|LPT[0-9]|CON|CONIN\$|CONOUT\$|PRN|AUX|NUL)", re.IGNORECASE
)
_LEGAL_TAGS: Final[frozenset[str]] = frozenset("012345")


class ValidationError(ValueError):
    """Raised when validation fails."""
    pass


class PassphraseCheck(Enum):
    """Outcome of verify_primary_passphrase()."""
    OK = auto()
    EMPTY = auto()
    INVALID_CHAR = auto()
    RESERVED_PREFIX = auto()
    TOO_LONG = auto()


class FileNameCheck(Enum):
    """Outcome of verify_file_name()."""
    OK = auto()
    BLANK = auto()
    INVALID_CHAR = auto()
    LEADING_SPACE = auto()
    RESERVED_WORD = auto()
    TOO_LONG = auto()


def verify_data(*fields: str) -> bool:
    """
    Check that no field contains a control character (0x00-0x1F) or a lone
    surrogate, which could not be written to the vault file.
    """
    return not any(
        _CONTROL_CHARS.search(value) or _SURROGATES.search(value) for value in fields
    )


def verify_item(note: str, username: str, password: str) -> bool:
    """
    Check the record admission rule.

    A record needs a non-blank note, or a non-blank username together with
    a non-empty password.
    """
    return bool(note.strip()) or (bool(username.strip()) and password != "")


def verify_tag(tag: str) -> bool:
    """Check that the tag is exactly one of "0".."5"."""
    return tag in _LEGAL_TAGS


def verify_primary_passphrase(passphrase: str) -> PassphraseCheck:
    """
    Verify a primary passphrase before it is used to protect a file.

    Checks run in order: empty, characters outside printable ASCII
    (0x20-0x7E), reserved "/" prefix, longer than 32 characters.
    """
    if not passphrase:
        return PassphraseCheck.EMPTY
    if _NON_PRINTABLE_ASCII.search(passphrase):
        return PassphraseCheck.INVALID_CHAR
    if passphrase.startswith(RESERVED_PREFIX):
        return PassphraseCheck.RESERVED_PREFIX
    if len(passphrase) > MAX_PRIMARY_PASSPHRASE_LENGTH:
        return PassphraseCheck.TOO_LONG
    return PassphraseCheck.OK


def verify_file_name(name: str) -> FileNameCheck:
    """
    Verify a vault file name (final path component, no directories).

    Checks run in order: blank, control or reserved characters
    (\\ / : * ? " < > |), leading whitespace, Windows device names such as
    CON or LPT1 (whole name, any case), longer than 200 characters.
    """
    if not name.strip():
        return FileNameCheck.BLANK
    if _FILE_NAME_INVALID.search(name):
        return FileNameCheck.INVALID_CHAR
    if name[0].isspace():
        return FileNameCheck.LEADING_SPACE
    if _RESERVED_WIN_NAMES.fullmatch(name):
        return FileNameCheck.RESERVED_WORD
    if len(name) > MAX_FILE_NAME_LENGTH:
        return FileNameCheck.TOO_LONG
    return FileNameCheck.OK


def get_primary_allowed_chars(space_label: str = "space") -> str:
    """
    Describe the characters allowed in a primary passphrase.

    Args:
        space_label: Word shown for the space character (for translations)

    Returns:
        Two-line, human readable list for prompts
    """
    return (
        f"A..Z a..z 0..9 {space_label}\n"
        "@ $ # % & ~ ! ? = + * - _ . , : ; ' \" ` ^ ( ) < > [ ] { } \\ / |"
    )


def validate_path_safe(
    path: str | Path,
    base_directory: Optional[Path] = None,
    must_exist: bool = False,
    allow_symlinks: bool = False,
) -> Path:
    """
    Validate a path is safe and optionally within a base directory.

    Args:
        path: The path to validate
        base_directory: If provided, path must be within this directory
        must_exist: If True, path must exist
        allow_symlinks: If False, symlinks are rejected

    Returns:
        Validated, resolved Path object

    Raises:
        ValidationError: If validation fails
    """
    if ".." in Path(path).parts:
        raise ValidationError("Path traversal detected")

    try:
        validated_path = Path(path).resolve()
    except (ValueError, RuntimeError, OSError) as e:
        raise ValidationError(f"Invalid path: {e}") from e

    if base_directory is not None:
        resolved_base = base_directory.resolve()
        if not validated_path.is_relative_to(resolved_base):
            raise ValidationError(f"Path must be within {resolved_base}")

    if must_exist and not validated_path.exists():
        raise ValidationError(f"Path does not exist: {validated_path}")

    if not allow_symlinks and Path(path).is_symlink():
        raise ValidationError("Symlinks are not allowed")

    return validated_path
