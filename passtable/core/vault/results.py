"""
Vault Operation Results
=======================

Vault operations report expected failures as enum members instead of
raising. Every member maps to a coarse ErrorKind so hosts can decide how to
surface it without knowing each operation.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Optional


class ErrorKind(Enum):
    """Failure taxonomy shared by every vault result."""
    VALIDATION = auto()  # bad field, tag or name; caller can correct it
    BOUNDS = auto()  # position out of range
    CRYPTO = auto()  # wrong passphrase or corrupted ciphertext
    IO = auto()  # injected read/write failed
    FORMAT = auto()  # unsupported version or malformed payload
    GENERATION = auto()  # password generator misconfiguration


class ItemResult(Enum):
    """Result of CRUD and reorder operations."""
    SUCCESS = auto()
    INVALID_CHARACTERS = auto()
    EMPTY_ITEM = auto()
    INVALID_TAG = auto()
    OUT_OF_BOUNDS = auto()

    @property
    def ok(self) -> bool:
        return self is ItemResult.SUCCESS

    @property
    def kind(self) -> Optional[ErrorKind]:
        if self is ItemResult.SUCCESS:
            return None
        if self is ItemResult.OUT_OF_BOUNDS:
            return ErrorKind.BOUNDS
        return ErrorKind.VALIDATION


class FillResult(Enum):
    """Result of Vault.fill()."""
    SUCCESS = auto()
    MISSING_CIPHERTEXT = auto()
    MISSING_PASSPHRASE = auto()
    UNSUPPORTED_VERSION = auto()
    INVALID_PASSPHRASE = auto()
    CORRUPT_DATA = auto()

    @property
    def ok(self) -> bool:
        return self is FillResult.SUCCESS

    @property
    def kind(self) -> Optional[ErrorKind]:
        return _FILL_KINDS[self]


class SaveResult(Enum):
    """Result of Vault.save()."""
    SUCCESS = auto()
    SAVED_TO_FALLBACK = auto()  # written, but next to the process instead
    NO_PATH = auto()
    NO_PASSPHRASE = auto()
    ENCRYPTION_FAILED = auto()
    VERIFICATION_FAILED = auto()
    WRITE_FAILED = auto()

    @property
    def ok(self) -> bool:
        return self in (SaveResult.SUCCESS, SaveResult.SAVED_TO_FALLBACK)

    @property
    def kind(self) -> Optional[ErrorKind]:
        return _SAVE_KINDS[self]


_FILL_KINDS = {
    FillResult.SUCCESS: None,
    FillResult.MISSING_CIPHERTEXT: ErrorKind.VALIDATION,
    FillResult.MISSING_PASSPHRASE: ErrorKind.VALIDATION,
    FillResult.UNSUPPORTED_VERSION: ErrorKind.FORMAT,
    FillResult.INVALID_PASSPHRASE: ErrorKind.CRYPTO,
    FillResult.CORRUPT_DATA: ErrorKind.FORMAT,
}

_SAVE_KINDS = {
    SaveResult.SUCCESS: None,
    SaveResult.SAVED_TO_FALLBACK: None,
    SaveResult.NO_PATH: ErrorKind.VALIDATION,
    SaveResult.NO_PASSPHRASE: ErrorKind.VALIDATION,
    SaveResult.ENCRYPTION_FAILED: ErrorKind.CRYPTO,
    SaveResult.VERIFICATION_FAILED: ErrorKind.CRYPTO,
    SaveResult.WRITE_FAILED: ErrorKind.IO,
}
