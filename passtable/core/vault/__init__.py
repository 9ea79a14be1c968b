"""
Passtable Vault
===============

The record collection of one vault file and its save/fill protocol.

Components:
- record.py: Record, RecordView, TagColor
- file_version.py: version character of vault files
- results.py: operation results and the ErrorKind taxonomy
- store.py: Vault
"""

from passtable.core.vault.file_version import CURRENT_FILE_VERSION, FileVersion
from passtable.core.vault.record import NO_TAG, Record, RecordView, TagColor
from passtable.core.vault.results import ErrorKind, FillResult, ItemResult, SaveResult
from passtable.core.vault.store import Vault, parse_records, serialize_records

__all__ = [
    "Vault",
    "Record",
    "RecordView",
    "TagColor",
    "NO_TAG",
    "FileVersion",
    "CURRENT_FILE_VERSION",
    "ErrorKind",
    "FillResult",
    "ItemResult",
    "SaveResult",
    "parse_records",
    "serialize_records",
]
