"""
Vault Records
=============

One tagged (note, username, password) entry and the masked view of it that
read operations hand out.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from passtable.security.constants import HAS_PASSWORD_MARKER, NO_PASSWORD_MARKER

NO_TAG = "0"


class TagColor(IntEnum):
    """Color classes a record can be tagged with. Tag "0" means no color."""
    RED = 1
    GREEN = 2
    BLUE = 3
    YELLOW = 4
    PURPLE = 5

    @property
    def tag(self) -> str:
        """The tag symbol stored in the record."""
        return str(self.value)


@dataclass
class Record:
    """
    A record of the live collection.

    Note: password is never exposed in repr or str.
    """
    tag: str
    note: str
    username: str
    password: str

    def __repr__(self) -> str:
        """Safe representation without the password."""
        return (
            f"Record(tag={self.tag!r}, note={self.note!r}, "
            f"username={self.username!r}, has_password={self.has_password})"
        )

    @property
    def has_password(self) -> bool:
        return self.password != ""

    def view(self, position: Optional[int] = None) -> RecordView:
        """Masked copy of this record."""
        return RecordView(
            tag=self.tag,
            note=self.note,
            username=self.username,
            has_password=self.has_password,
            position=position,
        )


@dataclass(frozen=True, slots=True)
class RecordView:
    """
    Immutable, password-free copy of a record.

    Attributes:
        tag: Tag symbol "0".."5"
        note: Descriptive note
        username: Username
        has_password: Whether the record carries a password
        position: Index in the live collection; only set in search results
    """
    tag: str
    note: str
    username: str
    has_password: bool
    position: Optional[int] = None

    @property
    def password_marker(self) -> str:
        """Has-password flag in its serialized form, "/yes" or "/no"."""
        return HAS_PASSWORD_MARKER if self.has_password else NO_PASSWORD_MARKER
