"""
Vault File Versions
===================

The first character of a vault file identifies how the rest is encoded.
Only one version exists; any other character is an unsupported file.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class FileVersion(Enum):
    """Supported file versions as (version, type) pairs."""
    VER_2_TYPE_A = (2, 1)

    @property
    def char(self) -> str:
        """Version character written in front of the ciphertext."""
        version, file_type = self.value
        return chr(version * 10 + file_type)

    @classmethod
    def from_char(cls, char: str) -> Optional[FileVersion]:
        """Look up the version for a leading character, None if unknown."""
        for member in cls:
            if member.char == char:
                return member
        return None


CURRENT_FILE_VERSION = FileVersion.VER_2_TYPE_A
