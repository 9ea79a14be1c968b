"""
Path Utilities
==============

Vault file locations and the plain file I/O a host hands to the vault.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path, PurePath
from typing import Optional

from passtable.security.constants import FALLBACK_EXTENSION


def fallback_file_name(path: str, extension: str = FALLBACK_EXTENSION) -> str:
    """
    Name used when a vault cannot be written at its own location.

    Takes the final path component, drops its last extension and appends
    the fallback extension: "/secure/work.ptb" -> "work.passtable".
    """
    name = PurePath(path).name
    stem = name.rpartition(".")[0] if "." in name else name
    return stem + extension


def fallback_path(path: str, extension: str = FALLBACK_EXTENSION, directory: Optional[Path] = None) -> str:
    """
    Full fallback location for a vault path.

    Without a directory the bare file name is returned, which the host's
    writer resolves against the working directory of the running process.
    """
    name = fallback_file_name(path, extension)
    if directory is None:
        return name
    return str(directory / name)


def write_vault_file(path: str, content: str) -> None:
    """
    Write vault content, readable by the owner only.

    Raises:
        OSError: If the file cannot be written
    """
    file_path = Path(path)
    with open(file_path, "w", encoding="utf-8", newline="") as f:
        f.write(content)

    if platform.system().lower() != "windows":
        os.chmod(file_path, 0o600)


def read_vault_file(path: str) -> str:
    """
    Read vault content written by write_vault_file().

    Bytes that are not UTF-8 become U+FFFD, so a damaged file reaches
    Vault.fill() and is reported as corrupt there.

    Raises:
        OSError: If the file cannot be read
    """
    return Path(path).read_bytes().decode("utf-8", errors="replace")
