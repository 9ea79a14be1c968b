"""
Memory Zeroization Utilities
============================

Explicit wiping of the mutable buffers that hold key material, IVs and
decrypted payloads while the crypto engine works on them.

Limitations:
- Python may keep internal copies (immutable bytes, str objects)
- Only bytearray / writable memoryview buffers can be wiped
- These are best-effort mitigations
"""

from __future__ import annotations

import ctypes
from contextlib import contextmanager
from typing import Iterator


def secure_zero(data: bytearray | memoryview) -> None:
    """
    Zero a mutable byte buffer in place.

    Uses ctypes.memset on bytearrays, with a Python-level loop for
    memoryviews or when the buffer cannot be addressed directly.

    Args:
        data: Mutable byte buffer to zero
    """
    size = len(data)
    if size == 0:
        return

    if isinstance(data, bytearray):
        try:
            addr = ctypes.addressof((ctypes.c_char * size).from_buffer(data))
            ctypes.memset(addr, 0, size)
            return
        except (TypeError, ValueError, BufferError):
            pass

    for i in range(size):
        data[i] = 0


@contextmanager
def ZeroizeContext(*buffers: bytearray | memoryview) -> Iterator[None]:
    """
    Context manager that zeroizes buffers on exit.

    Always zeroizes, whether exit is normal or exceptional.

    Usage:
        key = bytearray(passphrase_bytes)
        iv = bytearray(secrets.token_bytes(16))

        with ZeroizeContext(key, iv):
            run_cipher(key, iv)
        # key and iv are now zeroed
    """
    try:
        yield
    finally:
        for buf in buffers:
            secure_zero(buf)
