"""
Passtable Memory Security Module
================================

Explicit zeroization of sensitive buffers (don't rely on GC).

WARNING:
- Python's memory model doesn't guarantee secure erasure
- These are best-effort mitigations
"""

from passtable.core.memory.zeroization import (
    secure_zero,
    ZeroizeContext,
)

__all__ = [
    "secure_zero",
    "ZeroizeContext",
]
