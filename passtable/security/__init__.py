"""
Security module - Fixed security constants and the password generator.

Security Considerations:
- All randomness comes from the OS CSPRNG (secrets)
- Reserved "/" values never collide with user data
"""

from passtable.security.constants import (
    ENCRYPTION_ALGORITHM,
    KEY_PADDING,
    MAX_PRIMARY_PASSPHRASE_LENGTH,
)
from passtable.security.password_generator import (
    ExhaustedCharsetError,
    GenerationError,
    InvalidParametersError,
    PasswordGenerator,
)

__all__ = [
    # Constants
    "ENCRYPTION_ALGORITHM",
    "KEY_PADDING",
    "MAX_PRIMARY_PASSPHRASE_LENGTH",
    # Generator
    "PasswordGenerator",
    "GenerationError",
    "InvalidParametersError",
    "ExhaustedCharsetError",
]
