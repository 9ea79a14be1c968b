"""
Password Generator
==================

Constrained random passwords with per-category minimums and blocked
characters.

Algorithm:
    1. Validate the length and minimums
    2. Build the working set of every enabled category without the blocked
       characters
    3. Reserve `minimum` random free positions per category and fill each
       with a random character of that category
    4. Fill the remaining positions from the union of enabled categories

Positions are reserved before anything is written, so a single pass always
satisfies every minimum. No retries.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Final, Iterable, List

from passtable.security.constants import (
    EASY_SYMBOL_CHARS,
    LOWERCASE_LETTER_CHARS,
    NUMBER_CHARS,
    SYMBOL_CHARS,
    UPPERCASE_LETTER_CHARS,
)

_rng: Final[secrets.SystemRandom] = secrets.SystemRandom()


class GenerationError(Exception):
    """Base class for generator misconfiguration."""
    pass


class InvalidParametersError(GenerationError, ValueError):
    """Raised when the length or minimums cannot be satisfied."""
    pass


class ExhaustedCharsetError(GenerationError):
    """Raised when blocked characters leave nothing to pick from."""
    pass


@dataclass
class _Category:
    name: str
    allowed: bool
    minimum: int
    chars: List[str]


class PasswordGenerator:
    """
    Random password generator.

    Usage:
        generator = PasswordGenerator()
        generator.easy_symbols_mode = False
        generator.block_chars("0O1lI")
        password = generator.generate(16, min_lowercase=2, min_numbers=2)

    Attributes:
        numbers_allowed: Use digits
        lowercase_allowed: Use lowercase letters
        uppercase_allowed: Use capital letters
        symbols_allowed: Use symbols
        easy_symbols_mode: Use the easy-to-type symbol subset instead of
            every ASCII punctuation character
    """

    def __init__(self) -> None:
        self.numbers_allowed = True
        self.lowercase_allowed = True
        self.uppercase_allowed = True
        self.symbols_allowed = True
        self.easy_symbols_mode = True
        self._blocked_chars: frozenset[str] = frozenset()

    @property
    def blocked_chars(self) -> frozenset[str]:
        """Characters that are never generated."""
        return self._blocked_chars

    def block_chars(self, characters: str | Iterable[str]) -> None:
        """
        Block characters from use in the generator.

        Replaces any previous block list. A string blocks each of its
        characters; separating spaces are harmless since space is never
        generated.
        """
        self._blocked_chars = frozenset(characters)

    @staticmethod
    def check_params(
        length: int,
        min_lowercase: int,
        min_symbols: int,
        min_uppercase: int,
        min_numbers: int,
    ) -> bool:
        """Check that the sum of minimums fits in the password length."""
        return min_lowercase + min_symbols + min_uppercase + min_numbers <= length

    def generate(
        self,
        length: int,
        min_lowercase: int = 0,
        min_symbols: int = 0,
        min_uppercase: int = 0,
        min_numbers: int = 0,
    ) -> str:
        """
        Generate a password of the given length.

        Args:
            length: Number of characters, greater than zero
            min_lowercase: Minimum lowercase letters
            min_symbols: Minimum symbols
            min_uppercase: Minimum capital letters
            min_numbers: Minimum digits

        Returns:
            The generated password

        Raises:
            InvalidParametersError: Bad length/minimums, or a minimum for a
                disabled category
            ExhaustedCharsetError: Blocked characters emptied a required
                category or every category
        """
        if length <= 0 or min(min_lowercase, min_symbols, min_uppercase, min_numbers) < 0:
            raise InvalidParametersError("Length must be positive and minimums non-negative")
        if not self.check_params(length, min_lowercase, min_symbols, min_uppercase, min_numbers):
            raise InvalidParametersError(
                "The sum of minimum required characters exceeds the password length"
            )

        symbols = EASY_SYMBOL_CHARS if self.easy_symbols_mode else SYMBOL_CHARS
        categories = [
            _Category("lowercase", self.lowercase_allowed, min_lowercase, list(LOWERCASE_LETTER_CHARS)),
            _Category("symbols", self.symbols_allowed, min_symbols, list(symbols)),
            _Category("uppercase", self.uppercase_allowed, min_uppercase, list(UPPERCASE_LETTER_CHARS)),
            _Category("numbers", self.numbers_allowed, min_numbers, list(NUMBER_CHARS)),
        ]

        all_allowed: List[str] = []
        for category in categories:
            if not category.allowed:
                if category.minimum > 0:
                    raise InvalidParametersError(
                        f"Minimum {category.name} is greater than zero, "
                        "but the category is not allowed"
                    )
                category.chars = []
                continue

            category.chars = [c for c in category.chars if c not in self._blocked_chars]
            if not category.chars and category.minimum > 0:
                raise ExhaustedCharsetError(
                    f"Minimum {category.name} is greater than zero, "
                    "but every character of the category is blocked"
                )
            all_allowed.extend(category.chars)

        if not all_allowed:
            raise ExhaustedCharsetError("No characters left for the generator")

        free_positions = list(range(length))
        result = [""] * length

        for category in categories:
            for _ in range(category.minimum):
                position = free_positions.pop(_rng.randrange(len(free_positions)))
                result[position] = secrets.choice(category.chars)

        for position in free_positions:
            result[position] = secrets.choice(all_allowed)

        return "".join(result)
