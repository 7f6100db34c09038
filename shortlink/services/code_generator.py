"""
Short Code Generator

Produces the identifiers that links are published under:
- Random fixed-length codes drawn uniformly from the configured alphabet
- Reversible positional encoding between integers and codes (for sequential IDs)
- Custom alias format validation

Design Decisions:
- Random codes instead of counters: no enumeration, no central counter,
  at the cost of a bounded uniqueness retry in the shortening service
- Uses the secrets module so codes are not predictable from earlier ones
- Alphabet and length come from an immutable ShortCodeConfig built at start-up

Capacity with the default 62-symbol alphabet:
- 6 chars: 62^6 = ~56 billion codes
- 7 chars: 62^7 = ~3.5 trillion codes
- 8 chars: 62^8 = ~218 trillion codes
"""

import re
import secrets
from typing import Optional

from shortlink.core.exceptions import InvalidCharacterError
from shortlink.core.setting import ShortCodeConfig

MIN_ALIAS_LENGTH = 3
MAX_ALIAS_LENGTH = 50

# Paths served by fixed routes; a link under one of these could never resolve
RESERVED_ALIASES = frozenset({"docs", "redoc", "health"})

_ALIAS_PATTERN = re.compile(r"[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9]")


def is_valid_custom_alias(alias: str) -> bool:
    """
    Validate a user-chosen alias.

    Aliases are 3-50 characters of letters, digits and hyphens, start and
    end with a letter or digit, and never contain two hyphens in a row.

    Example:
        is_valid_custom_alias("my-link") -> True
        is_valid_custom_alias("my-link_1") -> False
        is_valid_custom_alias("a--b") -> False
    """
    if not alias or not isinstance(alias, str):
        return False

    if not MIN_ALIAS_LENGTH <= len(alias) <= MAX_ALIAS_LENGTH:
        return False

    if not _ALIAS_PATTERN.fullmatch(alias):
        return False

    return "--" not in alias


def sanitize_custom_alias(alias: str) -> str:
    """
    Turn free text into a candidate alias.

    Lowercases, replaces invalid characters with hyphens, collapses runs of
    hyphens and trims hyphens from both ends. The result still has to pass
    is_valid_custom_alias (it may be too short or too long).
    """
    sanitized = re.sub(r"[^a-z0-9-]", "-", alias.strip().lower())
    sanitized = re.sub(r"-{2,}", "-", sanitized)
    return sanitized.strip("-")


class CodeGenerator:
    """
    Generates and encodes short codes over a fixed alphabet.

    Instances are built once from ShortCodeConfig and shared; they hold no
    mutable state.
    """

    def __init__(self, config: Optional[ShortCodeConfig] = None):
        config = config or ShortCodeConfig()
        self.alphabet = config.alphabet
        self.base = len(config.alphabet)
        self.default_length = config.length
        self._index = {char: position for position, char in enumerate(self.alphabet)}

    def generate(self, length: Optional[int] = None) -> str:
        """
        Generate a random short code.

        Args:
            length: Code length, defaults to the configured length

        Returns:
            A string whose characters are drawn independently and uniformly
            from the alphabet
        """
        if length is None:
            length = self.default_length
        if length < 1:
            raise ValueError(f"Code length must be positive (given value: {length})")
        return "".join(secrets.choice(self.alphabet) for _ in range(length))

    def encode_number(self, number: int) -> str:
        """
        Encode a non-negative integer in the alphabet's base.

        Example (default alphabet):
            encode_number(0) -> "a"
            encode_number(62) -> "ba"
        """
        if number < 0:
            raise ValueError(f"Number must be non-negative (given value: {number})")
        if number == 0:
            return self.alphabet[0]

        digits = []
        while number > 0:
            number, remainder = divmod(number, self.base)
            digits.append(self.alphabet[remainder])

        return "".join(reversed(digits))

    def decode_string(self, encoded: str) -> int:
        """
        Decode a string produced by encode_number back to its integer.

        Raises:
            InvalidCharacterError: If a character is outside the alphabet
        """
        number = 0
        for char in encoded:
            position = self._index.get(char)
            if position is None:
                raise InvalidCharacterError(char)
            number = number * self.base + position
        return number

    def is_valid_short_code(self, code: str) -> bool:
        """Check that a code is 3-50 characters, all from the alphabet."""
        if not code or not isinstance(code, str):
            return False
        if not MIN_ALIAS_LENGTH <= len(code) <= MAX_ALIAS_LENGTH:
            return False
        return all(char in self._index for char in code)
