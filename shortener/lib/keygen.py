"""Short key generation utilities."""

import random
import string
from typing import Optional


class KeyGenerator:
    """Generate fixed-length random keys for short links."""

    # Base62 characters (alphanumeric, case-sensitive)
    BASE62_CHARS = string.ascii_letters + string.digits  # a-zA-Z0-9

    def __init__(self, length: int = 9, alphabet: Optional[str] = None):
        """Initialize key generator.

        Args:
            length: Number of characters in every generated key
            alphabet: Characters keys are drawn from (defaults to base62)
        """
        if length < 1:
            raise ValueError("Key length must be positive")

        alphabet = alphabet or self.BASE62_CHARS
        if len(set(alphabet)) != len(alphabet):
            raise ValueError("Key alphabet must not contain duplicate characters")

        self.length = length
        self.alphabet = alphabet
        self._random = random.SystemRandom()

    def generate(self, length: Optional[int] = None) -> str:
        """Generate a random key.

        Each character is drawn independently and uniformly from the alphabet.

        Args:
            length: Length of the key (uses the configured length if not specified)

        Returns:
            Random key
        """
        length = length or self.length
        return ''.join(self._random.choices(self.alphabet, k=length))

    def is_valid_format(self, key: str) -> bool:
        """Check that a key has the configured length and alphabet."""
        return len(key) == self.length and all(c in self.alphabet for c in key)
