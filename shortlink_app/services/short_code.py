"""
Short code allocation.

Codes are random draws from the configured alphabet, checked against the
database for uniqueness. No sequence, no reservation: two allocators can
pick the same free code, and the unique constraint on urls.short_code
decides which insert wins.
"""

import logging
import random
import secrets
from typing import Callable, Optional

from shortlink_app.errors import InternalError, InvalidInputError, AlreadyExistsError

logger = logging.getLogger(__name__)

MAX_CODE_LENGTH = 16
MAX_ATTEMPTS = 10


class ShortCodeAllocator:
    """
    Random short code generator with collision checking.

    Pros: No central counter, unpredictable codes
    Cons: Needs a database read per attempt

    Args:
        alphabet: Characters codes are drawn from
        length: Length of generated codes
        exists: Returns True if a code is already stored (must hit the
            database, not the cache)
        max_attempts: Draws before giving up
        rng: Random source (defaults to the OS CSPRNG)
    """

    def __init__(
        self,
        alphabet: str,
        length: int,
        exists: Callable[[str], bool],
        max_attempts: int = MAX_ATTEMPTS,
        rng: Optional[random.Random] = None,
    ):
        if not alphabet:
            raise ValueError("alphabet cannot be empty")
        self.alphabet = alphabet
        self.charset = frozenset(alphabet)
        self.length = length
        self.exists = exists
        self.max_attempts = max_attempts
        self.rng = rng or secrets.SystemRandom()

    def is_valid_code(self, code: str) -> bool:
        if not code or len(code) > MAX_CODE_LENGTH:
            return False
        return all(ch in self.charset for ch in code)

    def generate(self) -> str:
        """Draw one candidate code (uniform, with replacement)"""
        return "".join(self.rng.choice(self.alphabet) for _ in range(self.length))

    def claim(self, code: str) -> str:
        """
        Validate a caller-supplied code.

        Raises:
            InvalidInputError: empty, too long, or outside the alphabet
            AlreadyExistsError: already stored
        """
        if not self.is_valid_code(code):
            raise InvalidInputError(f"Invalid code format: {code}")
        if self.exists(code):
            raise AlreadyExistsError(f"Code '{code}' already exists")
        return code

    def allocate(self) -> str:
        """
        Generate a code not currently stored.

        Raises:
            InternalError: every attempt collided
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.generate()
            if not self.exists(code):
                return code
            logger.debug("Code collision on attempt %d: %s", attempt, code)

        raise InternalError(
            f"Failed to generate unique code after {self.max_attempts} attempts"
        )

    def resolve(self, code: Optional[str] = None) -> str:
        """Use the caller's code if given, otherwise allocate one"""
        if code is not None:
            return self.claim(code)
        return self.allocate()
