"""
Collision-resistant human-readable identifiers (order numbers, payment ids).

Format: <prefix><yyMMdd><random digits>[<retry counter>]
"""
from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from domain.common.exceptions import IdentifierGenerationError


ExistsCheck = Callable[[str], Awaitable[bool]]


def _random_digits(width: int) -> str:
    return str(secrets.randbelow(10 ** width)).zfill(width)


class IdentifierGenerator:
    """
    Generate-check-retry loop.

    A fixed-width random suffix can collide under concurrent creation, so
    every candidate is checked against persisted records and a colliding
    candidate is regenerated with fresh entropy plus a two-digit attempt
    counter. The unique index on the persisted column remains the final
    arbiter; callers regenerate when an insert hits it.
    """

    def __init__(
        self,
        prefix: str,
        *,
        random_digits: int = 8,
        max_attempts: int = 10,
        entropy: Callable[[int], str] = _random_digits,
        clock: Optional[Callable[[], datetime]] = None,
        error_cls: type[IdentifierGenerationError] = IdentifierGenerationError,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.prefix = prefix
        self.random_digits = random_digits
        self.max_attempts = max_attempts
        self._entropy = entropy
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._error_cls = error_cls

    def candidate(self, attempt: int = 0) -> str:
        stamp = self._clock().strftime("%y%m%d")
        value = f"{self.prefix}{stamp}{self._entropy(self.random_digits)}"
        if attempt:
            value += f"{attempt % 100:02d}"
        return value

    async def generate(self, exists: ExistsCheck) -> str:
        for attempt in range(self.max_attempts):
            value = self.candidate(attempt)
            if not await exists(value):
                return value
        raise self.exhausted()

    def exhausted(self) -> IdentifierGenerationError:
        """Error to raise when callers run out of insert retries"""
        return self._error_cls(self.prefix, self.max_attempts)
