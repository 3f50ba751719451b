"""
Time-based secret cache.

Author: SecretDash Team
Date: 2026-09-03
"""

import time
from typing import Callable, Dict, Optional


class SecretCache:
    """
    Holds the last fetched set of secret values for a fixed time.

    An empty result is never served from the cache, so a dashboard whose
    first fetch found nothing retries on the next request.
    """

    def __init__(self, ttl_seconds: float = 30.0, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._values: Dict[str, str] = {}
        self._stored_at: Optional[float] = None

    def get(self) -> Optional[Dict[str, str]]:
        """Return cached values if present and fresh, else None."""
        if not self._values or self._stored_at is None:
            return None
        if self._clock() - self._stored_at >= self.ttl_seconds:
            return None
        return self._values

    def store(self, values: Dict[str, str]) -> None:
        self._values = dict(values)
        self._stored_at = self._clock()

    def clear(self) -> None:
        self._values = {}
        self._stored_at = None

    @property
    def stored_at(self) -> Optional[float]:
        return self._stored_at

    @property
    def age_ms(self) -> int:
        """Milliseconds since the last store (0 if nothing is cached)."""
        if self._stored_at is None:
            return 0
        return int((self._clock() - self._stored_at) * 1000)
