"""
Mutable state owned by the correlation monitor.

Both objects are constructed by the caller and passed in; neither is a
module-level singleton. Each guards its own state with a lock.
"""

import logging
import threading
import time
from collections import OrderedDict, deque
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fleetguard.core.constants import (
    CORRELATION_CACHE_TTL_SECONDS,
    DRIFT_HISTORY_MAX_PAIRS,
    DRIFT_HISTORY_MAX_SAMPLES,
)
from fleetguard.core.types import BotId

logger = logging.getLogger(__name__)


class CorrelationCache:
    """
    TTL cache for analysis results, keyed by lookback window.

    Expiry is measured on the injected ``clock`` (seconds, monotonic by
    default) so tests can advance time explicitly.
    """

    def __init__(
        self,
        ttl_seconds: float = CORRELATION_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Any | None:
        """Cached value, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one key, or everything when ``key`` is None."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(frozen=True)
class DriftSample:
    correlation: float
    timestamp: datetime

    def to_dict(self) -> dict:
        return {"correlation": self.correlation, "timestamp": self.timestamp.isoformat()}


class DriftHistory:
    """
    Per-pair correlation history.

    Each pair keeps at most ``max_samples`` entries (oldest dropped). At
    most ``max_pairs`` pairs are tracked; the least recently updated pair
    is evicted first. Pairs are order-insensitive.
    """

    def __init__(
        self,
        max_samples: int = DRIFT_HISTORY_MAX_SAMPLES,
        max_pairs: int = DRIFT_HISTORY_MAX_PAIRS,
    ) -> None:
        self.max_samples = max_samples
        self.max_pairs = max_pairs
        self._pairs: OrderedDict[tuple[BotId, BotId], deque[DriftSample]] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def _key(bot_a: BotId, bot_b: BotId) -> tuple[BotId, BotId]:
        return (bot_a, bot_b) if bot_a <= bot_b else (bot_b, bot_a)

    def record(self, bot_a: BotId, bot_b: BotId, correlation: float, timestamp: datetime) -> None:
        """Append a sample for a pair."""
        key = self._key(bot_a, bot_b)
        with self._lock:
            samples = self._pairs.get(key)
            if samples is None:
                samples = deque(maxlen=self.max_samples)
                self._pairs[key] = samples
            samples.append(DriftSample(correlation, timestamp))
            self._pairs.move_to_end(key)

            while len(self._pairs) > self.max_pairs:
                evicted, _ = self._pairs.popitem(last=False)
                logger.debug(f"Drift history evicted pair {evicted[0]}/{evicted[1]}")

    def get(self, bot_a: BotId, bot_b: BotId) -> list[DriftSample]:
        """Samples for a pair, oldest first (empty if never recorded)."""
        with self._lock:
            return list(self._pairs.get(self._key(bot_a, bot_b), ()))

    def forget_bot(self, bot_id: BotId) -> int:
        """
        Drop every pair involving a bot.

        Returns:
            Number of pairs removed
        """
        with self._lock:
            doomed = [key for key in self._pairs if bot_id in key]
            for key in doomed:
                del self._pairs[key]
        return len(doomed)

    @property
    def pair_count(self) -> int:
        with self._lock:
            return len(self._pairs)
