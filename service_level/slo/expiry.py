"""Expiration of SLO series that stopped receiving measurements.

A single scheduler thread serves every tracked key. Deadlines live in a
heap; touching a key pushes a new heap entry with a fresh generation and
older entries for the same key are discarded when they surface.
"""

import heapq
import itertools
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Hashable, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


class ExpiryState(Enum):
    """Expiration state of a key."""
    ACTIVE_NO_EXPIRY = "active_no_expiry"
    ACTIVE_TIMED = "active_timed"
    EXPIRED = "expired"


@dataclass
class ExpiryEntry:
    """Tracking data of a key."""
    key: Hashable
    last_touch: float
    deadline: Optional[float]
    generation: int


class ExpiryTracker:
    """Calls ``on_expire(key)`` for keys not touched within ``expire_duration``.

    A duration of zero or ``None`` disables expiration: keys are tracked but
    never expire and no scheduler thread is started.

    ``on_expire`` runs while the tracker lock is held. Passing an ``apply``
    callback to :meth:`touch` runs it under the same lock, so an update
    racing with an expiration is either removed together with its key or
    applied after the removal and tracked as a fresh key. ``after_expire`` is
    called for every expired key once the lock has been released, so slow
    work such as logging never holds up measurements or scrapes.
    """

    # Rebuild the heap once stale entries outnumber live ones by this factor.
    _COMPACT_FACTOR = 4
    _COMPACT_MIN_SIZE = 64

    def __init__(
        self,
        expire_duration: Optional[float],
        on_expire: Callable[[Hashable], object],
        after_expire: Optional[Callable[[Hashable], object]] = None,
        clock: Optional[Callable[[], float]] = None,
        background: bool = True,
        name: str = "slo-expiry",
    ):
        self.expire_duration = expire_duration if expire_duration and expire_duration > 0 else None
        self._on_expire = on_expire
        self._after_expire = after_expire
        self._clock = clock or time.monotonic
        self._background = background
        self._name = name

        self._entries: Dict[Hashable, ExpiryEntry] = {}
        self._heap: List[Tuple[float, int, Hashable]] = []
        self._generations = itertools.count()
        self._cond = threading.Condition(threading.RLock())
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    @property
    def enabled(self) -> bool:
        return self.expire_duration is not None

    def touch(self, key: Hashable, apply: Optional[Callable[[], object]] = None) -> ExpiryEntry:
        """Record a measurement of ``key`` and re-arm its expiration.

        ``apply`` runs first; if it raises, the key is not touched.
        """
        with self._cond:
            if apply is not None:
                apply()

            now = self._clock()
            generation = next(self._generations)
            deadline = now + self.expire_duration if self.enabled else None
            entry = ExpiryEntry(key=key, last_touch=now, deadline=deadline, generation=generation)
            self._entries[key] = entry

            if deadline is not None:
                heapq.heappush(self._heap, (deadline, generation, key))
                self._maybe_compact()
                self._ensure_thread()
                self._cond.notify()
            return entry

    def run_pending(self, now: Optional[float] = None) -> int:
        """Expire every key whose deadline has passed; returns how many."""
        with self._cond:
            expired, failures = self._expire_due(self._clock() if now is None else now)
        self._report(expired, failures)
        return len(expired)

    def state(self, key: Hashable) -> ExpiryState:
        with self._cond:
            entry = self._entries.get(key)
        if entry is None:
            return ExpiryState.EXPIRED
        if entry.deadline is None:
            return ExpiryState.ACTIVE_NO_EXPIRY
        return ExpiryState.ACTIVE_TIMED

    def last_touch(self, key: Hashable) -> Optional[float]:
        with self._cond:
            entry = self._entries.get(key)
            return entry.last_touch if entry else None

    def __len__(self) -> int:
        with self._cond:
            return len(self._entries)

    def close(self) -> None:
        """Stop the scheduler thread. Pending expirations are dropped."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)

    def __enter__(self) -> "ExpiryTracker":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _expire_due(self, now: float) -> Tuple[List[Hashable], List[Tuple[Hashable, Exception]]]:
        expired: List[Hashable] = []
        failures: List[Tuple[Hashable, Exception]] = []
        while self._heap and self._heap[0][0] <= now:
            _, generation, key = heapq.heappop(self._heap)
            entry = self._entries.get(key)
            if entry is None or entry.generation != generation:
                continue
            del self._entries[key]
            expired.append(key)
            try:
                self._on_expire(key)
            except Exception as e:
                failures.append((key, e))
        return expired, failures

    def _report(self, expired: List[Hashable], failures: List[Tuple[Hashable, Exception]]) -> None:
        for key, error in failures:
            logger.error("Expiration callback failed", key=str(key), error=str(error))
        if self._after_expire is None:
            return
        for key in expired:
            try:
                self._after_expire(key)
            except Exception as e:
                logger.error("Post expiration callback failed", key=str(key), error=str(e))

    def _maybe_compact(self) -> None:
        if len(self._heap) < self._COMPACT_MIN_SIZE:
            return
        if len(self._heap) <= self._COMPACT_FACTOR * len(self._entries):
            return
        self._heap = [
            (entry.deadline, entry.generation, entry.key)
            for entry in self._entries.values()
            if entry.deadline is not None
        ]
        heapq.heapify(self._heap)

    def _ensure_thread(self) -> None:
        if not self._background or self._closed:
            return
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        logger.debug("Expiry scheduler started", expire_duration=self.expire_duration)
        while True:
            with self._cond:
                if self._closed:
                    break
                if not self._heap:
                    self._cond.wait()
                    continue
                timeout = self._heap[0][0] - self._clock()
                if timeout > 0:
                    self._cond.wait(timeout)
                    continue
                expired, failures = self._expire_due(self._clock())
            self._report(expired, failures)
        logger.debug("Expiry scheduler stopped")
