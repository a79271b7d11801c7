import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from live_premiums.services.nse import UpstreamError
from live_premiums.utils.premiums import chain_rows

# Set up logging
logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 9.0
DEFAULT_REFRESH_INTERVAL_SECONDS = 10.0


class ChainCacheError(Exception):
    """Base exception for option chain cache errors"""
    pass


class NoChainAvailable(ChainCacheError):
    """Raised when no chain was ever cached and a fresh fetch failed"""
    pass


@dataclass
class CacheStatus:
    has_snapshot: bool
    ttl_seconds: float
    fetched_at: Optional[datetime] = None
    age_seconds: Optional[float] = None
    row_count: int = 0

    @property
    def is_fresh(self) -> bool:
        return self.age_seconds is not None and self.age_seconds < self.ttl_seconds


class ChainCache:
    """Holds the latest option chain snapshot and refreshes it once stale.

    A failed refresh never discards a snapshot: callers get the stale chain
    back until the upstream recovers. Callers that find the chain stale while
    a fetch is already running wait for that fetch and share its outcome,
    success or failure.
    """

    def __init__(
        self,
        fetcher: Any,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetcher = fetcher
        self.ttl = ttl
        self.clock = clock

        self._snapshot: Optional[Dict[str, Any]] = None
        self._fetched_at = 0.0
        self._fetched_wall: Optional[datetime] = None
        self._pending: Optional[Future] = None
        self._lock = threading.Lock()

    def _is_fresh(self) -> bool:
        return self._snapshot is not None and self.clock() - self._fetched_at < self.ttl

    def _fresh_snapshot(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            if self._is_fresh():
                return self._snapshot
        return None

    def _stale_snapshot(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._snapshot

    def _refresh(self) -> Future:
        """Start a fetch, or join the one already in flight."""
        with self._lock:
            if self._pending is not None:
                return self._pending
            if self._is_fresh():
                done = Future()
                done.set_result(self._snapshot)
                return done
            pending = self._pending = Future()

        try:
            snapshot = self.fetcher.fetch()
        except Exception as e:
            with self._lock:
                self._pending = None
            pending.set_exception(e)
            return pending

        with self._lock:
            self._snapshot = snapshot
            self._fetched_at = self.clock()
            self._fetched_wall = datetime.now(timezone.utc)
            self._pending = None
        logger.info(f"Fetched chain with {len(chain_rows(snapshot))} rows")
        pending.set_result(snapshot)
        return pending

    def get_current(self) -> Dict[str, Any]:
        """
        Return the current option chain snapshot.

        Returns:
            Dict[str, Any]: A fresh snapshot, or the last good one if refreshing failed

        Raises:
            NoChainAvailable: If nothing was ever cached and the fetch failed
        """
        snapshot = self._fresh_snapshot()
        if snapshot is not None:
            return snapshot

        try:
            return self._refresh().result()
        except UpstreamError as e:
            stale = self._stale_snapshot()
            if stale is not None:
                logger.warning(f"Failed to refresh chain, serving stale snapshot: {str(e)}")
                return stale
            logger.error(f"Failed to fetch chain and no cached chain exists: {str(e)}")
            raise NoChainAvailable("No chain available") from e

    def status(self) -> CacheStatus:
        with self._lock:
            if self._snapshot is None:
                return CacheStatus(has_snapshot=False, ttl_seconds=self.ttl)
            return CacheStatus(
                has_snapshot=True,
                ttl_seconds=self.ttl,
                fetched_at=self._fetched_wall,
                age_seconds=max(0.0, self.clock() - self._fetched_at),
                row_count=len(chain_rows(self._snapshot)),
            )

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None
            self._fetched_at = 0.0
            self._fetched_wall = None


class ChainRefresher:
    """Keeps a ChainCache warm from a daemon thread.

    Refreshes are scheduled at a fixed rate: a slow fetch shortens the next
    wait, and ticks missed while a fetch overran are skipped.
    """

    def __init__(
        self,
        cache: ChainCache,
        interval: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cache = cache
        self.interval = interval
        self.clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="chain-refresher", daemon=True)
        self._thread.start()
        logger.info(f"Started background chain refresh every {self.interval}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Stopped background chain refresh")

    def next_due(self, due: float) -> float:
        """Next deadline after ``due`` that is still in the future."""
        now = self.clock()
        due += self.interval
        if due <= now:
            due += ((now - due) // self.interval + 1) * self.interval
        return due

    def refresh_once(self) -> None:
        try:
            self.cache.get_current()
        except NoChainAvailable:
            logger.warning("Background refresh could not obtain a chain")
        except Exception as e:
            logger.error(f"Unexpected error during background refresh: {str(e)}", exc_info=True)

    def _run(self) -> None:
        due = self.clock() + self.interval
        while not self._stop.wait(max(0.0, due - self.clock())):
            self.refresh_once()
            due = self.next_due(due)
