"""
Reference price cache.

Lookups always answer from the current snapshot. When the snapshot is older
than its time to live, a lookup starts one background refresh and still
returns the stale value; the refresh builds a complete new snapshot and
swaps it in with a single assignment.
"""

import threading
from typing import Iterable, Optional

import structlog

from ..errors import ExternalDataError
from ..utils.time import Clock, resolve_clock
from .feed import DEFAULT_SOURCES, CategorySource, ReferenceFeed
from .models import CacheSnapshot, PriceEntry

logger = structlog.get_logger(__name__)


class ReferencePriceCache:
    """Name to reference value lookups over a periodically refreshed snapshot."""

    def __init__(
        self,
        feed: ReferenceFeed,
        sources: Iterable[CategorySource] = DEFAULT_SOURCES,
        ttl_seconds: float = 3600.0,
        clock: Optional[Clock] = None,
        retain_failed_categories: bool = False
    ) -> None:
        self.feed = feed
        self.sources = tuple(sources)
        self.ttl_seconds = ttl_seconds
        self.clock = resolve_clock(clock)
        self.retain_failed_categories = retain_failed_categories

        self._snapshot = CacheSnapshot()
        self._refresh_lock = threading.Lock()
        self._refreshing = False
        self._refresh_thread: Optional[threading.Thread] = None

    @property
    def snapshot(self) -> CacheSnapshot:
        return self._snapshot

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    def is_stale(self) -> bool:
        refreshed_at = self._snapshot.refreshed_at
        return refreshed_at is None or self.clock.now() - refreshed_at > self.ttl_seconds

    def get_value(self, key: str) -> Optional[float]:
        """
        Reference value for an item name.

        Never blocks on the network. A stale snapshot schedules a background
        refresh and is still used to answer.

        Returns:
            The value, or None when the name is unknown
        """
        snapshot = self._snapshot

        if self.is_stale():
            self.refresh_in_background()

        entry = snapshot.lookup(key)
        if entry is not None and entry.name != key:
            logger.debug("Approximate price match", key=key, matched=entry.name)
        return entry.value if entry is not None else None

    def is_valuable(self, name: str, minimum: float) -> bool:
        value = self.get_value(name)
        return value is not None and value >= minimum

    def refresh(self) -> CacheSnapshot:
        """
        Fetch every category and swap in a new snapshot.

        A category that fails for any reason is logged and left out of the new
        snapshot, or keeps its previous entries when ``retain_failed_categories``
        is set. The other categories are still refreshed.
        """
        previous = self._snapshot
        refreshed_at = self.clock.now()
        entries: list[PriceEntry] = []
        failed: list[str] = []

        logger.info("Refreshing reference prices", categories=len(self.sources))

        for source in self.sources:
            try:
                records = self.feed.fetch(source)
            except Exception as e:
                failed.append(source.name)
                logger.warning(
                    "Failed to fetch price category",
                    category=source.name,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=not isinstance(e, ExternalDataError)
                )
                if self.retain_failed_categories:
                    entries.extend(
                        entry for entry in previous.entries.values()
                        if entry.category == source.name
                    )
                continue

            entries.extend(
                PriceEntry(
                    name=record.name,
                    value=record.value,
                    category=source.name,
                    refreshed_at=refreshed_at,
                )
                for record in records
            )

        snapshot = CacheSnapshot.build(
            entries,
            generation=previous.generation + 1,
            refreshed_at=refreshed_at,
            failed_categories=failed,
        )
        self._snapshot = snapshot

        logger.info(
            "Reference prices refreshed",
            entries=len(snapshot),
            generation=snapshot.generation,
            failed_categories=sorted(failed)
        )
        return snapshot

    def force_refresh(self) -> CacheSnapshot:
        """Synchronous refresh, used at start-up."""
        return self.refresh()

    def refresh_in_background(self) -> bool:
        """
        Start a refresh on a daemon thread unless one is already running.

        Returns:
            True if a new refresh was started
        """
        with self._refresh_lock:
            if self._refreshing:
                return False
            self._refreshing = True

        thread = threading.Thread(
            target=self._background_refresh,
            name="price-cache-refresh",
            daemon=True,
        )
        self._refresh_thread = thread
        thread.start()
        return True

    def wait_for_background_refresh(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the running background refresh finishes.

        Returns:
            True if no refresh is running any more
        """
        thread = self._refresh_thread
        if thread is not None:
            thread.join(timeout)
        return not self._refreshing

    def _background_refresh(self) -> None:
        try:
            self.refresh()
        except Exception as e:
            logger.error("Background price refresh failed", error=str(e), error_type=type(e).__name__)
        finally:
            with self._refresh_lock:
                self._refreshing = False
