# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Keyed pagination of large text results.

:class:`ResultPaginator` keeps the full text of an oversized result for a fixed
time-to-live and serves it back in bounded pages, or whole, by key. Callers only
ever hold the key; entries belong to the paginator.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ._error_codes import VALIDATION_PAGE_NUMBER
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 4000
DEFAULT_TTL_SECONDS = 30 * 60.0


@dataclass(frozen=True)
class Page:
    """
    One page of a cached result.

    :param key: Cache key of the full result.
    :type key: str
    :param number: One-based page number.
    :type number: int
    :param total_pages: Number of pages in the full result.
    :type total_pages: int
    :param text: Text of this page.
    :type text: str
    :param total_chars: Length of the full result.
    :type total_chars: int
    """

    key: str
    number: int
    total_pages: int
    text: str
    total_chars: int

    @property
    def has_more(self) -> bool:
        return self.number < self.total_pages

    def footer(self) -> str:
        """Guidance to append when showing this page to a person or agent."""
        if not self.has_more:
            return ""
        remaining = self.total_pages - self.number
        return (
            f"--- Showing page {self.number} of {self.total_pages} ---\n"
            f"{remaining} more page(s) available. Request the next page or the full text with key: {self.key}"
        )


@dataclass
class PaginationCacheEntry:
    key: str
    full_text: str
    page_size: int
    created_at: float
    ttl: float
    boundaries: List[Tuple[int, int]] = field(default_factory=list, repr=False)
    last_served: int = 0

    def is_expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl

    @property
    def total_pages(self) -> int:
        return len(self.boundaries)


def _page_boundaries(text: str, page_size: int) -> List[Tuple[int, int]]:
    """Cut ``text`` into spans of at most ``page_size`` characters, preferring line breaks."""
    if not text:
        return [(0, 0)]
    bounds: List[Tuple[int, int]] = []
    start = 0
    n = len(text)
    while start < n:
        end = min(start + page_size, n)
        if end < n:
            cut = text.rfind("\n", start, end)
            if cut > start:
                end = cut + 1
        bounds.append((start, end))
        start = end
    return bounds


def _new_key() -> str:
    return "page_" + uuid.uuid4().hex


class ResultPaginator:
    """
    TTL cache of large text results served in bounded pages.

    :param page_size: Maximum characters per page. Default is 4000.
    :type page_size: int or None
    :param ttl: Seconds an entry stays available after it was stored. Default is 30 minutes.
    :type ttl: float or None
    :param clock: Monotonic time source, injectable for tests.

    Example::

        paginator = ResultPaginator(page_size=2000)
        first = paginator.store(big_text)
        if first.has_more:
            second = paginator.page(first.key)
            everything = paginator.all(first.key)
    """

    def __init__(
        self,
        page_size: Optional[int] = None,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.page_size = page_size if page_size is not None else DEFAULT_PAGE_SIZE
        self.ttl = ttl if ttl is not None else DEFAULT_TTL_SECONDS
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        if self.ttl <= 0:
            raise ValueError("ttl must be positive")
        self._clock = clock
        self._entries: Dict[str, PaginationCacheEntry] = {}
        self._lock = threading.Lock()

    def store(self, text: str) -> Page:
        """
        Cache ``text`` and return its first page.

        Every call creates a new entry with its own key and page cursor, even for
        text that is already cached.

        :param text: Full result text.
        :type text: str
        :return: First page; ``page.key`` identifies the cached result.
        :rtype: Page
        """
        if not isinstance(text, str):
            raise TypeError("text must be str")
        boundaries = _page_boundaries(text, self.page_size)
        with self._lock:
            now = self._clock()
            self._evict_expired_locked(now)
            entry = PaginationCacheEntry(
                key=_new_key(),
                full_text=text,
                page_size=self.page_size,
                created_at=now,
                ttl=self.ttl,
                boundaries=boundaries,
                last_served=1,
            )
            self._entries[entry.key] = entry
            return self._page_of(entry, 1)

    def page(self, key: str, number: Optional[int] = None) -> Page:
        """
        Return page ``number`` of a cached result, or the next page not yet served.

        :raises NotFoundError: If ``key`` is unknown or expired.
        :raises ValidationError: If the page number is out of range.
        """
        with self._lock:
            entry = self._get_live_locked(key)
            if number is None:
                number = entry.last_served + 1
                if number > entry.total_pages:
                    raise ValidationError(
                        f"No more pages for key '{key}': all {entry.total_pages} page(s) were already shown.",
                        subcode=VALIDATION_PAGE_NUMBER,
                    )
            if number < 1 or number > entry.total_pages:
                raise ValidationError(
                    f"Page {number} is out of range for key '{key}' (1-{entry.total_pages}).",
                    subcode=VALIDATION_PAGE_NUMBER,
                )
            entry.last_served = number
            return self._page_of(entry, number)

    def all(self, key: str) -> str:
        """
        Return the entire cached text regardless of size.

        :raises NotFoundError: If ``key`` is unknown or expired.
        """
        with self._lock:
            return self._get_live_locked(key).full_text

    def sweep(self) -> int:
        """Evict expired entries and return how many were removed."""
        with self._lock:
            return self._evict_expired_locked(self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key) if isinstance(key, str) else None
            return entry is not None and not entry.is_expired(self._clock())

    # --- Internal helpers (lock held) ---
    def _get_live_locked(self, key: str) -> PaginationCacheEntry:
        entry = self._entries.get(key)
        if entry is not None and entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug("Pagination entry %s expired", key)
            entry = None
        if entry is None:
            raise NotFoundError(
                f"Pagination key '{key}' was not found or has expired. "
                "Re-run the original search to get a new key."
            )
        return entry

    def _evict_expired_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("Evicted %d expired pagination entries", len(expired))
        return len(expired)

    @staticmethod
    def _page_of(entry: PaginationCacheEntry, number: int) -> Page:
        start, end = entry.boundaries[number - 1]
        return Page(
            key=entry.key,
            number=number,
            total_pages=entry.total_pages,
            text=entry.full_text[start:end],
            total_chars=len(entry.full_text),
        )


__all__ = ["Page", "PaginationCacheEntry", "ResultPaginator"]
