"""In-memory store for reference-data responses.

One :class:`CacheEntry` is kept per logical resource key (``"categories"``,
``"accounts"``, ...). The store makes no freshness judgement of its own:
:class:`~quicktoshl.cache.fetch.ConditionalFetcher` decides when an entry may
be served. Entries live for the lifetime of the store object; nothing is
written to disk.

Keys do not encode request parameters, so two requests for the same key
with different query parameters share one entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    """The last known state of one resource.

    Attributes:
        data: The transformed payload; opaque to the store.
        fetched_at: When the payload was last fetched or confirmed unchanged.
        etag: ``ETag`` validator echoed by the API, if any.
        last_modified: ``Last-Modified`` validator echoed by the API, if any.
    """

    data: Any
    fetched_at: datetime
    etag: Optional[str] = None
    last_modified: Optional[str] = None

    @property
    def has_validators(self) -> bool:
        return bool(self.etag or self.last_modified)


class CacheStore:
    """Keyed table of :class:`CacheEntry` records.

    Entries are immutable; :meth:`set` swaps in a new one, so a reader never
    observes a half-updated entry.

    Args:
        clock: Returns the current time; stamps ``fetched_at``. Defaults to
            timezone-aware UTC now.

    Example::

        store = CacheStore()
        store.set("accounts", accounts, etag='"v1"')
        store.get("accounts").etag   # '"v1"'
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def now(self) -> datetime:
        """Current time according to the store's clock."""
        return self._clock()

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for *key*, or ``None`` on a miss."""
        return self._entries.get(key)

    def set(
        self,
        key: str,
        data: Any,
        etag: Optional[str] = None,
        last_modified: Optional[str] = None,
    ) -> CacheEntry:
        """Replace the entry for *key*, stamping ``fetched_at`` with the clock."""
        entry = CacheEntry(
            data=data,
            fetched_at=self._clock(),
            etag=etag,
            last_modified=last_modified,
        )
        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
