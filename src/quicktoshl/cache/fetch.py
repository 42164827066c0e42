"""Conditional fetching of reference data through a :class:`CacheStore`.

:class:`ConditionalFetcher` wraps one logical resource fetch:

1. Validators of the stored entry (``ETag`` / ``Last-Modified``) are sent as
   ``If-None-Match`` / ``If-Modified-Since``.
2. A 2xx answer is transformed, stored together with the new validators,
   and returned.
3. A 304 answer refreshes the entry's timestamp and returns the stored data.
4. A transport failure returns the stored data when it was fetched less
   than :data:`STALENESS_CEILING` ago, and re-raises otherwise.

A live request is attempted on every call, whatever the age of the entry.
Entry age only decides whether the fallback in step 4 is allowed. There is
no retry: one failure either falls back or surfaces.

The fetcher assumes cooperative, one-call-at-a-time use. Concurrent writers
to the same key need external serialisation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional, Protocol, TypeVar

from quicktoshl.cache.store import CacheEntry, CacheStore
from quicktoshl.exceptions import MalformedResponseError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STALENESS_CEILING = timedelta(days=14)
"""Maximum age of an entry that may be served when the API cannot be reached."""


@dataclass(frozen=True)
class ResourceDescriptor:
    """Identifies the remote call behind a cache key.

    Attributes:
        path: API path, e.g. ``"/categories"``.
        params: Query parameters. They are sent with the request but are not
            part of the cache key.
    """

    path: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class FetchResult:
    """What the transport produced for a conditional request.

    Attributes:
        status_code: HTTP status of the response.
        body: Decoded JSON body; ``None`` for a 304.
        headers: Response headers (case-insensitive mapping).
    """

    status_code: int
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def not_modified(self) -> bool:
        return self.status_code == 304

    @property
    def etag(self) -> Optional[str]:
        return self.headers.get("etag")

    @property
    def last_modified(self) -> Optional[str]:
        return self.headers.get("last-modified")


class ConditionalTransport(Protocol):
    """Anything able to send a GET with extra headers.

    Implementations return a :class:`FetchResult` for 2xx and 304 answers and
    raise a :class:`~quicktoshl.exceptions.TransportError` for everything else
    (network errors, timeouts, error statuses, undecodable bodies).
    """

    def fetch(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> FetchResult:
        ...


def conditional_headers(entry: Optional[CacheEntry]) -> dict[str, str]:
    """Build ``If-None-Match`` / ``If-Modified-Since`` headers from *entry*."""
    headers: dict[str, str] = {}
    if entry is None or not entry.has_validators:
        return headers
    if entry.etag:
        headers["If-None-Match"] = entry.etag
    if entry.last_modified:
        headers["If-Modified-Since"] = entry.last_modified
    return headers


class ConditionalFetcher:
    """Fetch reference resources through a shared :class:`CacheStore`.

    Args:
        store: The cache shared by every caller in the process.
        transport: Sends the conditional requests.
        staleness_ceiling: How old an entry may be and still be served when
            the live request fails.

    Example::

        fetcher = ConditionalFetcher(CacheStore(), transport)
        tags = fetcher.fetch_with_cache(
            "tags",
            ResourceDescriptor("/tags", {"per_page": 500}),
            lambda body: [t for t in body if not t.get("deleted")],
        )
    """

    def __init__(
        self,
        store: CacheStore,
        transport: ConditionalTransport,
        staleness_ceiling: timedelta = STALENESS_CEILING,
    ) -> None:
        self.store = store
        self._transport = transport
        self._staleness_ceiling = staleness_ceiling

    def fetch_with_cache(
        self,
        key: str,
        resource: ResourceDescriptor,
        transform: Callable[[Any], T],
    ) -> T:
        """Return the canonical data for *key*, revalidating against the API.

        Args:
            key: Cache key of the resource.
            resource: The remote call to make.
            transform: Maps the decoded body to the canonical shape. Runs
                before anything is stored, so a failing transform leaves the
                existing entry untouched.

        Raises:
            TransportError: When the request fails and no entry younger than
                the staleness ceiling exists. The transport's exception is
                re-raised as is.
            Exception: Whatever *transform* raises, unmasked.
        """
        previous = self.store.get(key)

        try:
            result = self._transport.fetch(
                resource.path,
                params=dict(resource.params) or None,
                headers=conditional_headers(previous),
            )
            if result.not_modified and previous is None:
                raise MalformedResponseError(
                    f"{resource.path} answered 304 Not Modified to an unconditional request",
                    status_code=304,
                )
        except TransportError as exc:
            return self._fallback(key, previous, exc)

        if result.not_modified and previous is not None:
            logger.debug("Cache revalidated: %s", key)
            self.store.set(key, previous.data, previous.etag, previous.last_modified)
            return previous.data

        data = transform(result.body)
        self.store.set(key, data, result.etag, result.last_modified)
        logger.debug("Cache refreshed: %s (etag=%s)", key, result.etag)
        return data

    def _fallback(
        self,
        key: str,
        previous: Optional[CacheEntry],
        exc: TransportError,
    ) -> Any:
        if previous is None:
            raise exc
        age = self.store.now() - previous.fetched_at
        if age >= self._staleness_ceiling:
            logger.debug("Cached %s is %s old, too stale to serve", key, age)
            raise exc
        logger.warning("Serving cached %s after failed refresh: %s", key, exc)
        return previous.data
