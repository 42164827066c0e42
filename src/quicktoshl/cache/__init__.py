"""In-memory reference-data caching for quicktoshl.

:class:`CacheStore` holds one :class:`CacheEntry` per resource key and
:class:`ConditionalFetcher` revalidates those entries against the API with
``If-None-Match`` / ``If-Modified-Since``, serving entries younger than
:data:`STALENESS_CEILING` when the API cannot be reached.

The cache is consumed by :class:`~quicktoshl.client.toshl.ToshlClient`.
"""

from quicktoshl.cache.fetch import (
    STALENESS_CEILING,
    ConditionalFetcher,
    ConditionalTransport,
    FetchResult,
    ResourceDescriptor,
)
from quicktoshl.cache.store import CacheEntry, CacheStore

__all__ = [
    "CacheEntry",
    "CacheStore",
    "ConditionalFetcher",
    "ConditionalTransport",
    "FetchResult",
    "ResourceDescriptor",
    "STALENESS_CEILING",
]
