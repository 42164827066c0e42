"""HTTP layer for quicktoshl.

Classes:
    :class:`Transport` -- blocking :mod:`httpx` transport with auth
    injection, optional retry and error mapping.
    :class:`ToshlClient` -- typed Toshl API operations; reference reads go
    through the conditional cache.

Example::

    from quicktoshl.client import ToshlClient, Transport

    with Transport("https://api.toshl.com", auth=auth) as transport:
        accounts = ToshlClient(transport).get_accounts()
"""

from quicktoshl.client.toshl import ToshlClient
from quicktoshl.client.transport import Transport

__all__ = ["ToshlClient", "Transport"]
