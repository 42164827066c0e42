"""Per-invocation wiring shared by the commands.

The CLI builds one :class:`~quicktoshl.cache.CacheStore` per process in
:func:`~quicktoshl.app.main_callback` and hands it to every
:class:`~quicktoshl.client.toshl.ToshlClient` opened through
:func:`open_client`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from quicktoshl.auth import authenticate
from quicktoshl.cache import CacheStore
from quicktoshl.client import ToshlClient, Transport
from quicktoshl.config import resolve_config
from quicktoshl.models import GlobalConfig


def _state(ctx: typer.Context) -> dict:
    return ctx.find_root().ensure_object(dict)


def get_config(ctx: typer.Context) -> GlobalConfig:
    """Resolve the effective config once per invocation."""
    state = _state(ctx)
    if state.get("config") is None:
        state["config"] = resolve_config(
            cli_base_url=state.get("base_url"),
            cli_force_refresh=state.get("force_refresh", False),
        )
    return state["config"]


@contextmanager
def open_client(ctx: typer.Context) -> Iterator[ToshlClient]:
    """Open a transport and yield a :class:`ToshlClient` over the shared store.

    The force-refresh flag is applied to the store the first time a client
    is opened in the process, and never again.
    """
    state = _state(ctx)
    config = get_config(ctx)
    store = state.setdefault("store", CacheStore())
    force_refresh = config.cache.force_refresh and not state.get("refreshed", False)
    state["refreshed"] = True

    auth = authenticate(config.api_key_source)
    with Transport(config.base_url, config.request, auth=auth) as transport:
        yield ToshlClient(transport, store, force_refresh=force_refresh)
