"""Typed client for the Toshl Finance API.

:class:`ToshlClient` splits the API into two paths:

* **Reference reads** (categories, tags, accounts, currencies, default
  currency) go through a
  :class:`~quicktoshl.cache.fetch.ConditionalFetcher` and are revalidated
  with ``ETag`` / ``Last-Modified`` on every call.
* **Everything else** (entries, budgets, ``/me``, writes) is a plain
  pass-through to the :class:`~quicktoshl.client.transport.Transport`.

Cache keys are fixed per resource; query parameters do not take part in the
key.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from quicktoshl.cache import CacheStore, ConditionalFetcher, ResourceDescriptor
from quicktoshl.client.transport import Transport
from quicktoshl.exceptions import InvalidUsageError, ResponseShapeError
from quicktoshl.models import (
    Account,
    Budget,
    Category,
    Currency,
    Tag,
    Transaction,
    TransactionInput,
    TransferInput,
)
from quicktoshl.output import debug

M = TypeVar("M", bound=BaseModel)

CATEGORIES_KEY = "categories"
TAGS_KEY = "tags"
ACCOUNTS_KEY = "accounts"
CURRENCIES_KEY = "currencies"
DEFAULT_CURRENCY_KEY = "defaultCurrency"

_REPEAT_MODES = ("one", "tail", "all")


# ------------------------------------------------------------------ #
# Payload transforms
# ------------------------------------------------------------------ #


def _validate_list(model: type[M], payload: Any, resource: str) -> list[M]:
    if not isinstance(payload, list):
        raise ResponseShapeError(
            f"Expected a list of {resource}, got {type(payload).__name__}"
        )
    try:
        return [model.model_validate(item) for item in payload]
    except ValidationError as exc:
        raise ResponseShapeError(f"Unexpected {resource} payload: {exc}") from exc


def categories_from_payload(payload: Any) -> list[Category]:
    """Validate ``/categories`` and drop deleted categories."""
    return [c for c in _validate_list(Category, payload, "categories") if not c.deleted]


def tags_from_payload(payload: Any) -> list[Tag]:
    """Validate ``/tags`` and drop deleted tags."""
    return [t for t in _validate_list(Tag, payload, "tags") if not t.deleted]


def accounts_from_payload(payload: Any) -> list[Account]:
    """Validate ``/accounts`` and sort them in the user's display order."""
    return sorted(_validate_list(Account, payload, "accounts"), key=lambda a: a.order)


def currencies_from_payload(payload: Any) -> list[Currency]:
    """Turn the ``{code: record}`` object from ``/currencies`` into a list.

    The key of each record is folded in as :attr:`Currency.code`.
    """
    if not isinstance(payload, dict):
        raise ResponseShapeError(
            f"Expected an object of currencies, got {type(payload).__name__}"
        )
    try:
        return [
            Currency.model_validate({**details, "code": code})
            for code, details in payload.items()
        ]
    except (TypeError, ValidationError) as exc:
        raise ResponseShapeError(f"Unexpected currencies payload: {exc}") from exc


def default_currency_from_payload(payload: Any) -> str:
    """Extract ``currency.main`` from the ``/me`` profile."""
    try:
        code = payload["currency"]["main"]
    except (KeyError, TypeError) as exc:
        raise ResponseShapeError("Profile has no main currency") from exc
    if not isinstance(code, str) or not code:
        raise ResponseShapeError(f"Invalid main currency: {code!r}")
    return code


# ------------------------------------------------------------------ #
# Client
# ------------------------------------------------------------------ #


class ToshlClient:
    """Toshl API operations over a :class:`Transport`.

    Args:
        transport: An entered :class:`Transport`.
        store: Reference-data cache. A fresh store is created when omitted;
            pass a shared one to reuse cached data across clients.
        force_refresh: Empty *store* before first use.

    Example::

        with Transport(config.base_url, auth=auth) as transport:
            client = ToshlClient(transport, store)
            for category in client.get_categories():
                print(category.name)
    """

    def __init__(
        self,
        transport: Transport,
        store: Optional[CacheStore] = None,
        force_refresh: bool = False,
    ) -> None:
        self._transport = transport
        self.store = store if store is not None else CacheStore()
        if force_refresh:
            debug("Force refresh: clearing reference-data cache")
            self.store.clear()
        self._fetcher = ConditionalFetcher(self.store, transport)

    # ------------------------------------------------------------------ #
    # Cached reference data
    # ------------------------------------------------------------------ #

    def _cached(
        self,
        key: str,
        path: str,
        transform: Callable[[Any], Any],
        **params: Any,
    ) -> Any:
        return self._fetcher.fetch_with_cache(key, ResourceDescriptor(path, params), transform)

    def get_categories(self, per_page: int = 500) -> list[Category]:
        return self._cached(CATEGORIES_KEY, "/categories", categories_from_payload, per_page=per_page)

    def get_tags(self, per_page: int = 500) -> list[Tag]:
        return self._cached(TAGS_KEY, "/tags", tags_from_payload, per_page=per_page)

    def get_accounts(self, per_page: int = 100) -> list[Account]:
        return self._cached(ACCOUNTS_KEY, "/accounts", accounts_from_payload, per_page=per_page)

    def get_currencies(self) -> list[Currency]:
        return self._cached(CURRENCIES_KEY, "/currencies", currencies_from_payload)

    def get_default_currency(self) -> str:
        """Return the user's main currency code from ``/me``."""
        return self._cached(DEFAULT_CURRENCY_KEY, "/me", default_currency_from_payload)

    # ------------------------------------------------------------------ #
    # Uncached reads
    # ------------------------------------------------------------------ #

    def get_transactions(
        self,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> list[Transaction]:
        """List entries between two ISO dates (inclusive)."""
        params = _drop_none({"from": from_date, "to": to_date, "page": page, "per_page": per_page})
        response = self._transport.get("/entries", params=params)
        return _validate_list(Transaction, self._transport.decode(response), "entries")

    def get_budgets(
        self,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> list[Budget]:
        """List budgets, without deleted ones."""
        params = _drop_none({"from": from_date, "to": to_date, "page": page, "per_page": per_page})
        response = self._transport.get("/budgets", params=params)
        budgets = _validate_list(Budget, self._transport.decode(response), "budgets")
        return [b for b in budgets if not b.deleted]

    def get_me(self) -> dict[str, Any]:
        response = self._transport.get("/me")
        return self._transport.decode(response)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def add_transaction(self, transaction: TransactionInput) -> Transaction:
        return self._post_entry(transaction.model_dump(exclude_none=True))

    def add_transfer(self, transfer: TransferInput) -> Transaction:
        return self._post_entry(transfer.model_dump(exclude_none=True))

    def update_transaction(
        self,
        entry_id: str,
        transaction: TransactionInput,
        mode: Optional[str] = None,
    ) -> Transaction:
        """Update an entry.

        Args:
            entry_id: Id of the entry to update.
            transaction: The new entry contents.
            mode: For repeating entries: ``"one"`` (this occurrence),
                ``"tail"`` (this and future ones) or ``"all"``.
        """
        params = {"update": _check_mode(mode)} if mode else None
        debug(f"Updating entry {entry_id} (mode={mode or 'default'})")
        payload = transaction.model_dump(exclude_none=True)
        response = self._transport.put(f"/entries/{entry_id}", params=params, json_body=payload)
        return self._entry_from_response(response, {**payload, "id": entry_id})

    def delete_transaction(self, entry_id: str, mode: Optional[str] = None) -> None:
        """Delete an entry; *mode* as for :meth:`update_transaction`."""
        params = {"delete": _check_mode(mode)} if mode else None
        self._transport.delete(f"/entries/{entry_id}", params=params)

    def _post_entry(self, payload: dict[str, Any]) -> Transaction:
        response = self._transport.post("/entries", json_body=payload)
        # 201 Created may carry only a Location header pointing at the new entry.
        location = response.headers.get("location", "")
        return self._entry_from_response(
            response, {**payload, "id": location.rstrip("/").rsplit("/", 1)[-1]}
        )

    def _entry_from_response(self, response: httpx.Response, echo: dict[str, Any]) -> Transaction:
        """Validate the entry in *response*, or *echo* when the body is empty."""
        body = self._transport.decode(response)
        if body is None:
            body = echo
        try:
            return Transaction.model_validate(body)
        except ValidationError as exc:
            raise ResponseShapeError(f"Unexpected entry payload: {exc}") from exc


def _check_mode(mode: str) -> str:
    if mode not in _REPEAT_MODES:
        raise InvalidUsageError(
            f"Invalid repeat mode '{mode}', expected one of: {', '.join(_REPEAT_MODES)}"
        )
    return mode


def _drop_none(params: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}
