"""Tests for quicktoshl.client.toshl -- cached reference reads and entry writes."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from quicktoshl.cache import CacheStore
from quicktoshl.client import ToshlClient, Transport
from quicktoshl.client.toshl import (
    ACCOUNTS_KEY,
    CATEGORIES_KEY,
    CURRENCIES_KEY,
    DEFAULT_CURRENCY_KEY,
    TAGS_KEY,
    accounts_from_payload,
    categories_from_payload,
    currencies_from_payload,
    default_currency_from_payload,
    tags_from_payload,
)
from quicktoshl.exceptions import (
    ConnectionError_,
    InvalidUsageError,
    NotFoundError,
    ResponseShapeError,
)
from quicktoshl.models import CurrencyRef, TransactionInput, TransferInput, TransferLeg


BASE_URL = "https://api.toshl.test"


class Recorder:
    """Route requests by path to a handler and keep every request."""

    def __init__(self, routes: dict[str, Callable[[httpx.Request], httpx.Response]]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes[request.url.path](request)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


def _client(recorder: Recorder, store: CacheStore | None = None, force_refresh: bool = False):
    transport = Transport(BASE_URL, http_transport=httpx.MockTransport(recorder))
    transport.__enter__()
    return ToshlClient(transport, store, force_refresh=force_refresh)


def _json(body: Any, etag: str | None = None) -> Callable[[httpx.Request], httpx.Response]:
    headers = {"ETag": etag} if etag else {}
    return lambda request: httpx.Response(200, json=body, headers=headers)


def _revalidating(body: Any, etag: str) -> Callable[[httpx.Request], httpx.Response]:
    """Answer 304 when the caller already holds *etag*."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers.get("if-none-match") == etag:
            return httpx.Response(304, headers={"ETag": etag})
        return httpx.Response(200, json=body, headers={"ETag": etag})

    return handler


# ---------------------------------------------------------------------------
# Payload transforms
# ---------------------------------------------------------------------------


class TestTransforms:
    def test_categories_drop_deleted(self, categories_payload) -> None:
        categories = categories_from_payload(categories_payload)
        assert [c.id for c in categories] == ["c-food", "c-rent", "c-salary"]

    def test_tags_drop_deleted(self, tags_payload) -> None:
        tags = tags_from_payload(tags_payload)
        assert [t.id for t in tags] == ["t-lunch", "t-coffee", "t-bonus"]
        assert tags[0].category == "c-food"

    def test_accounts_sorted_by_order(self, accounts_payload) -> None:
        accounts = accounts_from_payload(accounts_payload)
        assert [a.id for a in accounts] == ["a-cash", "a-bank"]
        assert accounts[0].currency.code == "VND"

    def test_currencies_fold_code(self, currencies_payload) -> None:
        currencies = currencies_from_payload(currencies_payload)
        by_code = {c.code: c for c in currencies}
        assert set(by_code) == {"USD", "VND"}
        assert by_code["USD"].symbol == "$"
        assert by_code["VND"].precision == 0

    def test_default_currency(self, me_payload) -> None:
        assert default_currency_from_payload(me_payload) == "VND"

    @pytest.mark.parametrize("payload", [{}, {"currency": {}}, {"currency": {"main": ""}}, None])
    def test_default_currency_missing(self, payload: Any) -> None:
        with pytest.raises(ResponseShapeError):
            default_currency_from_payload(payload)

    def test_list_expected(self) -> None:
        with pytest.raises(ResponseShapeError, match="Expected a list of categories"):
            categories_from_payload({"id": "x"})

    def test_invalid_item(self) -> None:
        with pytest.raises(ResponseShapeError, match="Unexpected tags payload"):
            tags_from_payload([{"name": "no id"}])

    def test_currencies_object_expected(self) -> None:
        with pytest.raises(ResponseShapeError):
            currencies_from_payload([{"code": "USD"}])

    def test_currency_record_must_be_object(self) -> None:
        with pytest.raises(ResponseShapeError):
            currencies_from_payload({"USD": "dollar"})

    def test_unknown_fields_preserved(self) -> None:
        [category] = categories_from_payload(
            [{"id": "c", "name": "Food", "type": "expense", "extra": {"color": "red"}}]
        )
        assert category.model_dump()["extra"] == {"color": "red"}


# ---------------------------------------------------------------------------
# Cached reference reads
# ---------------------------------------------------------------------------


class TestReferenceReads:
    def test_categories_cached_under_key(self, categories_payload) -> None:
        recorder = Recorder({"/categories": _json(categories_payload, etag='"c1"')})
        client = _client(recorder)

        categories = client.get_categories()

        assert len(categories) == 3
        entry = client.store.get(CATEGORIES_KEY)
        assert entry.data == categories
        assert entry.etag == '"c1"'
        assert recorder.requests[0].url.params["per_page"] == "500"

    def test_tags_per_page(self, tags_payload) -> None:
        recorder = Recorder({"/tags": _json(tags_payload)})
        _client(recorder).get_tags()
        assert recorder.requests[0].url.params["per_page"] == "500"

    def test_accounts_per_page(self, accounts_payload) -> None:
        recorder = Recorder({"/accounts": _json(accounts_payload)})
        client = _client(recorder)
        assert [a.name for a in client.get_accounts()] == ["Cash", "Bank"]
        assert recorder.requests[0].url.params["per_page"] == "100"
        assert ACCOUNTS_KEY in client.store

    def test_currencies(self, currencies_payload) -> None:
        recorder = Recorder({"/currencies": _json(currencies_payload)})
        client = _client(recorder)
        assert {c.code for c in client.get_currencies()} == {"USD", "VND"}
        assert CURRENCIES_KEY in client.store
        assert "per_page" not in recorder.requests[0].url.params

    def test_default_currency(self, me_payload) -> None:
        recorder = Recorder({"/me": _json(me_payload)})
        client = _client(recorder)
        assert client.get_default_currency() == "VND"
        assert client.store.get(DEFAULT_CURRENCY_KEY).data == "VND"

    def test_second_read_revalidates(self, tags_payload) -> None:
        recorder = Recorder({"/tags": _revalidating(tags_payload, '"t1"')})
        client = _client(recorder)

        first = client.get_tags()
        second = client.get_tags()

        assert second == first
        assert len(recorder.requests) == 2
        assert "if-none-match" not in recorder.requests[0].headers
        assert recorder.requests[1].headers["if-none-match"] == '"t1"'

    def test_shared_store_across_clients(self, tags_payload) -> None:
        store = CacheStore()
        recorder = Recorder({"/tags": _revalidating(tags_payload, '"t1"')})
        _client(recorder, store).get_tags()
        _client(recorder, store).get_tags()

        assert recorder.requests[1].headers["if-none-match"] == '"t1"'
        assert TAGS_KEY in store

    def test_force_refresh_clears_store(self, tags_payload) -> None:
        store = CacheStore()
        recorder = Recorder({"/tags": _revalidating(tags_payload, '"t1"')})
        _client(recorder, store).get_tags()

        client = _client(recorder, store, force_refresh=True)
        assert len(store) == 0

        client.get_tags()
        assert "if-none-match" not in recorder.requests[1].headers

    def test_network_failure_served_from_cache(self, accounts_payload) -> None:
        state = {"down": False}

        def handler(request: httpx.Request) -> httpx.Response:
            if state["down"]:
                raise httpx.ConnectError("network down", request=request)
            return httpx.Response(200, json=accounts_payload, headers={"ETag": '"a1"'})

        client = _client(Recorder({"/accounts": handler}))
        first = client.get_accounts()
        state["down"] = True

        assert client.get_accounts() == first

    @pytest.mark.parametrize(
        "failure",
        [
            lambda request: httpx.Response(302, headers={"Location": f"{BASE_URL}/categories"}),
            lambda request: httpx.Response(
                200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all"
            ),
        ],
        ids=["redirect-loop", "bad-content-encoding"],
    )
    def test_protocol_failure_served_from_cache(self, categories_payload, failure) -> None:
        ok = _json(categories_payload, etag='"c1"')
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return ok(request) if len(seen) == 1 else failure(request)

        client = _client(Recorder({"/categories": handler}))
        first = client.get_categories()
        assert client.store.get(CATEGORIES_KEY).etag == '"c1"'

        assert client.get_categories() == first

    def test_network_failure_without_cache(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("network down", request=request)

        with pytest.raises(ConnectionError_):
            _client(Recorder({"/accounts": handler})).get_accounts()

    def test_malformed_payload_keeps_previous_entry(self, tags_payload) -> None:
        bodies = iter([tags_payload, {"not": "a list"}])
        recorder = Recorder({"/tags": lambda request: httpx.Response(200, json=next(bodies))})
        client = _client(recorder)
        first = client.get_tags()

        with pytest.raises(ResponseShapeError):
            client.get_tags()
        assert client.store.get(TAGS_KEY).data == first


# ---------------------------------------------------------------------------
# Uncached reads
# ---------------------------------------------------------------------------


class TestUncachedReads:
    def test_get_transactions(self, entries_payload) -> None:
        recorder = Recorder({"/entries": _json(entries_payload)})
        client = _client(recorder)

        entries = client.get_transactions(from_date="2024-03-01", to_date="2024-03-31", per_page=50)

        params = recorder.requests[0].url.params
        assert params["from"] == "2024-03-01"
        assert params["to"] == "2024-03-31"
        assert params["per_page"] == "50"
        assert "page" not in params
        assert [e.kind for e in entries] == ["expense", "expense", "income", "transfer", "expense"]
        assert entries[1].repeat.frequency == "monthly"
        assert len(client.store) == 0

    def test_get_transactions_not_cached(self, entries_payload) -> None:
        recorder = Recorder({"/entries": _json(entries_payload, etag='"e1"')})
        client = _client(recorder)
        client.get_transactions()
        client.get_transactions()
        assert "if-none-match" not in recorder.requests[1].headers

    def test_get_budgets_drops_deleted(self) -> None:
        budgets = [
            {"id": "b1", "name": "Food", "amount": 3000000},
            {"id": "b2", "name": "Old", "deleted": True},
        ]
        client = _client(Recorder({"/budgets": _json(budgets)}))
        assert [b.id for b in client.get_budgets()] == ["b1"]

    def test_get_me(self, me_payload) -> None:
        client = _client(Recorder({"/me": _json(me_payload)}))
        assert client.get_me()["email"] == "user@example.com"


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def _expense() -> TransactionInput:
    return TransactionInput(
        amount=-50000,
        currency=CurrencyRef(code="VND"),
        date="2024-03-01",
        desc="Cơm trưa",
        category="c-food",
    )


class TestWrites:
    def test_add_transaction_with_location_only(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, headers={"Location": f"{BASE_URL}/entries/e-99"})

        recorder = Recorder({"/entries": handler})
        created = _client(recorder).add_transaction(_expense())

        body = json.loads(recorder.requests[0].content)
        assert body == {
            "amount": -50000.0,
            "currency": {"code": "VND"},
            "date": "2024-03-01",
            "desc": "Cơm trưa",
            "category": "c-food",
        }
        assert created.id == "e-99"
        assert created.amount == -50000
        assert created.kind == "expense"

    def test_add_transaction_with_body(self) -> None:
        echoed = {
            "id": "e-1",
            "amount": -50000,
            "currency": {"code": "VND"},
            "date": "2024-03-01",
            "account": "a-cash",
        }
        created = _client(Recorder({"/entries": _json(echoed)})).add_transaction(_expense())
        assert created.id == "e-1"
        assert created.account == "a-cash"

    def test_add_transfer(self) -> None:
        recorder = Recorder(
            {"/entries": lambda request: httpx.Response(201, headers={"Location": "/entries/t-1"})}
        )
        transfer = TransferInput(
            amount=-200,
            currency=CurrencyRef(code="USD"),
            date="2024-03-01",
            account="a-cash",
            transaction=TransferLeg(account="a-bank", currency=CurrencyRef(code="USD")),
        )

        created = _client(recorder).add_transfer(transfer)

        body = json.loads(recorder.requests[0].content)
        assert body["transaction"] == {"account": "a-bank", "currency": {"code": "USD"}}
        assert created.id == "t-1"
        assert created.is_transfer

    def test_update_transaction_with_mode(self) -> None:
        recorder = Recorder({"/entries/e-1": lambda request: httpx.Response(200)})
        updated = _client(recorder).update_transaction("e-1", _expense(), mode="tail")

        request = recorder.requests[0]
        assert request.method == "PUT"
        assert request.url.params["update"] == "tail"
        assert updated.id == "e-1"

    def test_update_transaction_without_mode(self) -> None:
        recorder = Recorder({"/entries/e-1": lambda request: httpx.Response(200)})
        _client(recorder).update_transaction("e-1", _expense())
        assert "update" not in recorder.requests[0].url.params

    def test_delete_transaction(self) -> None:
        recorder = Recorder({"/entries/e-1": lambda request: httpx.Response(204)})
        _client(recorder).delete_transaction("e-1", mode="all")

        request = recorder.requests[0]
        assert request.method == "DELETE"
        assert request.url.params["delete"] == "all"

    def test_delete_missing_entry(self) -> None:
        recorder = Recorder({"/entries/nope": lambda request: httpx.Response(404)})
        with pytest.raises(NotFoundError):
            _client(recorder).delete_transaction("nope")

    def test_invalid_mode(self) -> None:
        recorder = Recorder({})
        with pytest.raises(InvalidUsageError, match="Invalid repeat mode"):
            _client(recorder).delete_transaction("e-1", mode="some")
        assert recorder.requests == []

    def test_writes_do_not_touch_cache(self, tags_payload) -> None:
        recorder = Recorder(
            {
                "/tags": _json(tags_payload),
                "/entries": lambda request: httpx.Response(201, headers={"Location": "/entries/e-2"}),
            }
        )
        client = _client(recorder)
        client.get_tags()
        client.add_transaction(_expense())
        assert client.store.keys() == [TAGS_KEY]
