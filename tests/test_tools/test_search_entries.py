"""Tests for quicktoshl.tools.search_entries."""

from __future__ import annotations

from datetime import date

import httpx
import pytest

from quicktoshl.client import ToshlClient, Transport
from quicktoshl.exceptions import InvalidUsageError
from quicktoshl.tools import search_entries
from quicktoshl.tools.search_entries import summarise


TODAY = date(2024, 3, 13)


@pytest.fixture
def entry_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def client(entry_requests, categories_payload, tags_payload, accounts_payload, entries_payload):
    payloads = {
        "/categories": categories_payload,
        "/tags": tags_payload,
        "/accounts": accounts_payload,
        "/entries": entries_payload,
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/entries":
            entry_requests.append(request)
        return httpx.Response(200, json=payloads[request.url.path])

    with Transport("https://api.toshl.test", http_transport=httpx.MockTransport(handler)) as transport:
        yield ToshlClient(transport)


def _ids(result: dict) -> list[str]:
    return [e["id"] for e in result["entries"]]


class TestRequestParameters:
    def test_named_range(self, client, entry_requests) -> None:
        search_entries(client, date_range="this_month", today=TODAY)
        params = entry_requests[0].url.params
        assert params["from"] == "2024-03-01"
        assert params["to"] == "2024-03-31"
        assert params["per_page"] == "50"

    def test_default_period(self, client, entry_requests) -> None:
        result = search_entries(client, today=TODAY)
        assert entry_requests[0].url.params["from"] == "2024-02-12"
        assert result["summary"]["period"] == "2024-02-12 to 2024-03-13"

    def test_limit_capped(self, client, entry_requests) -> None:
        search_entries(client, limit=500, today=TODAY)
        assert entry_requests[0].url.params["per_page"] == "200"

    def test_invalid_entry_type(self, client, entry_requests) -> None:
        with pytest.raises(InvalidUsageError, match="Invalid entry type"):
            search_entries(client, entry_type="loan", today=TODAY)
        assert entry_requests == []

    def test_invalid_range(self, client) -> None:
        with pytest.raises(InvalidUsageError):
            search_entries(client, date_range="someday", today=TODAY)


class TestFilters:
    def test_all_entries(self, client) -> None:
        assert _ids(search_entries(client, today=TODAY)) == ["e-1", "e-2", "e-3", "e-4", "e-5"]

    @pytest.mark.parametrize(
        ("entry_type", "expected"),
        [
            ("expense", ["e-1", "e-2", "e-5"]),
            ("income", ["e-3"]),
            ("transfer", ["e-4"]),
        ],
    )
    def test_entry_type(self, client, entry_type: str, expected: list[str]) -> None:
        assert _ids(search_entries(client, entry_type=entry_type, today=TODAY)) == expected

    def test_category_names_case_insensitive(self, client) -> None:
        assert _ids(search_entries(client, categories="FOOD", today=TODAY)) == ["e-1", "e-5"]

    def test_any_of_several_categories(self, client) -> None:
        result = search_entries(client, categories="food, rent", today=TODAY)
        assert _ids(result) == ["e-1", "e-2", "e-5"]

    def test_tags(self, client) -> None:
        assert _ids(search_entries(client, tags="lunch", today=TODAY)) == ["e-1"]

    def test_accounts_substring(self, client) -> None:
        assert _ids(search_entries(client, accounts="ban", today=TODAY)) == ["e-2", "e-3", "e-4"]

    def test_description_search(self, client) -> None:
        assert _ids(search_entries(client, search="cà phê", today=TODAY)) == ["e-5"]

    def test_filters_combine(self, client) -> None:
        result = search_entries(client, entry_type="expense", accounts="cash", tags="coffee", today=TODAY)
        assert _ids(result) == ["e-5"]


class TestFormatting:
    def test_entry_fields(self, client) -> None:
        result = search_entries(client, today=TODAY)
        first, rent, _, transfer, _ = result["entries"]

        assert first == {
            "id": "e-1",
            "date": "2024-03-01",
            "description": "Cơm trưa",
            "amount": -50000,
            "absAmount": 50000,
            "currency": "VND",
            "type": "expense",
            "category": "Food",
            "tags": ["lunch"],
            "account": "Cash",
            "isRecurring": False,
        }
        assert rent["isRecurring"] is True
        assert transfer["type"] == "transfer"
        assert transfer["category"] == "Unknown"

    def test_instructions_last(self, client) -> None:
        result = search_entries(client, today=TODAY)
        assert list(result)[-1] == "_instructions"

    def test_without_summary(self, client) -> None:
        result = search_entries(client, include_summary=False, today=TODAY)
        assert "summary" not in result
        assert len(result["entries"]) == 5


class TestSummary:
    def test_summary_totals(self, client) -> None:
        summary = search_entries(client, date_range="this_month", today=TODAY)["summary"]

        assert summary["period"] == "2024-03-01 to 2024-03-31"
        assert summary["totalEntries"] == 5
        assert summary["expenseCount"] == 3
        assert summary["incomeCount"] == 1
        assert summary["transferCount"] == 1
        assert summary["totalExpenses"] == 3_080_000
        assert summary["totalIncome"] == 20_000_000
        assert summary["netChange"] == 16_920_000
        assert summary["topExpenseCategories"] == [
            {"name": "Rent", "amount": 3_000_000},
            {"name": "Food", "amount": 80_000},
        ]
        assert summary["topIncomeCategories"] == [{"name": "Salary", "amount": 20_000_000}]

    def test_summary_reflects_filters(self, client) -> None:
        summary = search_entries(client, categories="food", today=TODAY)["summary"]
        assert summary["totalEntries"] == 2
        assert summary["totalExpenses"] == 80_000
        assert summary["netChange"] == -80_000

    def test_top_categories_limited_to_five(self) -> None:
        entries = [
            {"type": "expense", "absAmount": float(n), "category": f"cat-{n}"} for n in range(1, 8)
        ]
        top = summarise(entries, "2024-03-01", "2024-03-31")["topExpenseCategories"]
        assert [c["name"] for c in top] == ["cat-7", "cat-6", "cat-5", "cat-4", "cat-3"]

    def test_empty(self) -> None:
        summary = summarise([], "2024-03-01", "2024-03-31")
        assert summary["totalEntries"] == 0
        assert summary["netChange"] == 0
        assert summary["topExpenseCategories"] == []
