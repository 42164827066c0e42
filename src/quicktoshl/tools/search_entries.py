"""Search, filter and summarise entries for AI tool calls."""

from __future__ import annotations

from collections import defaultdict
from datetime import date as date_type
from typing import Any, Optional

from quicktoshl.client.toshl import ToshlClient
from quicktoshl.exceptions import InvalidUsageError
from quicktoshl.helpers import AI_INSTRUCTIONS, resolve_date_range
from quicktoshl.models import Transaction

ENTRY_TYPES = ("expense", "income", "transfer", "all")
DEFAULT_LIMIT = 50
MAX_LIMIT = 200
TOP_CATEGORIES = 5


def _split_filter(value: Optional[str]) -> Optional[list[str]]:
    if not value:
        return None
    return [part.strip().lower() for part in value.split(",")]


def _matches_any(name: str, needles: list[str]) -> bool:
    return any(needle in name for needle in needles)


def search_entries(
    client: ToshlClient,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    date_range: Optional[str] = None,
    entry_type: str = "all",
    categories: Optional[str] = None,
    tags: Optional[str] = None,
    accounts: Optional[str] = None,
    limit: Optional[int] = None,
    search: Optional[str] = None,
    include_summary: bool = True,
    today: Optional[date_type] = None,
) -> dict[str, Any]:
    """Find entries in a period and optionally summarise them.

    Category, tag and account filters take comma-separated names and match
    case-insensitively on substrings; an entry passes a filter when any of
    the names matches. *search* matches the description.

    Args:
        client: API client; reference names come from its cache.
        from_date: ISO start date (default 30 days ago).
        to_date: ISO end date (default today).
        date_range: Named range that overrides *from_date* / *to_date*, see
            :data:`~quicktoshl.helpers.DATE_RANGES`.
        entry_type: ``expense``, ``income``, ``transfer`` or ``all``.
        categories: Category names to keep.
        tags: Tag names to keep.
        accounts: Account names to keep.
        limit: Entries requested from the API (default 50, at most 200).
        search: Substring of the description.
        include_summary: Add totals and top categories.
        today: Reference date for range resolution.

    Raises:
        InvalidUsageError: For an unknown *entry_type* or *date_range*.
    """
    if entry_type not in ENTRY_TYPES:
        raise InvalidUsageError(
            f"Invalid entry type '{entry_type}', expected one of: {', '.join(ENTRY_TYPES)}"
        )
    start, end = resolve_date_range(date_range, from_date, to_date, today)
    per_page = min(limit or DEFAULT_LIMIT, MAX_LIMIT)

    entries = client.get_transactions(from_date=start, to_date=end, per_page=per_page)
    category_names = {c.id: c.name for c in client.get_categories()}
    tag_names = {t.id: t.name for t in client.get_tags()}
    account_names = {a.id: a.name for a in client.get_accounts()}

    category_filter = _split_filter(categories)
    tag_filter = _split_filter(tags)
    account_filter = _split_filter(accounts)
    search_term = search.lower() if search else None

    def keep(entry: Transaction) -> bool:
        if entry_type != "all" and entry.kind != entry_type:
            return False
        if category_filter:
            name = category_names.get(entry.category or "", "").lower()
            if not _matches_any(name, category_filter):
                return False
        if tag_filter:
            names = [tag_names.get(tid, "").lower() for tid in entry.tags]
            if not any(_matches_any(name, tag_filter) for name in names):
                return False
        if account_filter:
            name = account_names.get(entry.account, "").lower()
            if not _matches_any(name, account_filter):
                return False
        if search_term and search_term not in (entry.desc or "").lower():
            return False
        return True

    formatted = [
        {
            "id": entry.id,
            "date": entry.date[:10],
            "description": entry.desc or "No description",
            "amount": entry.amount,
            "absAmount": abs(entry.amount),
            "currency": entry.currency.code,
            "type": entry.kind,
            "category": category_names.get(entry.category or "", "Unknown"),
            "tags": [tag_names.get(tid, "Unknown") for tid in entry.tags],
            "account": account_names.get(entry.account, "Unknown"),
            "isRecurring": entry.repeat is not None,
        }
        for entry in entries
        if keep(entry)
    ]

    result: dict[str, Any] = {}
    if include_summary:
        result["summary"] = summarise(formatted, start, end)
    result["entries"] = formatted
    result["_instructions"] = AI_INSTRUCTIONS
    return result


def summarise(entries: list[dict[str, Any]], start: str, end: str) -> dict[str, Any]:
    """Counts, totals, net change and the top categories of formatted entries."""
    expenses = [e for e in entries if e["type"] == "expense"]
    incomes = [e for e in entries if e["type"] == "income"]
    transfers = [e for e in entries if e["type"] == "transfer"]

    total_expenses = sum(e["absAmount"] for e in expenses)
    total_income = sum(e["absAmount"] for e in incomes)

    return {
        "period": f"{start} to {end}",
        "totalEntries": len(entries),
        "expenseCount": len(expenses),
        "incomeCount": len(incomes),
        "transferCount": len(transfers),
        "totalExpenses": total_expenses,
        "totalIncome": total_income,
        "netChange": total_income - total_expenses,
        "topExpenseCategories": _top_categories(expenses),
        "topIncomeCategories": _top_categories(incomes),
    }


def _top_categories(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    totals: dict[str, float] = defaultdict(float)
    for entry in entries:
        totals[entry["category"]] += entry["absAmount"]
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "amount": amount} for name, amount in ranked[:TOP_CATEGORIES]]
