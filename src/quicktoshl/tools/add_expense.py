"""Record an expense from loosely structured AI tool arguments."""

from __future__ import annotations

from typing import Any, Optional

from quicktoshl.client.toshl import ToshlClient
from quicktoshl.helpers import AI_INSTRUCTIONS, format_display_amount, parse_amount, parse_date
from quicktoshl.models import CurrencyRef, TransactionInput

NO_CATEGORY = "⚠️ No category (use list-categories-tags to get IDs)"


def add_expense(
    client: ToshlClient,
    amount: str,
    description: str,
    category_id: Optional[str] = None,
    tag_ids: Optional[str] = None,
    account_id: Optional[str] = None,
    currency: str = "VND",
    date: Optional[str] = None,
) -> dict[str, Any]:
    """Create an expense entry and describe what was recorded.

    Only expense-typed categories and tags are accepted; unknown ids are
    ignored rather than rejected. Without a matching account the first
    account in display order is used.

    Args:
        client: API client; categories, tags and accounts come from its cache.
        amount: Free-text amount (``"50k"``, ``"3 triệu"``, ``"120000"``).
        description: What the money was spent on.
        category_id: Category id from the category listing.
        tag_ids: Comma-separated tag ids.
        account_id: Account id; defaults to the first account.
        currency: ISO currency code.
        date: ``today``, ``yesterday``, ``DD/MM`` or ``DD/MM/YYYY``.

    Returns:
        A summary dict for the assistant, including the expense categories
        it may choose from next time.
    """
    parsed_amount = parse_amount(amount)
    parsed_date = parse_date(date)

    categories = client.get_categories()
    tags = client.get_tags()
    accounts = client.get_accounts()

    expense_categories = [c for c in categories if c.type == "expense"]
    expense_tags = [t for t in tags if t.type == "expense"]

    matched_category = None
    if category_id:
        matched_category = next((c for c in expense_categories if c.id == category_id), None)

    matched_tags = []
    if tag_ids:
        by_id = {t.id: t for t in expense_tags}
        for tag_id in (part.strip() for part in tag_ids.split(",")):
            if tag_id in by_id:
                matched_tags.append(by_id[tag_id])

    matched_account = None
    if account_id:
        matched_account = next((a for a in accounts if a.id == account_id), None)
    if matched_account is None and accounts:
        matched_account = accounts[0]

    payload = TransactionInput(
        amount=-abs(parsed_amount),
        currency=CurrencyRef(code=currency),
        date=parsed_date,
        desc=description,
        category=matched_category.id if matched_category else None,
        tags=[t.id for t in matched_tags] or None,
        account=matched_account.id if matched_account else None,
    )
    created = client.add_transaction(payload)

    return {
        "success": True,
        "message": f"Đã thêm chi tiêu: {description} - {format_display_amount(parsed_amount, currency)}",
        "transactionId": created.id,
        "date": parsed_date,
        "category": matched_category.name if matched_category else NO_CATEGORY,
        "tags": ", ".join(t.name for t in matched_tags) or "None",
        "account": matched_account.name if matched_account else "Default",
        "availableCategories": [{"id": c.id, "name": c.name} for c in expense_categories],
        "_instructions": AI_INSTRUCTIONS,
    }
