"""Entry commands: ``recent``, ``search``, ``add-expense``, ``add-transfer``, ``delete``."""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Optional

import typer

from quicktoshl.commands.session import get_config, open_client
from quicktoshl.exceptions import InvalidUsageError
from quicktoshl.helpers import format_number, parse_date
from quicktoshl.models import CurrencyRef, TransferInput, TransferLeg
from quicktoshl.output import KIND_STYLES, emit, info, print_rows, success
from quicktoshl.tools import add_expense, search_entries


def recent_command(
    ctx: typer.Context,
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum number of entries."),
) -> None:
    """Show entries from the last 30 days.

    Example::

        quicktoshl recent --limit 20
    """
    today = date.today()
    with open_client(ctx) as client:
        entries = client.get_transactions(
            from_date=(today - timedelta(days=30)).isoformat(),
            to_date=today.isoformat(),
            per_page=limit,
        )
        category_names = {c.id: c.name for c in client.get_categories()}
        tag_names = {t.id: t.name for t in client.get_tags()}
        account_names = {a.id: a.name for a in client.get_accounts()}

    rows = []
    for entry in entries:
        if entry.is_transfer:
            target = entry.transaction.account if entry.transaction else ""
            detail = (
                f"{account_names.get(entry.account, 'Unknown')} -> "
                f"{account_names.get(target, 'Unknown')}"
            )
            title = entry.desc or "Transfer"
        else:
            detail = category_names.get(entry.category or "", "Unknown Category")
            title = entry.desc or "No Description"
        tags = ", ".join(filter(None, (tag_names.get(t, "") for t in entry.tags)))
        repeat = ""
        if entry.repeat:
            repeat = entry.repeat.frequency
            if entry.repeat.interval > 1:
                repeat += f" every {entry.repeat.interval}"
        rows.append([
            entry.date[:10],
            entry.kind,
            title,
            detail,
            tags,
            f"{format_number(abs(entry.amount))} {entry.currency.code}",
            repeat,
            entry.id,
        ])
    print_rows(
        ["date", "type", "description", "category", "tags", "amount", "repeats", "id"],
        rows,
        title="Recent transactions",
        row_styles=[KIND_STYLES.get(entry.kind) for entry in entries],
    )


def search_command(
    ctx: typer.Context,
    from_date: Optional[str] = typer.Option(None, "--from", help="Start date (YYYY-MM-DD)."),
    to_date: Optional[str] = typer.Option(None, "--to", help="End date (YYYY-MM-DD)."),
    date_range: Optional[str] = typer.Option(
        None, "--range", "-r", help="today, yesterday, this_week, last_week, this_month, "
        "last_month, last_7_days, last_30_days, last_90_days.",
    ),
    entry_type: str = typer.Option("all", "--type", "-t", help="expense, income, transfer or all."),
    categories: Optional[str] = typer.Option(None, "--categories", help="Comma-separated category names."),
    tags: Optional[str] = typer.Option(None, "--tags", help="Comma-separated tag names."),
    accounts: Optional[str] = typer.Option(None, "--accounts", help="Comma-separated account names."),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum entries (default 50, max 200)."),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Text in the description."),
    no_summary: bool = typer.Option(False, "--no-summary", help="Skip the summary block."),
) -> None:
    """Search entries and print the result as structured data.

    Example::

        quicktoshl --json search --range this_month --type expense --categories food
    """
    with open_client(ctx) as client:
        result = search_entries(
            client,
            from_date=from_date,
            to_date=to_date,
            date_range=date_range,
            entry_type=entry_type,
            categories=categories,
            tags=tags,
            accounts=accounts,
            limit=limit,
            search=search,
            include_summary=not no_summary,
        )
    emit(result)


def add_expense_command(
    ctx: typer.Context,
    amount: str = typer.Argument(help="Amount, e.g. 50k, 3tr, 120000."),
    description: str = typer.Argument(help="What the expense was for."),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Category id."),
    tag_ids: Optional[str] = typer.Option(None, "--tags", help="Comma-separated tag ids."),
    account: Optional[str] = typer.Option(None, "--account", "-a", help="Account id."),
    currency: Optional[str] = typer.Option(None, "--currency", help="Currency code."),
    when: Optional[str] = typer.Option(None, "--date", "-d", help="today, yesterday, DD/MM or DD/MM/YYYY."),
) -> None:
    """Record an expense.

    Example::

        quicktoshl add-expense 50k "cơm trưa" --category 123
    """
    config = get_config(ctx)
    with open_client(ctx) as client:
        result = add_expense(
            client,
            amount=amount,
            description=description,
            category_id=category,
            tag_ids=tag_ids,
            account_id=account,
            currency=currency or config.default_currency,
            date=when,
        )
    success(result["message"])
    emit({k: v for k, v in result.items() if not k.startswith("_")})


def add_transfer_command(
    ctx: typer.Context,
    amount: str = typer.Argument(help="Amount moved out of the source account."),
    from_account: str = typer.Option(..., "--from", help="Source account id."),
    to_account: str = typer.Option(..., "--to", help="Target account id."),
    description: Optional[str] = typer.Option(None, "--description", "-m", help="Note for the transfer."),
    currency: Optional[str] = typer.Option(None, "--currency", help="Currency code (default: main currency)."),
    when: Optional[str] = typer.Option(None, "--date", "-d", help="today, yesterday, DD/MM or DD/MM/YYYY."),
) -> None:
    """Move money between two accounts.

    Example::

        quicktoshl add-transfer 200 --from acc-cash --to acc-bank
    """
    try:
        value = float(amount)
    except ValueError:
        raise InvalidUsageError(f"Amount must be a number, got: {amount}") from None
    if not math.isfinite(value):
        raise InvalidUsageError(f"Amount must be a finite number, got: {amount}")
    if from_account == to_account:
        raise InvalidUsageError("From and To accounts must be different")

    with open_client(ctx) as client:
        code = currency or client.get_default_currency()
        payload = TransferInput(
            amount=-abs(value),
            currency=CurrencyRef(code=code),
            date=parse_date(when),
            desc=description,
            account=from_account,
            transaction=TransferLeg(account=to_account, currency=CurrencyRef(code=code)),
        )
        created = client.add_transfer(payload)
    success(f"Transfer added ({created.id})")


def delete_command(
    ctx: typer.Context,
    entry_id: str = typer.Argument(help="Id of the entry to delete."),
    mode: Optional[str] = typer.Option(
        None, "--mode", help="For repeating entries: one, tail or all."
    ),
) -> None:
    """Delete an entry; asks for confirmation unless ``--force`` is set."""
    force = ctx.find_root().ensure_object(dict).get("force", False)
    if not force:
        prompts = {
            "one": "Delete only this occurrence?",
            "tail": "Delete this and all future occurrences?",
            "all": "Delete ALL occurrences (past and future)?",
        }
        question = prompts.get(mode or "", "Are you sure you want to delete this transaction?")
        if not typer.confirm(question):
            info("Cancelled.")
            raise typer.Exit()

    with open_client(ctx) as client:
        client.delete_transaction(entry_id, mode)
    success(f"Deleted {entry_id}")
