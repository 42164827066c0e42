"""Reference-data listings: ``categories``, ``tags``, ``accounts``, ``currencies``.

Each listing reads through the conditional cache, so repeated lookups in
one process cost a 304 at most.
"""

from __future__ import annotations

from typing import Optional

import typer

from quicktoshl.commands.session import open_client
from quicktoshl.output import print_rows


def categories_command(
    ctx: typer.Context,
    kind: Optional[str] = typer.Option(
        None, "--type", "-t", help="Only 'expense' or 'income' categories."
    ),
) -> None:
    """List categories with their ids.

    Example::

        quicktoshl categories --type expense
    """
    with open_client(ctx) as client:
        categories = client.get_categories()
    rows = [[c.id, c.name, c.type] for c in categories if kind is None or c.type == kind]
    print_rows(["id", "name", "type"], rows, title="Categories")


def tags_command(
    ctx: typer.Context,
    kind: Optional[str] = typer.Option(
        None, "--type", "-t", help="Only 'expense' or 'income' tags."
    ),
) -> None:
    """List tags with their ids."""
    with open_client(ctx) as client:
        tags = client.get_tags()
    rows = [[t.id, t.name, t.type] for t in tags if kind is None or t.type == kind]
    print_rows(["id", "name", "type"], rows, title="Tags")


def accounts_command(ctx: typer.Context) -> None:
    """List accounts in display order."""
    with open_client(ctx) as client:
        accounts = client.get_accounts()
    rows = [[a.id, a.name, a.currency.code if a.currency else ""] for a in accounts]
    print_rows(["id", "name", "currency"], rows, title="Accounts")


def currencies_command(ctx: typer.Context) -> None:
    """List supported currencies, marking the default one."""
    with open_client(ctx) as client:
        currencies = client.get_currencies()
        default = client.get_default_currency()
    rows = [
        [c.code, c.name or "", c.symbol or "", "*" if c.code == default else ""]
        for c in sorted(currencies, key=lambda c: c.code)
    ]
    print_rows(["code", "name", "symbol", "default"], rows, title="Currencies")
