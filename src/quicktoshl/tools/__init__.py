"""Operations exposed to AI assistants.

Each tool takes a :class:`~quicktoshl.client.toshl.ToshlClient` plus loosely
typed arguments and returns a JSON-serialisable dict that ends with
``_instructions`` telling the assistant how to phrase its answer.
"""

from quicktoshl.tools.add_expense import add_expense
from quicktoshl.tools.search_entries import search_entries

__all__ = ["add_expense", "search_entries"]
