"""Canonical Pydantic models shared across all quicktoshl modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`OutputConfig`, :class:`CacheConfig` and
    :class:`GlobalConfig`.

**API models** -- the shapes exchanged with the Toshl API:
    :class:`CurrencyRef`, :class:`Category`, :class:`Tag`, :class:`Account`,
    :class:`Currency`, :class:`Repeat`, :class:`TransferLeg`,
    :class:`Transaction`, :class:`Budget`, and the write payloads
    :class:`TransactionInput` and :class:`TransferInput`.

API models use ``extra="allow"`` so fields the API adds later survive a
round trip through ``model_dump``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every call against the API."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(
        default=0,
        description="Retry attempts on 5xx / network errors (the API is rate limited)",
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class CacheConfig(BaseModel):
    """Reference-data cache settings stored in :class:`GlobalConfig`."""

    force_refresh: bool = Field(
        default=False,
        description="Start every process with an empty reference-data cache",
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/quicktoshl/config.json``.

    Loaded and saved by :func:`~quicktoshl.config.load_global_config` and
    :func:`~quicktoshl.config.save_global_config`. See
    :func:`~quicktoshl.config.resolve_config` for how environment variables
    and CLI flags override these values.
    """

    api_key_source: str = Field(
        default="env:TOSHL_API_KEY",
        description="Credential source for the API key: env:VAR, file:/path, prompt",
    )
    base_url: str = Field(default="https://api.toshl.com")
    default_currency: str = Field(
        default="VND", description="Currency code used when none is given"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


# --- API models ---


class CurrencyRef(BaseModel):
    """A ``{"code": "USD"}`` reference embedded in entries and accounts."""

    model_config = ConfigDict(extra="allow")

    code: str


class Category(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    type: str = "expense"
    deleted: bool = False


class Tag(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    type: str = "expense"
    category: Optional[str] = None
    deleted: bool = False


class Account(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    order: int = 0
    currency: Optional[CurrencyRef] = None
    deleted: bool = False


class Currency(BaseModel):
    """A currency record from ``/currencies``.

    The API returns currencies as an object keyed by ISO code; the code is
    folded into the record as :attr:`code` when the list is built.
    """

    model_config = ConfigDict(extra="allow")

    code: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    precision: Optional[int] = None


class Repeat(BaseModel):
    model_config = ConfigDict(extra="allow")

    frequency: str
    interval: int = 1


class TransferLeg(BaseModel):
    """The receiving side of a transfer entry."""

    model_config = ConfigDict(extra="allow")

    account: str
    currency: Optional[CurrencyRef] = None


class Transaction(BaseModel):
    """A single entry (expense, income, or transfer) from ``/entries``.

    Transfers carry a :attr:`transaction` leg naming the target account;
    expenses have a negative :attr:`amount`, incomes a positive one.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    amount: float
    currency: CurrencyRef
    date: str
    desc: Optional[str] = None
    account: str = ""
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    repeat: Optional[Repeat] = None
    transaction: Optional[TransferLeg] = None
    deleted: bool = False

    @property
    def is_transfer(self) -> bool:
        return self.transaction is not None

    @property
    def kind(self) -> str:
        """``"transfer"``, ``"expense"`` or ``"income"``."""
        if self.is_transfer:
            return "transfer"
        return "expense" if self.amount < 0 else "income"


class Budget(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    amount: Optional[float] = None
    deleted: bool = False


class TransactionInput(BaseModel):
    """Payload for creating or updating an expense or income entry."""

    amount: float
    currency: CurrencyRef
    date: str
    desc: Optional[str] = None
    account: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None


class TransferInput(BaseModel):
    """Payload for creating a transfer between two accounts.

    :attr:`amount` is the outgoing (negative) amount on :attr:`account`.
    """

    amount: float
    currency: CurrencyRef
    date: str
    desc: Optional[str] = None
    account: str
    transaction: TransferLeg
