"""
Models for requests and responses to/from the Shopify Admin API and the
public /giftcard endpoint.

Includes:
- GiftCardRaw / GiftCardsPage: upstream /gift_cards.json shapes
- CustomerRaw / CustomersPage: upstream /customers/search.json shapes
- GiftCardRecord: parsed, immutable gift card (Decimal balance)
- CustomerIdentity: resolved upstream customer for one request
- FilterPolicy / MatchStrategy: which cards count as "active"
- AggregationResult: filtered cards + rounded total
- SlimCard / GiftCardSummary: public response shapes
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, TypedDict, List, Optional, Union

from .utils import normalize_email, parse_decimal

CustomerId = Union[int, str]

# GET /admin/api/<ver>/gift_cards.json (items)
class GiftCardRaw(TypedDict, total=False):
    id: int
    balance: str             # decimal string, e.g. "25.00"
    initial_value: str
    currency: str
    customer_id: Optional[int]
    recipient_email: Optional[str]
    disabled_at: Optional[str]
    expires_on: Optional[str]  # YYYY-MM-DD
    created_at: str
    updated_at: str

# GET /admin/api/<ver>/gift_cards.json (page)
class GiftCardsPage(TypedDict):
    gift_cards: List[GiftCardRaw]

# GET /admin/api/<ver>/customers/search.json (items)
class CustomerRaw(TypedDict, total=False):
    id: int
    email: Optional[str]

class CustomersPage(TypedDict):
    customers: List[CustomerRaw]

# GET /giftcard (active_cards items)
class SlimCard(TypedDict):
    id: Any
    balance: str
    initial_value: Optional[str]
    currency: Optional[str]
    customer_id: Optional[CustomerId]
    recipient_email: Optional[str]
    expires_on: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]

# GET /giftcard
class GiftCardSummary(TypedDict):
    email: str
    customer_id: Optional[CustomerId]
    total_balance: float
    active_cards_count: int
    active_cards: List[SlimCard]


@dataclass(frozen=True)
class GiftCardRecord:
    id: Any
    balance: Decimal
    initial_value: Optional[str] = None
    currency: Optional[str] = None
    customer_id: Optional[CustomerId] = None
    recipient_email: Optional[str] = None
    disabled_at: Optional[str] = None
    expires_on: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: GiftCardRaw) -> "GiftCardRecord":
        recipient = raw.get("recipient_email")
        return cls(
            id=raw.get("id"),
            balance=parse_decimal(raw.get("balance")),
            initial_value=raw.get("initial_value"),
            currency=raw.get("currency"),
            customer_id=raw.get("customer_id"),
            recipient_email=normalize_email(recipient) if recipient else None,
            disabled_at=raw.get("disabled_at"),
            expires_on=raw.get("expires_on"),
            created_at=raw.get("created_at"),
            updated_at=raw.get("updated_at"),
        )


@dataclass(frozen=True)
class CustomerIdentity:
    id: CustomerId
    email: str


class MatchStrategy(str, Enum):
    """How a card is tied to the requesting shopper."""

    BY_CUSTOMER_ID_ONLY = "by_customer_id_only"
    BY_CUSTOMER_ID_THEN_RECIPIENT_EMAIL = "by_customer_id_then_recipient_email"
    NONE = "none"


@dataclass(frozen=True)
class FilterPolicy:
    require_balance_positive: bool = True
    exclude_disabled: bool = True
    exclude_expired: bool = True
    match_strategy: MatchStrategy = MatchStrategy.BY_CUSTOMER_ID_THEN_RECIPIENT_EMAIL


@dataclass(frozen=True)
class AggregationResult:
    customer_id: Optional[CustomerId]
    cards: List[GiftCardRecord]
    total_balance: Decimal

    @property
    def count(self) -> int:
        return len(self.cards)
