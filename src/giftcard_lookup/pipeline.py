from __future__ import annotations
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from .api import ShopifyAdminAPI
from .models import (
    AggregationResult, CustomerId, CustomerIdentity, FilterPolicy, GiftCardRecord,
    GiftCardSummary, MatchStrategy, SlimCard,
)
from .utils import coerce_id, normalize_email, parse_expiry, round_currency

class ValidationError(ValueError):
    pass

async def resolve_customer_id(api: ShopifyAdminAPI, email: str) -> Optional[CustomerIdentity]:
    """Exact-match customer search (limit 1). None when the store has no such customer."""
    customers = await api.search_customers(email, limit=1)
    if not customers or customers[0].get("id") is None:
        return None
    return CustomerIdentity(id=customers[0]["id"], email=email)

async def fetch_all_gift_cards(api: ShopifyAdminAPI, email: str, scope_query: bool = True) -> List[GiftCardRecord]:
    """
    Walk every page of gift cards and parse them.
    With scope_query the upstream search is narrowed to `email:<address>`.
    """
    raw = await api.list_gift_cards(f"email:{email}" if scope_query else None)
    return [GiftCardRecord.from_raw(r) for r in raw]

def is_active(card: GiftCardRecord, policy: FilterPolicy, now: datetime) -> bool:
    if policy.require_balance_positive and not card.balance > 0:
        return False
    if policy.exclude_disabled and card.disabled_at:
        return False
    if policy.exclude_expired:
        expires = parse_expiry(card.expires_on)
        if expires is not None and expires < now:
            return False
    return True

def matches_owner(card: GiftCardRecord, customer_id: Optional[CustomerId], email: str, strategy: MatchStrategy) -> bool:
    if strategy is MatchStrategy.NONE:
        return True
    wanted = coerce_id(customer_id)
    if wanted is not None and coerce_id(card.customer_id) == wanted:
        return True
    if strategy is MatchStrategy.BY_CUSTOMER_ID_THEN_RECIPIENT_EMAIL:
        return bool(email) and card.recipient_email == email
    return False

def first_customer_id(cards: Iterable[GiftCardRecord]) -> Optional[CustomerId]:
    return next((c.customer_id for c in cards if c.customer_id is not None), None)

def aggregate(
    records: List[GiftCardRecord],
    customer_id: Optional[CustomerId],
    email: str,
    policy: FilterPolicy,
    now: Optional[datetime] = None,
) -> AggregationResult:
    """
    Apply the balance/disabled/expiry filters, then ownership matching.
    The total is summed over exactly the surviving cards and rounded to cents.
    """
    now = now or datetime.now(tz=timezone.utc)
    active = [c for c in records if is_active(c, policy, now)]
    owned = [c for c in active if matches_owner(c, customer_id, email, policy.match_strategy)]
    total = sum((c.balance for c in owned), Decimal(0))
    return AggregationResult(customer_id=customer_id, cards=owned, total_balance=round_currency(total))

def project_card(card: GiftCardRecord) -> SlimCard:
    return {
        "id": card.id,
        "balance": str(round_currency(card.balance)),
        "initial_value": card.initial_value,
        "currency": card.currency,
        "customer_id": card.customer_id,
        "recipient_email": card.recipient_email,
        "expires_on": card.expires_on,
        "created_at": card.created_at,
        "updated_at": card.updated_at,
    }

def build_summary(email: str, result: AggregationResult) -> GiftCardSummary:
    cards = [project_card(c) for c in result.cards]
    return {
        "email": email,
        "customer_id": result.customer_id,
        "total_balance": float(result.total_balance),
        "active_cards_count": len(cards),
        "active_cards": cards,
    }

async def lookup_gift_cards(
    api: ShopifyAdminAPI,
    raw_email: Optional[str],
    policy: FilterPolicy,
    *,
    resolve_customer_first: bool = True,
    scope_query: bool = True,
    now: Optional[datetime] = None,
) -> GiftCardSummary:
    """
    Orchestrate one lookup:
        1. Normalize + validate the email
        2. Resolve the customer (optional)
        3. Walk all gift card pages
        4. Filter, match and sum
        5. Project the public summary
    """
    email = normalize_email(raw_email)
    if not email:
        raise ValidationError("Email missing")

    customer_id: Optional[CustomerId] = None
    if resolve_customer_first:
        identity = await resolve_customer_id(api, email)
        customer_id = identity.id if identity else None
        if identity is None:
            print(f"[warn] no customer found for {email}", file=sys.stderr)

    records = await fetch_all_gift_cards(api, email, scope_query=scope_query)

    if not resolve_customer_first:
        now = now or datetime.now(tz=timezone.utc)
        active = [c for c in records if is_active(c, policy, now)]
        customer_id = first_customer_id(active)
        if customer_id is None:
            customer_id = first_customer_id(records)

    result = aggregate(records, customer_id, email, policy, now)
    print(f"[lookup] {email}: {len(records)} card(s) fetched, {result.count} active, total={result.total_balance}",
          file=sys.stderr)
    return build_summary(email, result)
