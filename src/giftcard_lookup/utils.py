from __future__ import annotations
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Union
import re

CENTS = Decimal("0.01")
NEXT_LINK_RE = re.compile(r'<([^>]+)>; rel="next"')
DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

def normalize_email(email: Optional[str]) -> str:
    """Trim and lowercase; None becomes an empty string."""
    return str(email or "").strip().lower()

def parse_decimal(value: Any) -> Decimal:
    """Parse an upstream decimal string; missing, unparsable or non-finite values count as zero."""
    if value is None or value == "":
        return Decimal(0)
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    return d if d.is_finite() else Decimal(0)

def round_currency(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)

def coerce_id(value: Any) -> Optional[Union[int, str]]:
    """
    Coerce an upstream identifier for comparison.
    Integers and digit-only strings compare as int ("555" == 555); anything else as stripped str.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    s = str(value).strip()
    if not s:
        return None
    return int(s) if s.isdigit() else s

def parse_expiry(value: Optional[str]) -> Optional[datetime]:
    """
    Parse `expires_on` into an aware UTC datetime.
    A bare date means midnight UTC of that day. Returns None when absent or unparsable.
    """
    if not value:
        return None
    try:
        if DATE_ONLY_RE.match(value):
            d = date.fromisoformat(value)
            return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)

def next_link(link_header: Optional[str]) -> Optional[str]:
    """First <url> immediately followed by `; rel="next"`, or None."""
    if not link_header:
        return None
    m = NEXT_LINK_RE.search(link_header)
    return m.group(1) if m else None
