"""
Async API wrapper around the Shopify Admin REST endpoints this service needs.

Provides a typed interface for:
- Exact-match customer search by email (`search_customers`)
- Walking paginated gift cards, optionally scoped by email (`gift_card_pages`)
- Collecting every gift card across pages (`list_gift_cards`)

Store domain, token and API version come from an immutable `ShopConfig`
handed over at construction.
"""
from __future__ import annotations
import sys
from typing import Any, AsyncIterator, Dict, List, Optional

from http_client import HttpClient, UpstreamRequestError

from .config import ShopConfig
from .models import CustomerRaw, GiftCardRaw
from .pagination import DEFAULT_MAX_PAGES, Page, parse_page, walk_pages

class ShopifyAdminAPI:

    def __init__(self, http: HttpClient, shop: ShopConfig, *, page_limit: int = 50, max_pages: int = DEFAULT_MAX_PAGES):
        self.http = http
        self.shop = shop
        self.page_limit = max(1, min(250, page_limit))
        self.max_pages = max_pages

    async def search_customers(self, email: str, limit: int = 1) -> List[CustomerRaw]:
        url = self.shop.admin_url("customers/search")
        resp = await self.http.request("GET", url, params={"query": f"email:{email}", "limit": limit})
        return parse_page(1, resp).items("customers")

    def gift_card_pages(self, query: Optional[str] = None) -> AsyncIterator[Page]:
        params: Dict[str, Any] = {"limit": self.page_limit}
        if query:
            params = {"query": query, **params}
        return walk_pages(self.http, self.shop.admin_url("gift_cards"), params=params, max_pages=self.max_pages)

    async def list_gift_cards(self, query: Optional[str] = None) -> List[GiftCardRaw]:
        cards: List[GiftCardRaw] = []
        pages = 0
        try:
            async for page in self.gift_card_pages(query):
                pages += 1
                cards.extend(page.items("gift_cards"))
        except UpstreamRequestError as e:
            print(f"[warn] gift card walk aborted on page {pages + 1}: HTTP {e.status}", file=sys.stderr)
            raise
        return cards
