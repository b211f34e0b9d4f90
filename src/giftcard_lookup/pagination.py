"""
Cursor walker for Shopify-style paginated REST resources.

Each response carries a `Link` header with comma-separated entries like
`<https://...page_info=abc>; rel="next"`. The walker follows `next` until it
disappears, yielding one parsed page at a time.
"""
from __future__ import annotations
import sys
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from http_client import HttpClient, UpstreamRequestError

from .utils import next_link

DEFAULT_MAX_PAGES = 250

class PaginationLimitError(RuntimeError):
    pass

@dataclass(frozen=True)
class Page:
    number: int
    body: Dict[str, Any]
    headers: httpx.Headers

    def items(self, field: str) -> List[Dict[str, Any]]:
        """Dict entries of a list field; a missing or non-list field reads as empty."""
        value = self.body.get(field)
        if not isinstance(value, list):
            return []
        items = [item for item in value if isinstance(item, dict)]
        if len(items) != len(value):
            print(f"[warn] page {self.number}: dropped {len(value) - len(items)} non-object {field} entries", file=sys.stderr)
        return items

    @property
    def next_url(self) -> Optional[str]:
        return next_link(self.headers.get("link"))

def parse_page(number: int, resp: httpx.Response) -> Page:
    try:
        body = resp.json()
    except ValueError:
        raise UpstreamRequestError(None, resp.text[:500], "Upstream returned non-JSON body")
    if not isinstance(body, dict):
        raise UpstreamRequestError(None, resp.text[:500], "Upstream returned unexpected JSON body")
    return Page(number=number, body=body, headers=resp.headers)

async def walk_pages(
    http: HttpClient,
    seed_url: str,
    params: Optional[Dict[str, Any]] = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> AsyncIterator[Page]:
    """
    GET seed_url (with params), then every `rel="next"` URL in turn.
    Pages are fetched strictly one after another; any upstream failure ends the walk by raising.
    """
    url: Optional[str] = seed_url
    number = 0
    while url:
        number += 1
        if number > max_pages:
            raise PaginationLimitError(f"Pagination exceeded {max_pages} pages at {url}")
        resp = await http.request("GET", url, params=params if number == 1 else None)
        page = parse_page(number, resp)
        yield page
        url = page.next_url
