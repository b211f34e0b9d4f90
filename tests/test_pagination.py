import httpx
import pytest
from http_client import UpstreamRequestError
from giftcard_lookup.pagination import PaginationLimitError, walk_pages

SEED = "https://shop.example/admin/api/2024-10/gift_cards.json"

def page_url(info: str) -> str:
    return f"{SEED}?limit=50&page_info={info}"

def link(next_info=None, prev_info=None) -> dict:
    parts = []
    if prev_info:
        parts.append(f'<{page_url(prev_info)}>; rel="previous"')
    if next_info:
        parts.append(f'<{page_url(next_info)}>; rel="next"')
    return {"link": ", ".join(parts)} if parts else {}

class FakeHttp:
    """Stands in for HttpClient: pops one queued response (or error) per request."""
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    async def request(self, method, url, params=None, **kwargs):
        self.calls.append((method, url, params))
        resp = self._responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp

@pytest.mark.asyncio
async def test_walk_follows_next_until_missing():
    http = FakeHttp([
        httpx.Response(200, json={"gift_cards": [{"id": 1}]}, headers=link("p2")),
        httpx.Response(200, json={"gift_cards": [{"id": 2}, {"id": 3}]}, headers=link("p3", "p1")),
        httpx.Response(200, json={"gift_cards": [{"id": 4}]}, headers=link(None, "p2")),
    ])

    pages = [p async for p in walk_pages(http, SEED, params={"query": "email:a@b.com", "limit": 50})]

    assert len(http.calls) == 3
    assert [p.number for p in pages] == [1, 2, 3]
    assert [c["id"] for p in pages for c in p.items("gift_cards")] == [1, 2, 3, 4]
    # seed carries the query params, cursor URLs are followed verbatim
    assert http.calls[0] == ("GET", SEED, {"query": "email:a@b.com", "limit": 50})
    assert http.calls[1] == ("GET", page_url("p2"), None)
    assert http.calls[2] == ("GET", page_url("p3"), None)

@pytest.mark.asyncio
async def test_walk_stops_on_upstream_failure():
    http = FakeHttp([
        httpx.Response(200, json={"gift_cards": [{"id": 1}]}, headers=link("p2")),
        UpstreamRequestError(429, "Too Many Requests", "Shopify request failed"),
        httpx.Response(200, json={"gift_cards": [{"id": 9}]}),
    ])

    seen = []
    with pytest.raises(UpstreamRequestError) as exc:
        async for page in walk_pages(http, SEED):
            seen.append(page.number)

    assert exc.value.status == 429
    assert seen == [1]
    assert len(http.calls) == 2

@pytest.mark.asyncio
async def test_walk_rejects_non_json_body():
    http = FakeHttp([httpx.Response(200, text="<html>maintenance</html>")])

    with pytest.raises(UpstreamRequestError) as exc:
        [p async for p in walk_pages(http, SEED)]

    # a 2xx with an unusable body has no upstream error status; the route falls back to 500
    assert exc.value.status is None
    assert "maintenance" in exc.value.body

@pytest.mark.asyncio
async def test_walk_aborts_after_max_pages():
    # every page points at another one
    http = FakeHttp([
        httpx.Response(200, json={"gift_cards": []}, headers=link(f"p{i}"))
        for i in range(5)
    ])

    with pytest.raises(PaginationLimitError):
        [p async for p in walk_pages(http, SEED, max_pages=3)]

    assert len(http.calls) == 3

@pytest.mark.asyncio
async def test_page_items_ignores_malformed_entries():
    http = FakeHttp([
        httpx.Response(200, json={"gift_cards": {"id": 1}, "customers": [{"id": 7}, None, "x"]}),
    ])

    [page] = [p async for p in walk_pages(http, SEED)]

    assert page.items("gift_cards") == []
    assert page.items("customers") == [{"id": 7}]
    assert page.items("missing") == []
