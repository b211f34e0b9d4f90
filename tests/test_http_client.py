import types
import httpx
import pytest
from http_client import HttpClient, RetryPolicy, UpstreamRequestError

class FakeResponse:
    def __init__(self, status_code: int, json_data=None, text: str = ""):
        self.status_code = status_code
        self._json = json_data or {}
        self.text = text
        self.request = types.SimpleNamespace()

    def json(self):
        return self._json

class FakeAsyncClient:
    """Returns a sequence of responses (or raises queued exceptions) for each call to request()."""
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    async def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if not self._responses:
            raise RuntimeError("No more fake responses")
        resp = self._responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp

    async def aclose(self):
        pass

def make_client(retries=3, monkeypatch=None):
    hc = HttpClient(connect_timeout=1, read_timeout=1, retries=retries, service_name="Shopify")
    hc.policy = RetryPolicy(retries=retries, backoff_base=0.0, backoff_cap=0.0)
    # Force no waiting at all
    monkeypatch.setattr(hc.policy, "sleep_seconds", lambda attempt: 0)
    return hc

@pytest.mark.asyncio
async def test_http_client_retries_then_succeeds(monkeypatch):
    hc = make_client(monkeypatch=monkeypatch)
    fake = FakeAsyncClient([
        FakeResponse(500),             # triggers retry
        FakeResponse(200, {"ok": 1}),  # success
    ])

    async with hc:
        hc._client = fake
        resp = await hc.request("GET", "https://shop.example/admin/api/2024-10/gift_cards.json")
        assert resp.status_code == 200
        assert resp.json() == {"ok": 1}
        assert len(fake.calls) == 2

@pytest.mark.asyncio
async def test_http_client_does_not_retry_429(monkeypatch):
    hc = make_client(monkeypatch=monkeypatch)
    fake = FakeAsyncClient([FakeResponse(429, text="Exceeded 2 calls per second")])

    async with hc:
        hc._client = fake
        with pytest.raises(UpstreamRequestError) as exc:
            await hc.request("GET", "/gift_cards.json")

    assert len(fake.calls) == 1
    assert exc.value.status == 429
    assert exc.value.to_dict() == {
        "error": "Shopify request failed",
        "status": 429,
        "details": "Exceeded 2 calls per second",
    }

@pytest.mark.asyncio
async def test_http_client_gives_up_with_last_5xx(monkeypatch):
    hc = make_client(retries=2, monkeypatch=monkeypatch)
    fake = FakeAsyncClient([FakeResponse(503, text="busy"), FakeResponse(502, text="bad gateway")])

    async with hc:
        hc._client = fake
        with pytest.raises(UpstreamRequestError) as exc:
            await hc.request("GET", "/gift_cards.json")

    assert len(fake.calls) == 2
    assert exc.value.status == 502
    assert exc.value.body == "bad gateway"

@pytest.mark.asyncio
async def test_http_client_reraises_network_error_after_retries(monkeypatch):
    hc = make_client(retries=2, monkeypatch=monkeypatch)
    fake = FakeAsyncClient([httpx.ConnectError("boom"), httpx.ConnectError("boom again")])

    async with hc:
        hc._client = fake
        with pytest.raises(httpx.ConnectError):
            await hc.request("GET", "/gift_cards.json")

    assert len(fake.calls) == 2

@pytest.mark.asyncio
async def test_http_client_tags_request_id(monkeypatch):
    hc = make_client(monkeypatch=monkeypatch)
    fake = FakeAsyncClient([FakeResponse(200)])

    async with hc:
        hc._client = fake
        await hc.request("GET", "/customers/search.json", req_id="abc123")

    _, _, kwargs = fake.calls[0]
    assert kwargs["headers"]["X-Request-Id"] == "abc123"
