# http_client.py (shared by giftcard_lookup)
from __future__ import annotations
import sys, asyncio, random, uuid
from typing import Any, Dict, Optional
import httpx

class UpstreamRequestError(Exception):
    """Non-success response (or unusable body) from the upstream API."""

    def __init__(self, status: Optional[int], body: str = "", message: str = "Upstream request failed"):
        super().__init__(message)
        self.status = status
        self.body = body
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "status": self.status, "details": self.body}

class RetryPolicy:
    def __init__(
        self,
        retries: int = 3,
        backoff_base: float = 0.25,
        backoff_cap: float = 4.0,
        retry_statuses: set[int] | None = None,
    ):
        self.retries = max(1, retries)
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.retry_statuses = retry_statuses or {500, 502, 503, 504}

    def sleep_seconds(self, attempt: int) -> float:
        # exponential (0.25, 0.5, 1, 2, 4...) + jitter [0..0.5]
        return min(self.backoff_cap, self.backoff_base * (2 ** (attempt - 1))) + random.uniform(0, 0.5)

class HttpClient:
    """
    - Reusable async HTTP client with:
      - optional base_url (absolute URLs pass through untouched)
      - httpx timeouts
      - retry policy (5xx + network)
      - 4xx fail fast, surfaced as UpstreamRequestError
    """

    def __init__(
        self,
        base_url: str = "",
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
        retries: int = 3,
        *,
        service_name: str = "Upstream",
        retry_statuses: Optional[set[int]] = None,
        default_headers: Optional[dict[str, str]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=read_timeout,
            pool=read_timeout,
        )
        self.service_name = service_name
        self.policy = RetryPolicy(retries=retries, retry_statuses=retry_statuses)
        self.default_headers = {"Accept": "application/json", **(default_headers or {})}
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, headers=self.default_headers)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._client is not None:
            await self._client.aclose()

    def _failure(self, resp: httpx.Response) -> UpstreamRequestError:
        return UpstreamRequestError(resp.status_code, resp.text, f"{self.service_name} request failed")

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Generic request with retry logic.
        Retries transient 5xx + network errors; fails fast on 4xx (429 included).
        Each request tagged with X-Request-Id for traceability.
        """
        assert self._client is not None
        last_exc: Exception | None = None

        req_id = kwargs.pop("req_id", str(uuid.uuid4()))
        headers = kwargs.pop("headers", {})
        headers.setdefault("X-Request-Id", req_id)
        kwargs["headers"] = headers

        log_url = url if url.startswith(("http://", "https://")) else self.base_url + url

        for attempt in range(1, self.policy.retries + 1):
            try:
                resp = await self._client.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                last_exc = e
            else:
                status = resp.status_code
                if 200 <= status < 300:
                    if attempt > 1:
                        print(f"[req#{req_id}] succeeded after {attempt} attempt(s)", file=sys.stderr)
                    return resp

                # Transient 5xx: retry while attempts remain
                if status in self.policy.retry_statuses:
                    last_exc = self._failure(resp)
                else:
                    print(f"[req#{req_id}] [fatal] {method} {log_url} returned {status}, not retrying", file=sys.stderr)
                    raise self._failure(resp)

            if attempt < self.policy.retries:
                sleep = self.policy.sleep_seconds(attempt)
                err_kind = f"HTTP {last_exc.status}" if isinstance(last_exc, UpstreamRequestError) else "network"
                print(f"[req#{req_id}] [retry {attempt}/{self.policy.retries}] {method} {log_url} "
                      f"params={kwargs.get('params')} failed: {err_kind}: {last_exc}. "
                      f"Sleeping {sleep:.2f}s", file=sys.stderr)
                await asyncio.sleep(sleep)

        print(f"[req#{req_id}] [giving up] {method} {log_url}: {last_exc}", file=sys.stderr)
        raise last_exc or RuntimeError("request failed")
