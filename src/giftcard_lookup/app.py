"""
FastAPI surface for the gift card lookup.

- GET /                 plain-text liveness acknowledgement
- GET /giftcard?email=  JSON balance summary for one shopper

Every failure is turned into a JSON body here, at the route boundary:
ValidationError -> 400, UpstreamRequestError -> upstream status, anything else -> 500.
"""
from __future__ import annotations
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from http_client import HttpClient, UpstreamRequestError

from .api import ShopifyAdminAPI
from .config import Settings
from .pipeline import ValidationError, lookup_gift_cards

def build_http_client(settings: Settings) -> HttpClient:
    return HttpClient(
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
        retries=settings.retries,
        service_name="Shopify",
        default_headers=settings.shop.auth_headers(),
    )

def create_app(
    settings: Settings,
    api: Optional[ShopifyAdminAPI] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build the app. When `api` is given it is used as-is (tests);
    otherwise one shared HttpClient is opened for the app's lifetime.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if api is not None:
            yield
            return
        async with build_http_client(settings) as http:
            app.state.api = ShopifyAdminAPI(
                http, settings.shop, page_limit=settings.page_limit, max_pages=settings.max_pages,
            )
            yield

    app = FastAPI(title="Gift Card Lookup", lifespan=lifespan)
    app.state.api = api
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.get("/", response_class=PlainTextResponse)
    async def home():
        return "Gift Card API Running ✔"

    @app.get("/giftcard")
    async def giftcard(request: Request, email: Optional[str] = None):
        try:
            return await lookup_gift_cards(
                request.app.state.api,
                email,
                settings.policy,
                resolve_customer_first=settings.resolve_customer_first,
                scope_query=settings.scope_query,
                now=clock() if clock else None,
            )
        except ValidationError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except UpstreamRequestError as e:
            print(f"[error] /giftcard upstream HTTP {e.status}: {e.message}", file=sys.stderr)
            return JSONResponse(e.to_dict(), status_code=e.status or 500)
        except Exception as e:
            print(f"[error] /giftcard failed: {e!r}", file=sys.stderr)
            return JSONResponse({"error": str(e) or e.__class__.__name__}, status_code=500)

    return app
