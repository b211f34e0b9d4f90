"""
Command-line entrypoint for the gift card lookup service.

- Parses CLI args and env config into immutable Settings
- Default: serves the FastAPI app under uvicorn
- With --email: runs one lookup against the store and prints the JSON summary

Upstream failures in one-shot mode exit with status 2.
"""
from __future__ import annotations
import asyncio, json, sys
from typing import Optional, Sequence

import httpx
import uvicorn

from http_client import UpstreamRequestError

from .api import ShopifyAdminAPI
from .app import build_http_client, create_app
from .config import Settings, parse_args, settings_from_args
from .pagination import PaginationLimitError
from .pipeline import ValidationError, lookup_gift_cards

def banner(settings: Settings) -> str:
    p = settings.policy
    return f"""
        ====== Gift Card Lookup ======
        Store          : {settings.shop.domain or '(unset)'}
        API version    : {settings.shop.api_version}
        Resolve first  : {settings.resolve_customer_first}
        Scope query    : {settings.scope_query}
        Filters        : balance>0={p.require_balance_positive} disabled={p.exclude_disabled} expired={p.exclude_expired}
        Match          : {p.match_strategy.value}
        Retries        : {settings.retries}
        Timeouts (s)   : connect={settings.connect_timeout} read={settings.read_timeout}
        ==============================
    """

async def run_once(settings: Settings, email: str) -> dict:
    async with build_http_client(settings) as http:
        api = ShopifyAdminAPI(http, settings.shop, page_limit=settings.page_limit, max_pages=settings.max_pages)
        return await lookup_gift_cards(
            api,
            email,
            settings.policy,
            resolve_customer_first=settings.resolve_customer_first,
            scope_query=settings.scope_query,
        )

def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    settings = settings_from_args(args)
    print(banner(settings), file=sys.stderr if args.email is not None else sys.stdout)

    if args.email is None:
        uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
        return

    try:
        summary = asyncio.run(run_once(settings, args.email))
    except ValidationError as e:
        print(f"Validation error: {e}", file=sys.stderr)
        sys.exit(2)
    except UpstreamRequestError as e:
        print(f"Upstream error: {json.dumps(e.to_dict())}", file=sys.stderr)
        sys.exit(2)
    except (PaginationLimitError, httpx.HTTPError) as e:
        print(f"Upstream error: {e!r}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        print("Aborted.", file=sys.stderr)
        sys.exit(130)
    print(json.dumps(summary, indent=2))

if __name__ == "__main__":
    main()
