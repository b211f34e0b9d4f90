from __future__ import annotations
import argparse, os
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from .models import FilterPolicy, MatchStrategy

def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")

@dataclass(frozen=True)
class ShopConfig:
    domain: str
    access_token: str
    api_version: str

    def admin_url(self, resource: str) -> str:
        return f"https://{self.domain}/admin/api/{self.api_version}/{resource}.json"

    def auth_headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

@dataclass(frozen=True)
class Settings:
    shop: ShopConfig
    policy: FilterPolicy = field(default_factory=FilterPolicy)
    resolve_customer_first: bool = True
    scope_query: bool = True
    host: str = "0.0.0.0"
    port: int = 3000
    retries: int = 3
    connect_timeout: float = 5.0
    read_timeout: float = 30.0
    page_limit: int = 50
    max_pages: int = 250

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Gift card balance lookup service")
    p.add_argument("--shop-domain", default=os.getenv("SHOP_DOMAIN", ""))
    p.add_argument("--access-token", default=os.getenv("SHOP_ACCESS_TOKEN", ""))
    p.add_argument("--api-version", default=os.getenv("API_VERSION", "2024-10"))
    p.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    p.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")))
    p.add_argument("--retries", type=int, default=int(os.getenv("MAX_RETRIES", "3")))
    p.add_argument("--connect-timeout", type=float, default=float(os.getenv("CONNECT_TIMEOUT", "5")))
    p.add_argument("--read-timeout", type=float, default=float(os.getenv("READ_TIMEOUT", "30")))
    p.add_argument("--page-limit", type=int, default=int(os.getenv("PAGE_LIMIT", "50")))
    p.add_argument("--max-pages", type=int, default=int(os.getenv("MAX_PAGES", "250")))
    p.add_argument("--resolve-customer-first", action=argparse.BooleanOptionalAction,
                   default=_env_bool("RESOLVE_CUSTOMER_FIRST", True))
    p.add_argument("--scope-query", action=argparse.BooleanOptionalAction,
                   default=_env_bool("SCOPE_QUERY", True))
    p.add_argument("--require-balance-positive", action=argparse.BooleanOptionalAction,
                   default=_env_bool("REQUIRE_BALANCE_POSITIVE", True))
    p.add_argument("--exclude-disabled", action=argparse.BooleanOptionalAction,
                   default=_env_bool("EXCLUDE_DISABLED", True))
    p.add_argument("--exclude-expired", action=argparse.BooleanOptionalAction,
                   default=_env_bool("EXCLUDE_EXPIRED", True))
    p.add_argument("--match-strategy", choices=[m.value for m in MatchStrategy],
                   default=os.getenv("MATCH_STRATEGY", MatchStrategy.BY_CUSTOMER_ID_THEN_RECIPIENT_EMAIL.value))
    p.add_argument("--email", default=None,
                   help="Look up a single email, print the JSON summary and exit instead of serving")
    return p

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)

def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        shop=ShopConfig(
            domain=args.shop_domain.strip(),
            access_token=args.access_token,
            api_version=args.api_version.strip(),
        ),
        policy=FilterPolicy(
            require_balance_positive=args.require_balance_positive,
            exclude_disabled=args.exclude_disabled,
            exclude_expired=args.exclude_expired,
            match_strategy=MatchStrategy(args.match_strategy),
        ),
        resolve_customer_first=args.resolve_customer_first,
        scope_query=args.scope_query,
        host=args.host,
        port=args.port,
        retries=args.retries,
        connect_timeout=args.connect_timeout,
        read_timeout=args.read_timeout,
        page_limit=args.page_limit,
        max_pages=args.max_pages,
    )

def load_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    return settings_from_args(parse_args(argv))
