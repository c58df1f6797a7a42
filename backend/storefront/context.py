"""Work out who is looking at which storefront page."""

from __future__ import annotations

import re
from typing import Any

from shared.models.visitor import VisitorContext
from storefront.dom import Element, StorefrontPage

ROOT_CLASS = "urgency-timer-root"

_COLLECTION_RE = re.compile(r"/collections/([^/?]+)")


def _lookup(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def detect_page_type(page: StorefrontPage, root: Element | None) -> str:
    url = page.url.lower()
    if root is not None and root.data("product-id"):
        return "product"
    if "/cart" in url:
        return "cart"
    if url == page.origin.lower() + "/" or url.endswith("/home") or url.endswith("/index"):
        return "home"
    return "page"


def extract_country(page: StorefrontPage) -> str:
    country = _lookup(page.globals, "Shopify", "country")
    if isinstance(country, str) and country:
        return country.upper()
    return page.meta.get("shopify-country-code", "").upper()


def extract_collection_ids(page: StorefrontPage) -> list[str]:
    meta_page = _lookup(page.globals, "ShopifyAnalytics", "meta", "page") or {}
    if meta_page.get("resourceType") == "collection" and meta_page.get("resourceId"):
        return [str(meta_page["resourceId"])]

    match = _COLLECTION_RE.search(page.meta.get("og:url", ""))
    if match:
        return [match.group(1)]
    return []


def extract_product_tags(page: StorefrontPage) -> list[str]:
    tags = _lookup(page.globals, "ShopifyAnalytics", "meta", "product", "tags")
    if isinstance(tags, list):
        return [str(t).lower() for t in tags]

    keywords = page.meta.get("keywords", "")
    return [t.strip().lower() for t in keywords.split(",") if t.strip()]


def detect_context(page: StorefrontPage) -> VisitorContext:
    """Context from the first timer anchor, falling back to page globals."""
    root = page.body.find(ROOT_CLASS)
    shop = root.data("shop-domain") if root is not None else ""
    if not shop:
        shop = str(_lookup(page.globals, "Shopify", "shop") or "")

    return VisitorContext.build(
        shop,
        page_type=detect_page_type(page, root),
        product_id=root.data("product-id") if root is not None else "",
        timer_id=root.data("timer-id") if root is not None else "",
        collection_ids=extract_collection_ids(page),
        product_tags=extract_product_tags(page),
        page_url=page.url,
        country=extract_country(page),
    )
