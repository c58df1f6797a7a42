"""Decide which configured timers a storefront visitor should see.

The predicates are pure functions of a timer's targeting rules and the
visitor context. The delivery endpoint runs the full pipeline; the storefront
re-runs the product/page predicates on what it receives.

Unrecognised page/product modes pass. Mode strings are validated into closed
enumerations when records are loaded (``TimerConfig.from_record``), so the
fallthrough only matters for enumeration members added later.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from shared.models.timer import (
    ExpiryPolicy,
    Geolocation,
    PageSelection,
    ProductSelection,
    Targeting,
    TimerConfig,
    TimerKind,
)
from shared.models.visitor import VisitorContext

logger = logging.getLogger(__name__)

# Page selection modes that require an exact page type
_PAGE_TYPE_FOR_MODE = {
    PageSelection.HOME: "home",
    PageSelection.ALL_PRODUCTS: "product",
    PageSelection.ALL_COLLECTIONS: "collection",
    PageSelection.CART: "cart",
}


def matches_geo(targeting: Targeting, country: str) -> bool:
    if targeting.geolocation is Geolocation.ALL_WORLD:
        return True
    if targeting.geolocation is Geolocation.SPECIFIC_COUNTRIES:
        if not country:
            return False
        return country.upper() in {c.upper() for c in targeting.countries}
    return True


def matches_specific_pages(page_url: str, specific_pages: Iterable[str]) -> bool:
    """Exact or prefix URL match, case-insensitive. No pages configured means no match."""
    url = page_url.lower()
    pages = [p.lower() for p in specific_pages if p]
    if not pages:
        return False
    return any(url == p or url.startswith(p) for p in pages)


def matches_page_selection(targeting: Targeting, page_type: str, page_url: str) -> bool:
    mode = targeting.page_selection
    if mode is None or mode is PageSelection.EVERY_PAGE:
        return True
    if mode in _PAGE_TYPE_FOR_MODE:
        return page_type == _PAGE_TYPE_FOR_MODE[mode]
    if mode.is_specific:
        return matches_specific_pages(page_url, targeting.specific_pages)
    if mode is PageSelection.CUSTOM:
        # Placement enforced by the theme block, not here
        return True
    return True


def matches_product_selection(targeting: Targeting, ctx: VisitorContext) -> bool:
    product_id = ctx.product_id
    if product_id and product_id in targeting.excluded_products:
        return False

    match targeting.product_selection:
        case ProductSelection.ALL:
            return True
        case ProductSelection.SPECIFIC:
            return bool(product_id) and product_id in targeting.selected_products
        case ProductSelection.COLLECTIONS:
            visitor_collections = set(ctx.collection_ids)
            return any(cid in visitor_collections for cid in targeting.selected_collections)
        case ProductSelection.TAGS:
            visitor_tags = {t.lower() for t in ctx.product_tags}
            return any(tag.lower() in visitor_tags for tag in targeting.product_tags)
        case ProductSelection.CUSTOM:
            return True
        case _:
            return True


def rejection_reason(timer: TimerConfig, ctx: VisitorContext, now: datetime) -> str | None:
    """Return why *timer* is not shown to *ctx*, or ``None`` if it is eligible.

    Checks run in a fixed order and stop at the first failure.
    """
    if not timer.has_started(now):
        return "not started"

    if timer.is_ended(now) and timer.on_expiry in (ExpiryPolicy.UNPUBLISH, ExpiryPolicy.HIDE):
        return "ended"

    targeting = timer.targeting
    if not matches_geo(targeting, ctx.country):
        return "geolocation"

    if timer.kind is TimerKind.BAR and not matches_page_selection(
        targeting, ctx.page_type, ctx.page_url
    ):
        return "page selection"

    if not matches_product_selection(targeting, ctx):
        return "product selection"

    return None


def filter_eligible(
    candidates: Iterable[TimerConfig], ctx: VisitorContext, now: datetime
) -> list[TimerConfig]:
    """Subset of *candidates* to deliver to *ctx*, order preserved."""
    eligible: list[TimerConfig] = []
    for timer in candidates:
        reason = rejection_reason(timer, ctx, now)
        if reason is None:
            eligible.append(timer)
        else:
            logger.debug(f"Timer {timer.id} filtered for {ctx.shop}: {reason}")
    return eligible
