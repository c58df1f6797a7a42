"""Timer delivery service: selects the timers a storefront visitor sees."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Protocol

from shared.eligibility import filter_eligible
from shared.models.payload import TimerPayload
from shared.models.timer import TimerConfig, TimerKind
from shared.models.visitor import VisitorContext

logger = logging.getLogger(__name__)


class PublishedTimerSource(Protocol):
    async def find_published_active(
        self, shop: str, kind: TimerKind | None = None
    ) -> list[TimerConfig]: ...


def parse_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [s.strip() for s in value.split(",") if s.strip()]


def context_from_query(shop: str, params: Mapping[str, str]) -> VisitorContext:
    """Visitor context from the storefront's delivery query parameters."""
    return VisitorContext.build(
        shop,
        page_type=params.get("pageType", ""),
        product_id=params.get("productId", ""),
        collection_ids=parse_list(params.get("collectionIds")),
        product_tags=parse_list(params.get("productTags")),
        # older storefront scripts send the page URL as "url"
        page_url=params.get("pageUrl") or params.get("url") or "",
        country=params.get("country", ""),
    )


class TimerDeliveryService:
    def __init__(self, timers: PublishedTimerSource) -> None:
        self.timers = timers

    async def eligible_timers(
        self,
        ctx: VisitorContext,
        type_filter: str = "",
        now: datetime | None = None,
    ) -> list[TimerPayload]:
        """Published timers of ``ctx.shop`` that apply to this visitor."""
        now = now or datetime.now(UTC)

        kind: TimerKind | None = None
        if type_filter:
            try:
                kind = TimerKind(type_filter.strip().lower())
            except ValueError:
                logger.debug(f"Unknown timer type filter {type_filter!r} for {ctx.shop}")
                return []

        candidates = await self.timers.find_published_active(ctx.shop, kind)
        eligible = filter_eligible(candidates, ctx, now)
        logger.debug(f"{ctx.shop}: {len(eligible)}/{len(candidates)} timers eligible")
        return [TimerPayload.from_config(timer, now) for timer in eligible]
