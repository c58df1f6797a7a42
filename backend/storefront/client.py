"""HTTP client for the app proxy endpoints, as used by the storefront.

Failures never reach the page: a failed or malformed fetch means "no timers"
and a failed view beacon is only logged.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from pydantic import ValidationError

from shared.models.payload import TimerPayload
from shared.models.visitor import VisitorContext

logger = logging.getLogger(__name__)

DEFAULT_TIMERS_ENDPOINT = "/apps/urgency-timer/timers"
DEFAULT_VIEWS_ENDPOINT = "/apps/urgency-timer/views"


def build_query(ctx: VisitorContext) -> dict[str, str]:
    params: dict[str, str] = {}
    if ctx.shop:
        params["shop"] = ctx.shop
    if ctx.page_type:
        params["pageType"] = ctx.page_type
    if ctx.page_url:
        params["pageUrl"] = ctx.page_url
    if ctx.product_id:
        params["productId"] = ctx.product_id
    if ctx.country:
        params["country"] = ctx.country
    if ctx.collection_ids:
        params["collectionIds"] = ",".join(ctx.collection_ids)
    if ctx.product_tags:
        params["productTags"] = ",".join(ctx.product_tags)
    return params


def parse_timers(data: object) -> list[TimerPayload]:
    """Valid timers from a response body; invalid entries are skipped."""
    raw = data.get("timers") if isinstance(data, dict) else None
    if not isinstance(raw, list):
        logger.debug("Malformed timers response, treating as empty")
        return []

    timers: list[TimerPayload] = []
    for item in raw:
        try:
            timers.append(TimerPayload.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping malformed timer payload: {e.error_count()} error(s)")
    return timers


class TimerProxyClient:
    """Fetches timers once per page load and reports views."""

    def __init__(
        self,
        base_url: str = "",
        *,
        timers_endpoint: str = DEFAULT_TIMERS_ENDPOINT,
        views_endpoint: str = DEFAULT_VIEWS_ENDPOINT,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.timers_endpoint = timers_endpoint
        self.views_endpoint = views_endpoint
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=10.0)
        self._timers: list[TimerPayload] | None = None
        self._fetch_lock = asyncio.Lock()

    async def close(self) -> None:
        await self._http.aclose()

    async def fetch_timers(self, ctx: VisitorContext) -> list[TimerPayload]:
        async with self._fetch_lock:
            if self._timers is None:
                self._timers = await self._fetch(ctx)
            return self._timers

    async def _fetch(self, ctx: VisitorContext) -> list[TimerPayload]:
        logger.debug(f"Fetching timers from {self.timers_endpoint} for {ctx.shop}")
        try:
            response = await self._http.get(self.timers_endpoint, params=build_query(ctx))
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Fetch error: {type(e).__name__}: {e}")
            return []

        timers = parse_timers(data)
        logger.debug(f"Fetched {len(timers)} timer(s)")
        return timers

    async def track_view(self, ctx: VisitorContext, timer: TimerPayload) -> bool:
        payload = {
            "shop": ctx.shop,
            "timerId": timer.id,
            "pageUrl": ctx.page_url,
            "pageType": ctx.page_type,
        }
        if ctx.product_id:
            payload["productId"] = ctx.product_id
        if ctx.country:
            payload["country"] = ctx.country

        try:
            response = await self._http.post(self.views_endpoint, json=payload)
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.debug(f"Track view error for timer {timer.id}: {type(e).__name__}: {e}")
            return False
