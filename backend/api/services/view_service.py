"""View telemetry service: records storefront impressions of a timer."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from shared.errors import MissingFieldError, TimerNotFoundError
from shared.models.timer import TimerConfig
from shared.models.visitor import TimerView

logger = logging.getLogger(__name__)

_COUNTRY_HEADERS = (
    "cf-ipcountry",
    "x-country-code",
    "x-vercel-ip-country",
    "fly-client-ip-country",
    "x-geo-country",
)
_CLIENT_IP_HEADERS = (
    "cf-connecting-ip",
    "x-real-ip",
    "x-vercel-forwarded-for",
    "fly-client-ip",
)


class OwnedTimerSource(Protocol):
    async def find_by_id_and_shop(self, timer_id: str, shop: str) -> TimerConfig | None: ...

    async def increment_view_count(self, timer_id: str) -> None: ...


class ViewSink(Protocol):
    async def create(self, view: TimerView) -> str: ...


class UsageMeter(Protocol):
    async def increment_monthly_views(self, shop: str) -> bool: ...


def safe_string(value: Any, max_len: int) -> str | None:
    """Trimmed, length-capped string, or None for non-strings and blanks."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    return value[:max_len]


def client_ip(headers: Mapping[str, str]) -> str | None:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    for name in _CLIENT_IP_HEADERS:
        if headers.get(name):
            return headers[name]
    return None


def header_country(headers: Mapping[str, str]) -> str | None:
    for name in _COUNTRY_HEADERS:
        if headers.get(name):
            return safe_string(headers[name], 8)
    return None


def build_view(shop: str, payload: Mapping[str, Any], headers: Mapping[str, str]) -> TimerView:
    """Validate a view-record body. ``timerId`` is required."""
    raw_id = payload.get("timerId")
    timer_id = str(raw_id).strip() if raw_id is not None else ""
    if not timer_id:
        raise MissingFieldError("timerId")

    page_type = safe_string(payload.get("pageType"), 64)
    country = safe_string(payload.get("country"), 8) or header_country(headers)
    return TimerView(
        timer_id=timer_id,
        shop=shop,
        visitor_id=safe_string(payload.get("visitorId"), 128),
        ip_address=client_ip(headers),
        user_agent=safe_string(headers.get("user-agent"), 1024),
        country=country.upper() if country else None,
        page_url=safe_string(payload.get("pageUrl"), 2048),
        page_type=page_type.lower() if page_type else None,
        product_id=safe_string(payload.get("productId"), 128),
    )


class ViewService:
    """Persists a view, bumps the timer's counter and the shop's metered usage.

    Every call records a new row; deduplication is left to consumers of the data.
    """

    def __init__(self, timers: OwnedTimerSource, views: ViewSink, usage: UsageMeter) -> None:
        self.timers = timers
        self.views = views
        self.usage = usage

    async def record(self, view: TimerView) -> str:
        timer = await self.timers.find_by_id_and_shop(view.timer_id, view.shop)
        if timer is None:
            raise TimerNotFoundError(view.timer_id, view.shop)

        view_id = await self.views.create(view)
        await self.timers.increment_view_count(view.timer_id)

        try:
            await self.usage.increment_monthly_views(view.shop)
        except Exception as e:
            # Metered usage is best-effort; the view itself is already stored
            logger.warning(f"Usage increment failed for {view.shop}: {type(e).__name__}: {e}")

        return view_id
