"""In-memory stand-ins for the asyncpg repositories and the proxy client."""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import urlencode

from api.services.proxy_auth import compute_signature
from shared.models.payload import TimerPayload
from shared.models.timer import Targeting, TimerConfig, TimerKind, TimingMode
from shared.models.visitor import TimerView, VisitorContext

SHOP = "demo.myshop.test"
SECRET = "test-proxy-secret"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def make_timer(**overrides: Any) -> TimerConfig:
    values: dict[str, Any] = {
        "id": "t1",
        "shop": SHOP,
        "kind": TimerKind.PRODUCT,
        "title": "Sale ends soon",
        "timing_mode": TimingMode.DEADLINE,
        "end_date": NOW + timedelta(hours=1),
        "is_published": True,
        "is_active": True,
    }
    targeting = overrides.pop("targeting", None)
    values.update(overrides)
    timer = TimerConfig(**values)
    if targeting is not None:
        timer = replace(timer, targeting=targeting)
    return timer


def targeting(**fields: Any) -> Targeting:
    return Targeting(**fields)


def make_ctx(**fields: Any) -> VisitorContext:
    fields.setdefault("page_type", "home")
    return VisitorContext.build(fields.pop("shop", SHOP), **fields)


def payload(timer: TimerConfig, now: datetime = NOW) -> TimerPayload:
    return TimerPayload.from_config(timer, now)


def signed_query(params: dict[str, str] | list[tuple[str, str]], secret: str = SECRET) -> str:
    """Query string with an app proxy signature appended."""
    pairs = list(params.items()) if isinstance(params, dict) else list(params)
    query = urlencode(pairs)
    return f"{query}&signature={compute_signature(query, secret)}"


def mock_pool(conn: MagicMock) -> MagicMock:
    """asyncpg-like pool whose ``acquire()`` yields *conn*."""
    acquire = MagicMock()
    acquire.__aenter__ = AsyncMock(return_value=conn)
    acquire.__aexit__ = AsyncMock(return_value=False)
    pool = MagicMock()
    pool.acquire.return_value = acquire
    return pool


class FakeTimerStore:
    def __init__(self, timers: list[TimerConfig] | None = None) -> None:
        self.timers = list(timers or [])
        self.view_counts: Counter[str] = Counter()
        self.fail = False
        self.fail_increment = False

    async def find_published_active(
        self, shop: str, kind: TimerKind | None = None
    ) -> list[TimerConfig]:
        if self.fail:
            raise ConnectionError("database unavailable")
        return [
            t
            for t in self.timers
            if t.shop == shop and t.is_published and t.is_active and (kind is None or t.kind is kind)
        ]

    async def find_by_id_and_shop(self, timer_id: str, shop: str) -> TimerConfig | None:
        return next((t for t in self.timers if t.id == timer_id and t.shop == shop), None)

    async def increment_view_count(self, timer_id: str) -> None:
        if self.fail_increment:
            raise ConnectionError("could not update view_count on 10.0.0.5:5432")
        self.view_counts[timer_id] += 1


class FakeViewSink:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.views: list[TimerView] = []

    async def create(self, view: TimerView) -> str:
        if self.fail:
            raise ConnectionError("insert into timer_views failed on 10.0.0.5:5432")
        self.views.append(view)
        return f"view-{len(self.views)}"


class FakeUsage:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    async def increment_monthly_views(self, shop: str) -> bool:
        self.calls.append(shop)
        if self.fail:
            raise ConnectionError("usage table locked")
        return True


class FakeProxyClient:
    """Records calls instead of talking HTTP."""

    def __init__(self, timers: list[TimerPayload] | None = None) -> None:
        self.timers = list(timers or [])
        self.fetches: list[VisitorContext] = []
        self.views: list[tuple[VisitorContext, str]] = []

    async def fetch_timers(self, ctx: VisitorContext) -> list[TimerPayload]:
        self.fetches.append(ctx)
        return self.timers

    async def track_view(self, ctx: VisitorContext, timer: TimerPayload) -> bool:
        self.views.append((ctx, timer.id))
        return True


class FakeClock:
    """Callable ``now`` that tests move forward by hand."""

    def __init__(self, start: datetime = NOW) -> None:
        self.value = start

    def __call__(self) -> datetime:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += timedelta(seconds=seconds)
