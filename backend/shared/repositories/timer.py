"""Repository for the timers table (read side used by the storefront)."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import asyncpg

from shared.cache import AsyncTTLCache, cached
from shared.models.timer import TimerConfig, TimerKind

logger = logging.getLogger(__name__)

_published_cache = AsyncTTLCache(maxsize=512, ttl=30)

_COLUMNS = (
    "id, shop, name, type, title, subheading, timer_type, end_date, fixed_minutes, "
    "days_label, hours_label, minutes_label, seconds_label, starts_at, on_expiry, "
    "cta_type, button_text, button_link, design_config, product_selection, "
    "selected_products, selected_collections, excluded_products, product_tags, "
    "page_selection, specific_pages, geolocation, countries, is_published, is_active, "
    "view_count, created_at, updated_at"
)


def _cache_key(shop: str, kind: TimerKind | None = None) -> str:
    return f"published:{shop}:{kind.value if kind else '*'}"


def configs_from_rows(rows: Iterable[Mapping[str, Any]]) -> list[TimerConfig]:
    """Convert rows, dropping (and logging) records with invalid configuration."""
    configs: list[TimerConfig] = []
    for row in rows:
        try:
            configs.append(TimerConfig.from_record(row))
        except (ValueError, KeyError) as e:
            logger.error(f"Skipping timer {row.get('id')} of {row.get('shop')}: {e}")
    return configs


class TimerRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    @cached(
        cache=_published_cache,
        key_func=lambda self, shop, kind=None: _cache_key(shop, kind),
    )
    async def find_published_active(
        self, shop: str, kind: TimerKind | None = None
    ) -> list[TimerConfig]:
        """Published, active timers of a shop, newest first."""
        async with self.pool.acquire() as conn:
            if kind is None:
                rows = await conn.fetch(
                    f"SELECT {_COLUMNS} FROM timers "
                    "WHERE shop = $1 AND is_published = TRUE AND is_active = TRUE "
                    "ORDER BY created_at DESC",
                    shop,
                )
            else:
                rows = await conn.fetch(
                    f"SELECT {_COLUMNS} FROM timers "
                    "WHERE shop = $1 AND is_published = TRUE AND is_active = TRUE "
                    "AND type = $2 ORDER BY created_at DESC",
                    shop,
                    kind.value,
                )
            return configs_from_rows(dict(row) for row in rows)

    async def find_by_id_and_shop(self, timer_id: str, shop: str) -> TimerConfig | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM timers WHERE id = $1 AND shop = $2",
                timer_id,
                shop,
            )
        if row is None:
            return None
        configs = configs_from_rows([dict(row)])
        return configs[0] if configs else None

    async def increment_view_count(self, timer_id: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                "UPDATE timers SET view_count = view_count + 1 WHERE id = $1", timer_id
            )
