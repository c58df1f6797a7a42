"""Repository for per-shop metered usage."""

from __future__ import annotations

import logging

import asyncpg

logger = logging.getLogger(__name__)


class ShopRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def increment_monthly_views(self, shop: str) -> bool:
        """Add one metered view. Returns False when the shop has no usage row."""
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "UPDATE shops SET monthly_views = monthly_views + 1 WHERE shop_domain = $1",
                shop,
            )
            updated = result == "UPDATE 1"
            if not updated:
                logger.warning(f"No usage row for shop {shop}")
            return updated
