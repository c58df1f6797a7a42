"""Repository for the timer_views telemetry table."""

from __future__ import annotations

import asyncpg

from shared.models.visitor import TimerView


class TimerViewRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def create(self, view: TimerView) -> str:
        """Insert one view row. Returns the generated id."""
        async with self.pool.acquire() as conn:
            view_id = await conn.fetchval(
                """
                INSERT INTO timer_views
                    (timer_id, shop, visitor_id, ip_address, user_agent,
                     country, page_url, page_type, product_id)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                RETURNING id
                """,
                view.timer_id,
                view.shop,
                view.visitor_id,
                view.ip_address,
                view.user_agent,
                view.country,
                view.page_url,
                view.page_type,
                view.product_id,
            )
            if view_id is None:
                raise ValueError("Failed to record view: no ID returned")
            return str(view_id)
