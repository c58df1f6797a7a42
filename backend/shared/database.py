"""PostgreSQL pool management for the delivery API.

Supabase / PgBouncer connection modes:
  - Session Pooler  (port 5432) : persistent servers, prepared statements allowed
  - Transaction Pooler (port 6543) : no prepared statements, no session state
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)


@dataclass
class PoolConfig:
    """Pool sizing and retry policy."""

    min_size: int = 1
    max_size: int = 10
    timeout: float = 5.0
    command_timeout: float = 15.0
    max_inactive_connection_lifetime: float = 30.0
    max_retries: int = 3
    retry_delay: float = 2.0
    ssl: str | None = "require"


class DatabaseManager:
    """Owns the asyncpg pool; picks pool options from the pooler port."""

    def __init__(self, database_url: str, config: PoolConfig | None = None):
        self.database_url = database_url
        self.config = config or PoolConfig()
        self._pool: asyncpg.Pool | None = None
        self.pooler_mode = "transaction" if ":6543" in database_url else "session"

    def pool_kwargs(self) -> dict[str, Any]:
        cfg = self.config
        kwargs: dict[str, Any] = {
            "dsn": self.database_url,
            "min_size": cfg.min_size,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "max_inactive_connection_lifetime": cfg.max_inactive_connection_lifetime,
            "statement_cache_size": 100,
        }
        if cfg.ssl:
            kwargs["ssl"] = cfg.ssl
        if self.pooler_mode == "transaction":
            # PgBouncer transaction mode: no prepared statements, no idle connections
            kwargs.update(min_size=0, statement_cache_size=0, max_inactive_connection_lifetime=0)
        return kwargs

    async def connect(self) -> None:
        """Create the pool, retrying with exponential backoff."""
        if self._pool is not None:
            logger.warning("Database pool already initialized")
            return

        kwargs = self.pool_kwargs()
        cfg = self.config
        for attempt in range(1, cfg.max_retries + 1):
            try:
                self._pool = await asyncpg.create_pool(**kwargs)
                async with self._pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")
                logger.info(
                    f"Database pool ready (mode={self.pooler_mode}, "
                    f"size={kwargs['min_size']}-{kwargs['max_size']})"
                )
                return
            except Exception as e:
                await self._discard_pool()
                if attempt == cfg.max_retries:
                    logger.exception(
                        f"Database connection failed after {attempt} attempts: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise
                delay = cfg.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Database connection attempt {attempt}/{cfg.max_retries} failed: "
                    f"{type(e).__name__}: {e}, retrying in {delay}s"
                )
                await asyncio.sleep(delay)

    async def _discard_pool(self) -> None:
        if self._pool is None:
            return
        try:
            await self._pool.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing failed pool: {e}")
        self._pool = None

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        try:
            await self._pool.close()
            logger.info("Database pool closed")
        except Exception as e:
            logger.exception(f"Error closing database pool: {e}")
        finally:
            self._pool = None

    async def check_health(self) -> bool:
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire(timeout=2.0) as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception:
            return False

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self._pool
