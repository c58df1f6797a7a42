"""Apply the SQL files in ``versions/`` once each, in filename order."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"


def pending_versions(migrations_dir: Path, applied: set[str]) -> list[Path]:
    """SQL files not yet recorded as applied. ``NNN_`` prefixes give the order."""
    return [p for p in sorted(migrations_dir.glob("*.sql")) if p.stem not in applied]


class MigrationRunner:
    """Tracks applied versions in ``schema_migrations``."""

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def ensure_table(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    name       TEXT NOT NULL,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )

    async def get_applied(self) -> set[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"SELECT version FROM {self.TRACKING_TABLE}")  # noqa: S608
            return {row["version"] for row in rows}

    async def run_pending(self, migrations_dir: Path | None = None) -> list[str]:
        """Apply every pending migration. Returns the versions applied."""
        await self.ensure_table()
        todo = pending_versions(migrations_dir or VERSIONS_DIR, await self.get_applied())
        if not todo:
            logger.info("Database schema is up to date")
            return []

        for sql_path in todo:
            await self._apply_one(sql_path)

        applied = [p.stem for p in todo]
        logger.info(f"Applied {len(applied)} migration(s): {', '.join(applied)}")
        return applied

    async def _apply_one(self, sql_path: Path) -> None:
        version = sql_path.stem
        logger.info(f"Applying migration {version}")
        sql = sql_path.read_text(encoding="utf-8")
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(sql)
                await conn.execute(
                    f"INSERT INTO {self.TRACKING_TABLE} (version, name) VALUES ($1, $2)",
                    version,
                    sql_path.name,
                )
