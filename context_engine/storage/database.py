"""SQLite connection pool and schema for the reference datastore."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional

import aiosqlite
import structlog

logger = structlog.get_logger()

SCHEMA = """
CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    user_id TEXT,
    content TEXT NOT NULL,
    content_embedding TEXT,
    memory_type TEXT NOT NULL DEFAULT 'fact',
    importance_score REAL NOT NULL DEFAULT 0.5,
    metadata_json TEXT,
    created_at TEXT,
    last_accessed_at TEXT,
    access_count INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_memories_org_user
    ON memories (organization_id, user_id);
CREATE INDEX IF NOT EXISTS idx_memories_org_created
    ON memories (organization_id, created_at);

CREATE TABLE IF NOT EXISTS subscription_plans (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    features_json TEXT,
    is_active INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS organization_subscriptions (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    subscription_plan_id TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_org_subscriptions_org
    ON organization_subscriptions (organization_id, status);

CREATE TABLE IF NOT EXISTS ai_agent_settings (
    organization_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    setting_key TEXT NOT NULL,
    setting_value TEXT,
    PRIMARY KEY (organization_id, user_id, setting_key)
);

CREATE TABLE IF NOT EXISTS memory_access (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    memory_id TEXT NOT NULL,
    organization_id TEXT NOT NULL,
    user_id TEXT,
    access_time TEXT NOT NULL,
    access_context TEXT NOT NULL,
    query TEXT
);

CREATE INDEX IF NOT EXISTS idx_memory_access_memory
    ON memory_access (organization_id, memory_id, access_time);
"""


def _path_from_url(database_url: str) -> str:
    """Turn ``sqlite:///path/to.db`` into a filesystem path."""
    prefix = "sqlite:///"
    if database_url.startswith(prefix):
        return database_url[len(prefix):]
    if "://" in database_url:
        raise ValueError(f"Unsupported database URL: {database_url}")
    return database_url


class DatabaseManager:
    """Small pool of shared aiosqlite connections."""

    def __init__(self, database_url: str, pool_size: int = 4) -> None:
        self.database_path = _path_from_url(database_url)
        self._pool_size = pool_size
        self._pool: Optional[asyncio.Queue[aiosqlite.Connection]] = None
        self._connections: List[aiosqlite.Connection] = []

    async def initialize(self) -> None:
        """Create the schema and open the pool."""
        if self._pool is not None:
            return

        if self.database_path != ":memory:":
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

        pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        for _ in range(self._pool_size):
            conn = await aiosqlite.connect(self.database_path)
            conn.row_factory = aiosqlite.Row
            self._connections.append(conn)
            pool.put_nowait(conn)

        async with self._acquire(pool) as conn:
            await conn.executescript(SCHEMA)
            await conn.commit()

        self._pool = pool
        logger.info(
            "Database initialized",
            path=self.database_path,
            pool_size=self._pool_size,
        )

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a pooled connection for the duration of the block."""
        if self._pool is None:
            raise RuntimeError("DatabaseManager.initialize() has not been called")
        async with self._acquire(self._pool) as conn:
            yield conn

    @staticmethod
    @asynccontextmanager
    async def _acquire(
        pool: "asyncio.Queue[aiosqlite.Connection]",
    ) -> AsyncIterator[aiosqlite.Connection]:
        conn = await pool.get()
        try:
            yield conn
        finally:
            pool.put_nowait(conn)

    async def close(self) -> None:
        """Close every pooled connection."""
        for conn in self._connections:
            await conn.close()
        self._connections.clear()
        self._pool = None
