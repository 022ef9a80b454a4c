"""Repository for scoped memory search and access bookkeeping."""

import json
import math
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

import aiosqlite
import structlog
from pydantic import ValidationError

from ..exceptions import MemoryStoreError
from ..memory.models import AccessRecord, Memory, TenantScope
from .database import DatabaseManager

logger = structlog.get_logger()

DEFAULT_ACCESS_CONTEXT = "context_window"


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors; 0.0 for zero vectors."""
    if len(a) != len(b):
        raise ValueError(f"Vector dimensions differ: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class MemoryRepository:
    """SQLite-backed MemoryStore.

    The tenant filter is part of the SQL; similarity ranking happens over
    the already-scoped rows.
    """

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository."""
        self.db = db_manager

    async def search_similar(
        self,
        embedding: list[float],
        scope: TenantScope,
        limit: int,
        created_after: Optional[datetime] = None,
    ) -> List[Memory]:
        """Rank scoped memories by cosine similarity to ``embedding``.

        Rows that cannot be parsed are skipped with a warning.
        ``created_after`` is compared on parsed datetimes in UTC.
        """
        clauses = ["organization_id = ?", "content_embedding IS NOT NULL"]
        params: list[Any] = [scope.organization_id]

        if scope.user_id is not None:
            clauses.append("(user_id IS NULL OR user_id = ?)")
            params.append(scope.user_id)

        if created_after is not None:
            clauses.append("created_at IS NOT NULL")
            cutoff = _as_utc(created_after)

        try:
            async with self.db.get_connection() as conn:
                cursor = await conn.execute(
                    f"SELECT * FROM memories WHERE {' AND '.join(clauses)}",
                    params,
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise MemoryStoreError(f"Memory search failed: {exc}") from exc

        scored: list[tuple[float, str, Any]] = []
        for row in rows:
            try:
                vector = json.loads(row["content_embedding"])
                similarity = cosine_similarity(embedding, vector)
            except (ValueError, TypeError) as exc:
                logger.warning(
                    "Skipping memory with unusable embedding",
                    memory_id=row["id"],
                    error=str(exc),
                )
                continue
            scored.append((similarity, row["id"], row))

        scored.sort(key=lambda item: (-item[0], item[1]))

        results: List[Memory] = []
        for similarity, memory_id, row in scored:
            if len(results) >= limit:
                break
            try:
                memory = Memory.from_row(row, similarity=similarity)
            except (ValidationError, ValueError, TypeError) as exc:
                logger.warning(
                    "Skipping malformed memory row",
                    memory_id=memory_id,
                    error=str(exc),
                )
                continue
            if created_after is not None and (
                memory.created_at is None or _as_utc(memory.created_at) < cutoff
            ):
                continue
            results.append(memory)
        return results

    async def record_access(
        self,
        memory_id: str,
        organization_id: str,
        accessed_at: datetime,
        user_id: Optional[str] = None,
        access_context: str = DEFAULT_ACCESS_CONTEXT,
        query: Optional[str] = None,
    ) -> None:
        """Bump access statistics and append to the access log.

        Both writes are scoped to ``organization_id``; nothing is logged for a
        memory that does not belong to it.
        """
        stamp = _as_utc(accessed_at).isoformat()
        try:
            async with self.db.get_connection() as conn:
                cursor = await conn.execute(
                    """
                    UPDATE memories
                    SET access_count = access_count + 1,
                        last_accessed_at = ?
                    WHERE id = ? AND organization_id = ?
                    """,
                    (stamp, memory_id, organization_id),
                )
                if cursor.rowcount:
                    await conn.execute(
                        """
                        INSERT INTO memory_access (
                            memory_id, organization_id, user_id,
                            access_time, access_context, query
                        ) VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (memory_id, organization_id, user_id, stamp, access_context, query),
                    )
                await conn.commit()
        except aiosqlite.Error as exc:
            raise MemoryStoreError(f"Access update failed: {exc}") from exc

    async def list_access(self, memory_id: str, scope: TenantScope) -> List[AccessRecord]:
        """Access log of one memory inside a scope, oldest first."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM memory_access
                WHERE memory_id = ? AND organization_id = ?
                ORDER BY access_time, id
                """,
                (memory_id, scope.organization_id),
            )
            rows = await cursor.fetchall()
        return [AccessRecord.from_row(row) for row in rows]

    async def get(self, memory_id: str, scope: TenantScope) -> Optional[Memory]:
        """Get a memory by ID inside a scope."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM memories WHERE id = ? AND organization_id = ?",
                (memory_id, scope.organization_id),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        memory = Memory.from_row(row)
        return memory if scope.admits(memory) else None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
