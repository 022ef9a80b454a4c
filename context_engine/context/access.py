"""Fire-and-forget recording of memory access statistics."""

import asyncio
from datetime import datetime, timezone
from typing import Optional, Set

import structlog

from ..memory.models import Memory, TenantScope
from ..storage.interface import MemoryStore

logger = structlog.get_logger()

ACCESS_CONTEXT_RETRIEVE = "retrieve"


class AccessRecorder:
    """Updates access statistics and the access log off the request path.

    ``record`` schedules a background task and returns at once. Failures in
    that task are logged and never reach the caller.
    """

    def __init__(self, store: MemoryStore) -> None:
        self._store = store
        self._tasks: Set["asyncio.Task[None]"] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def record(
        self,
        memories: list[Memory],
        scope: TenantScope,
        accessed_at: Optional[datetime] = None,
        query: Optional[str] = None,
        access_context: str = ACCESS_CONTEXT_RETRIEVE,
    ) -> Optional["asyncio.Task[None]"]:
        """Schedule access updates for the selected memories."""
        memory_ids = [m.id for m in memories if m.organization_id == scope.organization_id]
        if not memory_ids:
            return None

        task = asyncio.create_task(
            self._record(memory_ids, scope, accessed_at, query, access_context),
            name=f"record-access-{scope.organization_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for outstanding updates (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _record(
        self,
        memory_ids: list[str],
        scope: TenantScope,
        accessed_at: Optional[datetime],
        query: Optional[str],
        access_context: str,
    ) -> None:
        stamp = accessed_at or datetime.now(timezone.utc)
        failures = 0
        for memory_id in memory_ids:
            try:
                await self._store.record_access(
                    memory_id,
                    scope.organization_id,
                    stamp,
                    user_id=scope.user_id,
                    access_context=access_context,
                    query=query,
                )
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                failures += 1
                logger.warning(
                    "Failed to record memory access",
                    memory_id=memory_id,
                    organization_id=scope.organization_id,
                    error=str(exc),
                )

        logger.debug(
            "Recorded memory access",
            organization_id=scope.organization_id,
            access_context=access_context,
            recorded=len(memory_ids) - failures,
            failed=failures,
        )
