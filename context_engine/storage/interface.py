"""Datastore interfaces the context pipeline depends on.

The pipeline only talks to storage through these Protocols. The SQLite
repositories in this package implement them for development and tests; a
production deployment swaps in its own vector store and billing lookups.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from ..memory.models import Memory, TenantScope


@dataclass(frozen=True)
class PlanRecord:
    """Active subscription plan of an organization."""

    plan_id: str
    name: str
    features: Dict[str, Any] = field(default_factory=dict)


class MemoryStore(Protocol):
    """Scoped nearest-neighbour search plus access bookkeeping."""

    async def search_similar(
        self,
        embedding: list[float],
        scope: TenantScope,
        limit: int,
        created_after: Optional[datetime] = None,
    ) -> list[Memory]:
        """Return up to ``limit`` memories inside ``scope``, most similar first.

        The tenant filter must be applied by the query itself. Each returned
        memory carries its ``similarity`` to ``embedding``.
        """
        ...

    async def record_access(
        self,
        memory_id: str,
        organization_id: str,
        accessed_at: datetime,
        user_id: Optional[str] = None,
        access_context: str = "context_window",
        query: Optional[str] = None,
    ) -> None:
        """Increment ``access_count``, stamp ``last_accessed_at`` and log the access.

        ``user_id`` and ``query`` identify who retrieved the memory and why;
        the log feeds importance tracking outside this package.
        """
        ...


class SubscriptionSource(Protocol):
    """Read-only view of subscription plans and per-user settings."""

    async def get_active_plan(self, organization_id: str) -> Optional[PlanRecord]:
        """Return the active plan, or None when the organization has none."""
        ...

    async def get_user_settings(
        self, organization_id: str, user_id: str
    ) -> Dict[str, str]:
        """Return the user's setting key/value pairs."""
        ...
