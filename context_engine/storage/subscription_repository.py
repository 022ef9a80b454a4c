"""Repository for subscription plans and per-user agent settings."""

import json
from typing import Dict, Optional

import aiosqlite
import structlog

from ..exceptions import SubscriptionLookupError
from .database import DatabaseManager
from .interface import PlanRecord

logger = structlog.get_logger()


class SubscriptionRepository:
    """SQLite-backed SubscriptionSource."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository."""
        self.db = db_manager

    async def get_active_plan(self, organization_id: str) -> Optional[PlanRecord]:
        """Get the newest active subscription plan of an organization."""
        try:
            async with self.db.get_connection() as conn:
                cursor = await conn.execute(
                    """
                    SELECT p.id, p.name, p.features_json
                    FROM organization_subscriptions s
                    JOIN subscription_plans p ON p.id = s.subscription_plan_id
                    WHERE s.organization_id = ? AND s.status = 'active'
                      AND p.is_active = 1
                    ORDER BY s.created_at DESC
                    LIMIT 1
                    """,
                    (organization_id,),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise SubscriptionLookupError(
                f"Subscription lookup failed for {organization_id}: {exc}"
            ) from exc

        if row is None:
            logger.debug("No active subscription", organization_id=organization_id)
            return None

        try:
            features = json.loads(row["features_json"]) if row["features_json"] else {}
        except json.JSONDecodeError as exc:
            raise SubscriptionLookupError(
                f"Plan {row['id']} has malformed features"
            ) from exc
        if not isinstance(features, dict):
            raise SubscriptionLookupError(f"Plan {row['id']} features is not a map")

        return PlanRecord(plan_id=row["id"], name=row["name"], features=features)

    async def get_user_settings(
        self, organization_id: str, user_id: str
    ) -> Dict[str, str]:
        """Get a user's agent settings as a key/value map."""
        try:
            async with self.db.get_connection() as conn:
                cursor = await conn.execute(
                    """
                    SELECT setting_key, setting_value FROM ai_agent_settings
                    WHERE organization_id = ? AND user_id = ?
                    """,
                    (organization_id, user_id),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise SubscriptionLookupError(
                f"Settings lookup failed for {organization_id}/{user_id}: {exc}"
            ) from exc
        return {row["setting_key"]: row["setting_value"] for row in rows}
