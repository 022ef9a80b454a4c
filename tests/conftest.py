"""Shared fixtures: a temporary SQLite datastore and seeding helpers."""

import json
import uuid
from typing import Any, Dict, Optional

import pytest

from context_engine.memory.models import Memory
from context_engine.storage.database import DatabaseManager


@pytest.fixture
async def db_manager(tmp_path):
    """Create test database manager with the schema applied."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'test.db'}")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def insert_memory(db_manager):
    """Insert a Memory row directly (ingestion is outside the engine)."""

    async def _insert(memory: Memory) -> None:
        async with db_manager.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO memories (
                    id, organization_id, user_id, content, content_embedding,
                    memory_type, importance_score, metadata_json, created_at,
                    last_accessed_at, access_count
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    memory.id,
                    memory.organization_id,
                    memory.user_id,
                    memory.content,
                    json.dumps(memory.content_embedding)
                    if memory.content_embedding is not None
                    else None,
                    memory.memory_type.value,
                    memory.importance_score,
                    json.dumps(memory.metadata),
                    memory.created_at.isoformat() if memory.created_at else None,
                    memory.last_accessed_at.isoformat()
                    if memory.last_accessed_at
                    else None,
                    memory.access_count,
                ),
            )
            await conn.commit()

    return _insert


@pytest.fixture
def insert_plan(db_manager):
    """Create a plan and subscribe an organization to it."""

    async def _insert(
        organization_id: str,
        plan_name: str,
        features: Optional[Dict[str, Any]] = None,
        status: str = "active",
        created_at: str = "2026-01-01T00:00:00+00:00",
    ) -> str:
        plan_id = f"plan-{uuid.uuid4().hex[:8]}"
        async with db_manager.get_connection() as conn:
            await conn.execute(
                "INSERT INTO subscription_plans (id, name, features_json) VALUES (?, ?, ?)",
                (plan_id, plan_name, json.dumps(features) if features is not None else None),
            )
            await conn.execute(
                """
                INSERT INTO organization_subscriptions
                    (id, organization_id, subscription_plan_id, status, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (f"sub-{uuid.uuid4().hex[:8]}", organization_id, plan_id, status, created_at),
            )
            await conn.commit()
        return plan_id

    return _insert


@pytest.fixture
def insert_user_setting(db_manager):
    """Store a per-user agent setting."""

    async def _insert(organization_id: str, user_id: str, key: str, value: str) -> None:
        async with db_manager.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO ai_agent_settings
                    (organization_id, user_id, setting_key, setting_value)
                VALUES (?, ?, ?, ?)
                """,
                (organization_id, user_id, key, value),
            )
            await conn.commit()

    return _insert
