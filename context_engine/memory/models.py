"""Memory data models."""

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class MemoryType(str, Enum):
    """Kind of fact or observation a memory holds."""

    DECISION = "decision"
    OBSERVATION = "observation"
    FEEDBACK = "feedback"
    INTERACTION = "interaction"
    TACTIC = "tactic"
    PREFERENCE = "preference"
    INSIGHT = "insight"
    FACT = "fact"


@dataclass(frozen=True)
class TenantScope:
    """Isolation boundary for every read and write.

    ``user_id=None`` covers the whole organization. With a user id, searches
    see organization-wide memories plus that user's own.
    """

    organization_id: str
    user_id: Optional[str] = None

    def admits(self, memory: "Memory") -> bool:
        """Whether a memory belongs inside this scope."""
        if memory.organization_id != self.organization_id:
            return False
        if self.user_id is None:
            return True
        return memory.user_id is None or memory.user_id == self.user_id


class Memory(BaseModel):
    """A durable fact scoped to one organization (and optionally one user)."""

    id: str
    organization_id: str
    user_id: Optional[str] = None
    content: str
    content_embedding: Optional[List[float]] = None
    memory_type: MemoryType = MemoryType.FACT
    importance_score: float = Field(default=0.5, ge=0.0, le=1.0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    access_count: int = 0
    # Set by the datastore search; not persisted
    similarity: Optional[float] = None

    @classmethod
    def from_row(cls, row: Any, similarity: Optional[float] = None) -> "Memory":
        """Create from database row."""
        data = dict(row)
        embedding_raw = data.pop("content_embedding", None)
        data["content_embedding"] = (
            json.loads(embedding_raw) if isinstance(embedding_raw, str) else embedding_raw
        )
        metadata_raw = data.pop("metadata_json", None)
        data["metadata"] = json.loads(metadata_raw) if metadata_raw else {}
        # Handle string datetimes (sqlite3 converters may already parse them)
        for field in ("created_at", "last_accessed_at"):
            val = data.get(field)
            if isinstance(val, str) and val:
                data[field] = datetime.fromisoformat(val)
        if data.get("access_count") is None:
            data["access_count"] = 0
        data["similarity"] = similarity
        return cls(**data)


class AccessRecord(BaseModel):
    """One entry of the memory access log."""

    id: int
    memory_id: str
    organization_id: str
    user_id: Optional[str] = None
    access_time: datetime
    access_context: str
    query: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "AccessRecord":
        """Create from database row."""
        return cls(**dict(row))
