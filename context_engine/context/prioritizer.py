"""Ranking of retrieved memories by importance and recency."""

from datetime import datetime, timezone
from typing import Optional

from ..memory.models import Memory
from .models import STRATEGY_RECENCY_ONLY, STRATEGY_WEIGHTED, ContextConfiguration

SECONDS_PER_DAY = 86400.0

# Decimal places compared when ordering by score
SCORE_PRECISION = 9


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _timestamp(memory: Memory) -> float:
    """Creation time as epoch seconds; undated memories sort oldest."""
    if memory.created_at is None:
        return float("-inf")
    return _as_utc(memory.created_at).timestamp()


def recency_score(memory: Memory, now: datetime) -> float:
    """``1 / (1 + age_in_days)``; 0.0 for undated memories."""
    if memory.created_at is None:
        return 0.0
    age_days = (now - _as_utc(memory.created_at)).total_seconds() / SECONDS_PER_DAY
    return 1.0 / (1.0 + max(age_days, 0.0))


def weighted_score(
    memory: Memory, config: ContextConfiguration, now: datetime
) -> float:
    return (
        config.importance_weight * memory.importance_score
        + config.recency_weight * recency_score(memory, now)
    )


def prioritization_strategy(config: ContextConfiguration) -> str:
    if config.feature_flags.enable_context_prioritization:
        return STRATEGY_WEIGHTED
    return STRATEGY_RECENCY_ONLY


def prioritize_memories(
    memories: list[Memory],
    config: ContextConfiguration,
    now: Optional[datetime] = None,
) -> list[Memory]:
    """Filter by relevance, then order by weighted score or by recency.

    Ties go to the more recently created memory, then to the lower id, so
    the same input always yields the same order.
    """
    relevant = [
        m
        for m in memories
        if m.similarity is None or m.similarity >= config.relevance_threshold
    ]
    if not relevant:
        return []

    if not config.feature_flags.enable_context_prioritization:
        return sorted(relevant, key=lambda m: (-_timestamp(m), m.id))

    now = _as_utc(now or datetime.now(timezone.utc))
    return sorted(
        relevant,
        key=lambda m: (
            -round(weighted_score(m, config, now), SCORE_PRECISION),
            -_timestamp(m),
            m.id,
        ),
    )
