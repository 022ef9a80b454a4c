"""Request-scoped values produced by the context pipeline."""

from dataclasses import dataclass, field, replace
from typing import Optional

from ..config.tiers import FeatureFlags, SubscriptionTier
from ..memory.models import Memory

STRATEGY_WEIGHTED = "weighted"
STRATEGY_RECENCY_ONLY = "recency-only"
STRATEGY_ERROR = "error"


@dataclass(frozen=True)
class ContextConfiguration:
    """Resolved configuration for a single build. Never persisted."""

    max_context_size: int
    relevance_threshold: float
    recency_weight: float
    importance_weight: float
    subscription_tier: SubscriptionTier
    feature_flags: FeatureFlags

    @classmethod
    def for_tier(cls, tier: SubscriptionTier) -> "ContextConfiguration":
        """Baseline configuration of a tier."""
        limits = tier.limits
        return cls(
            max_context_size=limits.max_context_size,
            relevance_threshold=limits.relevance_threshold,
            recency_weight=limits.recency_weight,
            importance_weight=limits.importance_weight,
            subscription_tier=tier,
            feature_flags=limits.feature_flags,
        )

    def with_changes(self, **changes: object) -> "ContextConfiguration":
        return replace(self, **changes)


@dataclass
class MemoryCount:
    retrieved: int = 0
    selected: int = 0
    compressed: int = 0


@dataclass
class ContextMetadata:
    """Bookkeeping attached to a ContextResult."""

    memory_count: MemoryCount = field(default_factory=MemoryCount)
    context_utilization: float = 0.0  # total_tokens / max_context_size
    retrieval_time_ms: int = 0
    compression_ratio: float = 1.0
    token_savings: int = 0
    subscription_tier: Optional[SubscriptionTier] = None


@dataclass
class ContextResult:
    """Ranked, budgeted memories handed to the response generator.

    An empty ``memories`` list is a valid result; consumers build a
    degraded prompt rather than failing.
    """

    memories: list[Memory]
    total_tokens: int
    truncated: bool
    prioritization_strategy: str
    metadata: ContextMetadata = field(default_factory=ContextMetadata)

    @classmethod
    def error(cls, retrieval_time_ms: int = 0) -> "ContextResult":
        """Empty result returned when the pipeline fails."""
        return cls(
            memories=[],
            total_tokens=0,
            truncated=False,
            prioritization_strategy=STRATEGY_ERROR,
            metadata=ContextMetadata(retrieval_time_ms=retrieval_time_ms),
        )


@dataclass
class CompressionRecord:
    """Outcome of a compression pass."""

    original_memories: list[Memory]
    compressed_memories: list[Memory]
    compression_ratio: float  # compressed tokens / original tokens, in (0, 1]
    token_savings: int
    compressed_count: int = 0

    @classmethod
    def passthrough(cls, memories: list[Memory]) -> "CompressionRecord":
        return cls(
            original_memories=memories,
            compressed_memories=memories,
            compression_ratio=1.0,
            token_savings=0,
        )


@dataclass
class FitResult:
    """Greedy packing outcome."""

    memories: list[Memory]
    total_tokens: int
    truncated: bool
