"""Subscription tiers and the context limits each one grants."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class FeatureFlags:
    """Feature switches granted by a subscription tier."""

    enable_long_term_memory: bool
    enable_memory_compression: bool
    enable_context_prioritization: bool


@dataclass(frozen=True)
class TierLimits:
    """Baseline context configuration for one tier."""

    max_context_size: int  # tokens
    relevance_threshold: float
    recency_weight: float
    importance_weight: float
    feature_flags: FeatureFlags


class SubscriptionTier(str, Enum):
    """Closed set of tiers the engine understands."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"

    @property
    def limits(self) -> TierLimits:
        return TIER_LIMITS[self]

    @classmethod
    def from_plan_name(cls, plan_name: str | None) -> "SubscriptionTier":
        """Map a billing plan name onto a tier.

        Unknown or missing names map to FREE so an unexpected plan never
        grants more than the minimal budget.
        """
        if not plan_name:
            return cls.FREE
        key = plan_name.strip().lower().replace("_", " ").replace("-", " ")
        if key in PLAN_ALIASES:
            return PLAN_ALIASES[key]
        # Compound names ("Premium Enterprise") take their highest tier word
        matched = [PLAN_ALIASES[w] for w in key.split() if w in PLAN_ALIASES]
        if not matched:
            return cls.FREE
        return max(matched, key=_TIER_ORDER.index)


TIER_LIMITS: dict[SubscriptionTier, TierLimits] = {
    SubscriptionTier.FREE: TierLimits(
        max_context_size=2000,
        relevance_threshold=0.7,
        recency_weight=0.3,
        importance_weight=0.5,
        feature_flags=FeatureFlags(
            enable_long_term_memory=False,
            enable_memory_compression=False,
            enable_context_prioritization=False,
        ),
    ),
    SubscriptionTier.PRO: TierLimits(
        max_context_size=8000,
        relevance_threshold=0.7,
        recency_weight=0.3,
        importance_weight=0.5,
        feature_flags=FeatureFlags(
            enable_long_term_memory=True,
            enable_memory_compression=False,
            enable_context_prioritization=True,
        ),
    ),
    SubscriptionTier.ENTERPRISE: TierLimits(
        max_context_size=32000,
        relevance_threshold=0.65,
        recency_weight=0.3,
        importance_weight=0.5,
        feature_flags=FeatureFlags(
            enable_long_term_memory=True,
            enable_memory_compression=True,
            enable_context_prioritization=True,
        ),
    ),
}

# Plan name (normalized) -> tier
PLAN_ALIASES: dict[str, SubscriptionTier] = {
    "free": SubscriptionTier.FREE,
    "starter": SubscriptionTier.FREE,
    "basic": SubscriptionTier.FREE,
    "pro": SubscriptionTier.PRO,
    "professional": SubscriptionTier.PRO,
    "business": SubscriptionTier.PRO,
    "premium": SubscriptionTier.PRO,
    "advanced": SubscriptionTier.PRO,
    "enterprise": SubscriptionTier.ENTERPRISE,
    "unlimited": SubscriptionTier.ENTERPRISE,
}

_TIER_ORDER = [SubscriptionTier.FREE, SubscriptionTier.PRO, SubscriptionTier.ENTERPRISE]
