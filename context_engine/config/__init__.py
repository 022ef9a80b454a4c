"""Engine settings and subscription tiers."""

from .settings import Settings
from .tiers import FeatureFlags, SubscriptionTier, TierLimits

__all__ = ["FeatureFlags", "Settings", "SubscriptionTier", "TierLimits"]
