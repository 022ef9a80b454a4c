"""Subscription-driven context configuration."""

import math
from typing import Any, Dict, Optional

import structlog

from ..config.tiers import FeatureFlags, SubscriptionTier
from ..storage.interface import PlanRecord, SubscriptionSource
from .models import ContextConfiguration

logger = structlog.get_logger()

USER_CONTEXT_SIZE_KEY = "memory_context_size"

# Plan feature key -> ContextConfiguration field
_NUMERIC_FEATURES = {
    "maxContextSize": "max_context_size",
    "relevanceThreshold": "relevance_threshold",
    "recencyWeight": "recency_weight",
    "importanceWeight": "importance_weight",
}

_FLAG_FEATURES = {
    "enableLongTermMemory": "enable_long_term_memory",
    "enableMemoryCompression": "enable_memory_compression",
    "enableContextPrioritization": "enable_context_prioritization",
}


class ConfigurationResolver:
    """Maps an organization's active plan to a ContextConfiguration.

    Resolution never raises. Any failure to read the subscription falls back
    to the FREE tier: a smaller context is preferable to a failed request.
    """

    def __init__(
        self,
        subscriptions: SubscriptionSource,
        clamp_user_override: bool = True,
    ) -> None:
        self._subscriptions = subscriptions
        self._clamp_user_override = clamp_user_override

    async def resolve(
        self, organization_id: str, user_id: Optional[str] = None
    ) -> ContextConfiguration:
        """Resolve configuration fresh for this call."""
        try:
            plan = await self._subscriptions.get_active_plan(organization_id)
            if plan is None:
                logger.warning(
                    "No active subscription, using default tier",
                    organization_id=organization_id,
                )
                return self.default()

            config = self._from_plan(plan, organization_id)

            if user_id:
                config = await self._with_user_settings(config, organization_id, user_id)

            return config
        except Exception as exc:
            logger.warning(
                "Subscription lookup failed, using default tier",
                organization_id=organization_id,
                error=str(exc),
            )
            return self.default()

    @staticmethod
    def default() -> ContextConfiguration:
        """Most conservative configuration."""
        return ContextConfiguration.for_tier(SubscriptionTier.FREE)

    def _from_plan(self, plan: PlanRecord, organization_id: str) -> ContextConfiguration:
        tier = SubscriptionTier.from_plan_name(plan.name)
        config = ContextConfiguration.for_tier(tier)
        features = plan.features or {}

        changes: Dict[str, Any] = {}
        for key, field_name in _NUMERIC_FEATURES.items():
            if key not in features:
                continue
            value = _coerce_feature(field_name, features[key])
            if value is None:
                logger.warning(
                    "Ignoring malformed plan feature",
                    organization_id=organization_id,
                    plan_id=plan.plan_id,
                    feature=key,
                )
                continue
            changes[field_name] = value

        flags = config.feature_flags
        flag_values = {
            "enable_long_term_memory": flags.enable_long_term_memory,
            "enable_memory_compression": flags.enable_memory_compression,
            "enable_context_prioritization": flags.enable_context_prioritization,
        }
        for key, flag_name in _FLAG_FEATURES.items():
            value = features.get(key)
            if isinstance(value, bool):
                flag_values[flag_name] = value
            elif value is not None:
                logger.warning(
                    "Ignoring malformed plan flag",
                    organization_id=organization_id,
                    plan_id=plan.plan_id,
                    feature=key,
                )
        changes["feature_flags"] = FeatureFlags(**flag_values)

        return config.with_changes(**changes)

    async def _with_user_settings(
        self, config: ContextConfiguration, organization_id: str, user_id: str
    ) -> ContextConfiguration:
        """Apply per-user overrides; a failed lookup keeps the plan config."""
        try:
            settings = await self._subscriptions.get_user_settings(
                organization_id, user_id
            )
        except Exception as exc:
            logger.warning(
                "User settings lookup failed, using plan configuration",
                organization_id=organization_id,
                user_id=user_id,
                error=str(exc),
            )
            return config
        return self._apply_user_settings(config, settings, organization_id, user_id)

    def _apply_user_settings(
        self,
        config: ContextConfiguration,
        settings: Dict[str, str],
        organization_id: str,
        user_id: str,
    ) -> ContextConfiguration:
        raw = settings.get(USER_CONTEXT_SIZE_KEY)
        if raw is None:
            return config

        try:
            override = int(raw)
        except (TypeError, ValueError):
            override = 0
        if override <= 0:
            logger.warning(
                "Ignoring invalid user context size",
                organization_id=organization_id,
                user_id=user_id,
            )
            return config

        if self._clamp_user_override and override > config.max_context_size:
            logger.info(
                "Clamping user context size to plan ceiling",
                organization_id=organization_id,
                user_id=user_id,
                requested=override,
                ceiling=config.max_context_size,
            )
            override = config.max_context_size

        return config.with_changes(max_context_size=override)


def _coerce_feature(field_name: str, value: Any) -> Optional[float | int]:
    """Validate a numeric plan feature; None when unusable."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None

    if field_name == "max_context_size":
        if number <= 0 or number != int(number):
            return None
        return int(number)
    if not 0.0 <= number <= 1.0:
        return None
    return number
