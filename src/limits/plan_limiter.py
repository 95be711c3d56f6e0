"""Plan-based quota checks.

``can_perform_action`` is the primary path and returns a decision object;
``check_and_enforce`` is the raising form for call sites that want it.
Usage is recounted from the store on every call, so two concurrent requests
for one user can both pass and overshoot a limit by one batch.
"""
from __future__ import annotations

from typing import Dict, Optional, Protocol, Union

from src.shared.logging_utils import info as log_info
from src.specs.common.enums import ActionType, PlanId
from src.specs.common.errors import PlanLimitationError
from src.specs.models.plans import (
    UNLIMITED,
    FeatureFlags,
    LimitationStatus,
    PlanLimitations,
    QuotaDecision,
    ResourceUsage,
    SubscriptionRecord,
    UsageSnapshot,
)
from .plans import get_plan, get_plan_limitations, resolve_plan_id


class UsageSource(Protocol):
    async def get_usage(self, user_id: str) -> UsageSnapshot:
        ...


class SubscriptionSource(UsageSource, Protocol):
    async def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        ...


# action -> (PlanLimitations field, UsageSnapshot field, noun used in reasons)
_QUANTITY_ACTIONS: Dict[ActionType, tuple] = {
    ActionType.CREATE_PROJECT: ("maxProjects", "projects", "projects"),
    ActionType.ADD_INTEGRATION: ("maxIntegrations", "integrations", "integrations"),
    ActionType.CREATE_PORTFOLIO: ("maxPortfolios", "portfolios", "portfolio(s)"),
    ActionType.USE_AI_OPTIMIZATION: ("aiOptimizations", "aiOptimizationsUsed", "AI optimizations this month"),
}

# action -> (PlanLimitations flag, reason when the flag is off)
_FEATURE_ACTIONS: Dict[ActionType, tuple] = {
    ActionType.USE_CUSTOM_DOMAIN: ("customDomain", "Custom domains are not available on your plan"),
    ActionType.GENERATE_CV: ("cvGeneration", "CV generation is not available on your plan"),
    ActionType.ACCESS_ANALYTICS: ("analytics", "Advanced analytics are not available on your plan"),
}

_UPGRADE_MESSAGES: Dict[ActionType, str] = {
    ActionType.CREATE_PROJECT: "The {plan} plan limits the number of projects. Upgrade for more projects.",
    ActionType.ADD_INTEGRATION: "The {plan} plan limits the number of integrations. Upgrade to Pro for unlimited integrations.",
    ActionType.CREATE_PORTFOLIO: "The {plan} plan limits the number of portfolios. Upgrade to Pro for more portfolios.",
    ActionType.USE_CUSTOM_DOMAIN: "Custom domains are only available on the Pro and Team plans.",
    ActionType.GENERATE_CV: "CV generation is only available on the Pro and Team plans.",
    ActionType.USE_AI_OPTIMIZATION: "AI optimizations are limited on your current plan.",
    ActionType.ACCESS_ANALYTICS: "Advanced analytics are only available on the Pro and Team plans.",
}


def _coerce_action(action: Union[ActionType, str]) -> Optional[ActionType]:
    try:
        return ActionType(action)
    except ValueError:
        return None


def get_plan_limitation_message(action: Union[ActionType, str], plan_id: str) -> str:
    known = _coerce_action(action)
    template = _UPGRADE_MESSAGES.get(known) if known else None
    if template is None:
        return "This feature requires a higher plan."
    return template.format(plan=get_plan(plan_id).name)


def _resource(used: int, limit: int) -> ResourceUsage:
    if limit == UNLIMITED:
        return ResourceUsage(used=used, limit=UNLIMITED, percentage=0)
    if limit <= 0:
        # Nothing allowed: any ask is already saturated
        return ResourceUsage(used=used, limit=limit, percentage=100)
    return ResourceUsage(used=used, limit=limit, percentage=used / limit * 100)


class PlanLimiter:
    def __init__(self, user_id: str, plan_id: str = PlanId.FREE.value, *, usage_source: UsageSource) -> None:
        self.user_id = user_id
        self.plan_id = get_plan(plan_id).id
        self._usage_source = usage_source

    def get_limitations(self) -> PlanLimitations:
        return get_plan_limitations(self.plan_id)

    async def get_current_usage(self) -> UsageSnapshot:
        return await self._usage_source.get_usage(self.user_id)

    async def can_perform_action(self, action: Union[ActionType, str], quantity: int = 1) -> QuotaDecision:
        known = _coerce_action(action)
        limitations = self.get_limitations()

        if known in _FEATURE_ACTIONS:
            flag, reason = _FEATURE_ACTIONS[known]
            allowed = bool(getattr(limitations, flag))
            return QuotaDecision(allowed=allowed, reason=None if allowed else reason)

        if known not in _QUANTITY_ACTIONS:
            log_info(None, "quota:unknown_action", userId=self.user_id, action=str(action))
            return QuotaDecision(allowed=False, reason="Unrecognized action")

        limit_field, usage_field, noun = _QUANTITY_ACTIONS[known]
        limit = getattr(limitations, limit_field)
        if limit == UNLIMITED:
            return QuotaDecision(allowed=True, limit=UNLIMITED)

        usage = await self.get_current_usage()
        current = getattr(usage, usage_field)
        allowed = current + quantity <= limit
        decision = QuotaDecision(
            allowed=allowed,
            reason=None if allowed else f"Limit of {limit} {noun} reached",
            currentUsage=current,
            limit=limit,
        )
        if not allowed:
            log_info(
                None,
                "quota:denied",
                userId=self.user_id,
                planId=self.plan_id,
                action=known.value,
                quantity=quantity,
                currentUsage=current,
                limit=limit,
            )
        return decision

    async def check_and_enforce(self, action: Union[ActionType, str], quantity: int = 1) -> None:
        decision = await self.can_perform_action(action, quantity)
        if not decision.allowed:
            raise PlanLimitationError(
                decision.reason or "Action not allowed",
                str(getattr(action, "value", action)),
                self.plan_id,
                decision.currentUsage,
                decision.limit,
            )

    async def get_limitation_status(self) -> LimitationStatus:
        limitations = self.get_limitations()
        usage = await self.get_current_usage()
        return LimitationStatus(
            projects=_resource(usage.projects, limitations.maxProjects),
            integrations=_resource(usage.integrations, limitations.maxIntegrations),
            portfolios=_resource(usage.portfolios, limitations.maxPortfolios),
            aiOptimizations=_resource(usage.aiOptimizationsUsed, limitations.aiOptimizations),
            storage=_resource(usage.storageUsed, limitations.storage),
            features=FeatureFlags(
                customDomain=limitations.customDomain,
                cvGeneration=limitations.cvGeneration,
                analytics=limitations.analytics,
                prioritySupport=limitations.prioritySupport,
            ),
        )


async def create_plan_limiter_for_user(user_id: str, store: SubscriptionSource) -> PlanLimiter:
    """Resolve the user's active plan and build a limiter over ``store``."""
    subscription = await store.get_subscription(user_id)
    return PlanLimiter(user_id, resolve_plan_id(subscription), usage_source=store)


__all__ = [
    "PlanLimiter",
    "UsageSource",
    "SubscriptionSource",
    "create_plan_limiter_for_user",
    "get_plan_limitation_message",
]
