from typing import Dict, List, Optional

from src.specs.common.enums import PlanId
from src.specs.models.plans import UNLIMITED, PlanLimitations, SubscriptionPlan, SubscriptionRecord

# Statuses that grant the subscribed plan; anything else falls back to free.
ACTIVE_STATUSES = ("active", "trialing")

SUBSCRIPTION_PLANS: List[SubscriptionPlan] = [
    SubscriptionPlan(
        id=PlanId.FREE.value,
        name="Free",
        price=0,
        description="Get started with a basic portfolio",
        features=[
            "Basic portfolio",
            "Up to 5 projects",
            "2 integrations (GitHub, Behance or Dribbble)",
            "Basic themes",
            "smartportfolio.com subdomain",
            "Community support",
        ],
        limitations=PlanLimitations(
            maxProjects=5,
            maxIntegrations=2,
            maxPortfolios=1,
            aiOptimizations=0,
            storage=100,
            bandwidth=1000,
        ),
    ),
    SubscriptionPlan(
        id=PlanId.PRO.value,
        name="Pro",
        price=9,
        description="For freelancers and creatives",
        popular=True,
        features=[
            "Unlimited projects",
            "Every integration",
            "AI SEO description rewriting",
            "AI CV generation",
            "Premium themes",
            "Custom domain",
            "Advanced analytics",
            "Priority support",
        ],
        limitations=PlanLimitations(
            maxProjects=UNLIMITED,
            maxIntegrations=UNLIMITED,
            maxPortfolios=UNLIMITED,
            aiOptimizations=100,
            storage=1000,
            bandwidth=10000,
            customDomain=True,
            cvGeneration=True,
            analytics=True,
            prioritySupport=True,
        ),
    ),
    SubscriptionPlan(
        id=PlanId.TEAM.value,
        name="Team",
        price=25,
        description="For agencies and creative teams",
        features=[
            "Everything in Pro",
            "5 portfolios per team",
            "Multi-user management",
            "White label",
            "Dedicated support",
        ],
        limitations=PlanLimitations(
            maxProjects=UNLIMITED,
            maxIntegrations=UNLIMITED,
            maxPortfolios=5,
            aiOptimizations=500,
            storage=5000,
            bandwidth=50000,
            customDomain=True,
            cvGeneration=True,
            analytics=True,
            prioritySupport=True,
        ),
    ),
]

_PLANS_BY_ID: Dict[str, SubscriptionPlan] = {p.id: p for p in SUBSCRIPTION_PLANS}


def get_plan(plan_id: Optional[str]) -> SubscriptionPlan:
    """Unknown ids resolve to the free plan."""
    return _PLANS_BY_ID.get(plan_id or "", _PLANS_BY_ID[PlanId.FREE.value])


def get_plan_limitations(plan_id: Optional[str]) -> PlanLimitations:
    return get_plan(plan_id).limitations


def resolve_plan_id(subscription: Optional[SubscriptionRecord]) -> str:
    if subscription is None or subscription.status not in ACTIVE_STATUSES:
        return PlanId.FREE.value
    return get_plan(subscription.planId).id


__all__ = [
    "ACTIVE_STATUSES",
    "SUBSCRIPTION_PLANS",
    "get_plan",
    "get_plan_limitations",
    "resolve_plan_id",
]
