"""
Entitlement engine package.

Decides whether a customer may use a feature by combining their plan,
purchased add-ons and subscription status. Evaluation is pure and
in-memory; plans and add-ons are handed in by the caller.

Modules of interest:
- models: Plan, add-on and feature definitions, and the check result.
- engine: EntitlementEngine with ``check`` and ``check_batch``.
- billing_config: Loader turning a billing-as-code declaration into plans
  and add-ons.
- validator: Cross-section business rules for billing configs.
"""

from .engine import EntitlementEngine
from .models import (
    AddonDef, AddonFeatureType, AddonFeatureValue, CheckReason, CheckResult,
    FeatureDef, FeatureType, PlanDef, PlanFeatureValue, SubscriptionStatus,
    BLOCKED_STATUSES
)

__all__ = [
    "EntitlementEngine",
    "AddonDef",
    "AddonFeatureType",
    "AddonFeatureValue",
    "CheckReason",
    "CheckResult",
    "FeatureDef",
    "FeatureType",
    "PlanDef",
    "PlanFeatureValue",
    "SubscriptionStatus",
    "BLOCKED_STATUSES",
]
