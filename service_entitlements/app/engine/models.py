"""
Entitlement data models for Entitlements Service.
"""

import math
from types import MappingProxyType
from typing import Dict, Any, Optional, List, Mapping, Tuple, Union
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field


class FeatureType(str, Enum):
    """Feature types."""
    BOOLEAN = "boolean"
    STATIC = "static"
    METERED = "metered"


class UnitType(str, Enum):
    """Feature units of measurement."""
    COUNT = "count"
    BYTES = "bytes"
    SECONDS = "seconds"
    TOKENS = "tokens"
    REQUESTS = "requests"
    CUSTOM = "custom"


class ResetPeriod(str, Enum):
    """Usage counter reset periods."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    NEVER = "never"


class AddonFeatureType(str, Enum):
    """How an add-on applies its limit."""
    INCREMENT = "increment"
    SET = "set"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle states."""
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    PAUSED = "paused"


class CheckReason(str, Enum):
    """Reason codes attached to a check result."""
    FEATURE_MISSING = "feature_missing"
    LIMIT_REACHED = "limit_reached"
    PAST_DUE = "past_due"
    INCLUDED = "included"
    OVERAGE_ALLOWED = "overage_allowed"


# Statuses that suppress every entitlement
BLOCKED_STATUSES = frozenset({SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELED})

Number = Union[int, float]


@dataclass(frozen=True)
class FeatureDef:
    """Feature declared once per project."""
    slug: str
    name: str
    type: FeatureType
    unit_type: UnitType
    description: Optional[str] = None


@dataclass(frozen=True)
class PlanFeatureValue:
    """Feature configuration inside a plan.

    Only the fields relevant to the feature type are set: ``value_bool`` for
    boolean features, ``value_limit`` (plus ``is_hard_limit``) for static and
    metered ones. ``reset_period`` is informational; counters are reset
    outside the engine.
    """
    value_limit: Optional[float] = None
    value_bool: Optional[bool] = None
    value_text: Optional[str] = None
    is_hard_limit: Optional[bool] = None
    reset_period: Optional[ResetPeriod] = None


@dataclass(frozen=True)
class AddonFeatureValue:
    """Feature configuration inside an add-on.

    ``type`` of None behaves as ``increment``.
    """
    value_limit: Optional[float] = None
    type: Optional[AddonFeatureType] = None
    has_access: Optional[bool] = None
    is_hard_limit: Optional[bool] = None

    @property
    def is_set(self) -> bool:
        return self.type == AddonFeatureType.SET


def _freeze(features: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(features))


@dataclass(frozen=True)
class PlanDef:
    """Base subscription plan."""
    slug: str
    features: Mapping[str, PlanFeatureValue] = field(default_factory=dict)
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "features", _freeze(self.features))


@dataclass(frozen=True)
class AddonDef:
    """Purchased add-on."""
    slug: str
    features: Mapping[str, AddonFeatureValue] = field(default_factory=dict)
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "features", _freeze(self.features))


@dataclass(frozen=True)
class CheckResult:
    """Result of an entitlement check."""
    allowed: bool
    reason: Optional[CheckReason] = None
    remaining: Optional[float] = None
    granted_by: Tuple[str, ...] = ()

    @property
    def unlimited(self) -> bool:
        return self.remaining is not None and math.isinf(self.remaining)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the stable JSON shape.

        JSON has no infinity, so unlimited access is rendered as
        ``remaining: null`` with ``unlimited: true``.
        """
        return {
            "allowed": self.allowed,
            "reason": self.reason.value if self.reason else None,
            "remaining": None if self.unlimited else self.remaining,
            "unlimited": self.unlimited,
            "granted_by": list(self.granted_by),
        }


class EntitlementCheckRequest(BaseModel):
    """Request model for a single entitlement check."""
    plan: str = Field(..., description="Active plan slug")
    addons: List[str] = Field(default_factory=list, description="Active add-on slugs")
    subscription_status: SubscriptionStatus = Field(
        SubscriptionStatus.ACTIVE, description="Subscription lifecycle state"
    )
    customer_id: Optional[str] = Field(None, description="Customer ID for log correlation")
    feature_id: str = Field(..., description="Feature slug to check")
    current_usage: float = Field(0, description="Current usage snapshot")


class EntitlementBatchCheckRequest(BaseModel):
    """Request model for a batch entitlement check."""
    plan: str = Field(..., description="Active plan slug")
    addons: List[str] = Field(default_factory=list, description="Active add-on slugs")
    subscription_status: SubscriptionStatus = Field(
        SubscriptionStatus.ACTIVE, description="Subscription lifecycle state"
    )
    customer_id: Optional[str] = Field(None, description="Customer ID for log correlation")
    usages: Dict[str, float] = Field(..., description="Feature slug to current usage")


class EntitlementCheckResponse(BaseModel):
    """Response model for an entitlement check."""
    allowed: bool = Field(..., description="Whether the feature may be used")
    reason: Optional[CheckReason] = Field(None, description="Reason for the decision")
    remaining: Optional[float] = Field(None, description="Units left before the limit; null when unlimited")
    unlimited: bool = Field(False, description="Whether access is unlimited")
    granted_by: List[str] = Field(default_factory=list, description="Plan and add-on slugs that granted access")

    @classmethod
    def from_result(cls, result: CheckResult) -> "EntitlementCheckResponse":
        return cls(**result.to_dict())


class EntitlementBatchCheckResponse(BaseModel):
    """Response model for a batch entitlement check."""
    results: Dict[str, EntitlementCheckResponse]

