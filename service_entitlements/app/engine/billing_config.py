"""
Billing-as-code configuration loader for Entitlements Service.

A billing config declares the project's features, plans, add-ons and
coupons keyed by slug. This module checks the shape of that declaration
with pydantic, reads it from JSON or YAML files, and turns it into the
plan and add-on definitions the engine evaluates.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Union, get_args

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from shared.errors import ConfigurationError, NotFoundError, ValidationError
from shared.logging import get_logger
from .engine import EntitlementEngine
from .models import (
    AddonDef, AddonFeatureType, AddonFeatureValue, FeatureDef, FeatureType, PlanDef,
    PlanFeatureValue, ResetPeriod, SubscriptionStatus, UnitType
)

logger = get_logger("entitlements.billing_config")

BillingInterval = Literal["monthly", "quarterly", "yearly", "one_time"]
RecurringInterval = Literal["monthly", "quarterly", "yearly"]


class _Schema(BaseModel):
    model_config = ConfigDict(extra="forbid")


class FeatureSchema(_Schema):
    """Feature declaration."""
    name: str
    description: Optional[str] = None
    type: FeatureType
    unit_type: UnitType


class PlanFeatureSchema(_Schema):
    """Feature value inside a plan."""
    value_limit: Optional[float] = Field(None, ge=0)
    value_bool: Optional[bool] = None
    value_text: Optional[str] = None
    is_hard_limit: Optional[bool] = None
    reset_period: Optional[ResetPeriod] = None


class AddonFeatureSchema(_Schema):
    """Feature value inside an add-on."""
    value_limit: Optional[float] = Field(None, ge=0)
    type: Optional[AddonFeatureType] = None
    has_access: Optional[bool] = None
    is_hard_limit: Optional[bool] = None


class OverageSchema(_Schema):
    """Overage pricing for a metered feature."""
    overage_amount: float = Field(..., ge=0)
    overage_unit: float = Field(..., ge=1)


class PriceSchema(_Schema):
    """Plan price."""
    amount: float = Field(..., ge=0)
    currency: str
    billing_interval: BillingInterval
    trial_period_days: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    overage_configuration: Optional[Dict[str, OverageSchema]] = None
    available_addons: Optional[List[str]] = None


class PlanSchema(_Schema):
    """Plan declaration."""
    name: str
    description: Optional[str] = None
    is_default: bool
    is_public: bool
    type: Literal["paid", "free", "custom"]
    status: Literal["draft", "active", "archived"] = "active"
    prices: Optional[List[PriceSchema]] = None
    features: Dict[str, PlanFeatureSchema]


class AddonSchema(_Schema):
    """Add-on declaration."""
    name: str
    description: Optional[str] = None
    type: Literal["recurring", "one_time"]
    billing_interval: Optional[BillingInterval] = None
    amount: float = Field(..., ge=0)
    currency: str
    features: Dict[str, AddonFeatureSchema]

    @model_validator(mode="after")
    def require_interval_for_recurring(self) -> "AddonSchema":
        if self.type == "recurring":
            if self.billing_interval is None:
                raise ValueError("recurring add-ons require a billing_interval")
            if self.billing_interval not in get_args(RecurringInterval):
                raise ValueError(f"recurring add-ons cannot bill {self.billing_interval}")
        if self.type == "one_time":
            # ignored for one-time purchases
            self.billing_interval = None
        return self


class CouponSchema(_Schema):
    """Discount coupon declaration."""
    code: str
    name: Optional[str] = None
    type: Literal["percent", "amount"]
    value: float = Field(..., ge=0)
    duration: Literal["once", "forever", "repeating"]
    duration_in_months: Optional[int] = Field(None, ge=1)
    applies_to_plans: Optional[List[str]] = None
    max_redemptions: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_value_and_duration(self) -> "CouponSchema":
        if self.type == "percent" and self.value > 100:
            raise ValueError("percent discounts must be between 0 and 100")
        if self.duration == "repeating" and self.duration_in_months is None:
            raise ValueError("repeating coupons require duration_in_months")
        if self.duration != "repeating" and self.duration_in_months is not None:
            raise ValueError("duration_in_months is only valid for repeating coupons")
        return self


class BillingConfig(_Schema):
    """Root of a billing-as-code declaration."""
    features: Dict[str, FeatureSchema]
    plans: Dict[str, PlanSchema]
    addons: Optional[Dict[str, AddonSchema]] = None
    coupons: Optional[List[CouponSchema]] = None


def parse_billing_config(data: Dict[str, Any]) -> BillingConfig:
    """Validate the shape of an in-memory billing config."""
    try:
        return BillingConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid billing config",
            {"errors": [
                {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]}
        ) from e


def load_billing_config(path: Union[str, Path]) -> BillingConfig:
    """Read and validate a billing config from a JSON or YAML file."""
    path = Path(path)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read billing config {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        elif path.suffix == ".json":
            data = json.loads(text)
        else:
            raise ConfigurationError(f"Unsupported billing config format: {path.suffix or path.name}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot parse billing config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Billing config {path} must be a mapping")

    config = parse_billing_config(data)
    logger.info(
        "Billing config loaded",
        path=str(path),
        features=len(config.features),
        plans=len(config.plans),
        addons=len(config.addons or {})
    )
    return config


def _plan_feature(value: PlanFeatureSchema) -> PlanFeatureValue:
    return PlanFeatureValue(**value.model_dump())


def _addon_feature(value: AddonFeatureSchema) -> AddonFeatureValue:
    return AddonFeatureValue(**value.model_dump())


class BillingCatalog:
    """Plan, add-on and feature definitions built from a billing config."""

    def __init__(self, config: BillingConfig):
        self.config = config
        self.features: Dict[str, FeatureDef] = {
            slug: FeatureDef(
                slug=slug,
                name=feature.name,
                type=feature.type,
                unit_type=feature.unit_type,
                description=feature.description
            )
            for slug, feature in config.features.items()
        }
        self.plans: Dict[str, PlanDef] = {
            slug: PlanDef(
                slug=slug,
                name=plan.name,
                features={k: _plan_feature(v) for k, v in plan.features.items()}
            )
            for slug, plan in config.plans.items()
        }
        self.addons: Dict[str, AddonDef] = {
            slug: AddonDef(
                slug=slug,
                name=addon.name,
                features={k: _addon_feature(v) for k, v in addon.features.items()}
            )
            for slug, addon in (config.addons or {}).items()
        }

    def feature(self, slug: str) -> FeatureDef:
        if slug not in self.features:
            raise NotFoundError("Feature", slug)
        return self.features[slug]

    def plan(self, slug: str) -> PlanDef:
        if slug not in self.plans:
            raise NotFoundError("Plan", slug)
        return self.plans[slug]

    def addon(self, slug: str) -> AddonDef:
        if slug not in self.addons:
            raise NotFoundError("Addon", slug)
        return self.addons[slug]

    def default_plan(self) -> Optional[PlanDef]:
        """Return the plan flagged ``is_default``, if any."""
        for slug, plan in self.config.plans.items():
            if plan.is_default:
                return self.plans[slug]
        return None

    def engine_for(
        self,
        plan_slug: str,
        addon_slugs: Iterable[str] = (),
        subscription_status: Union[SubscriptionStatus, str] = SubscriptionStatus.ACTIVE
    ) -> EntitlementEngine:
        """Build an engine for one customer's plan, add-ons and status."""
        return EntitlementEngine(
            self.plan(plan_slug),
            [self.addon(slug) for slug in addon_slugs],
            subscription_status
        )
