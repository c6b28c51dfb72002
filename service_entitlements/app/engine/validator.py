"""
Business-rule validation for billing configs.

Shape checks live in ``billing_config``; this module checks the rules
that span several sections of a config:

- exactly one plan is the default plan
- plans and add-ons reference only declared features
- overage pricing targets declared, metered features
- prices offer only declared add-ons, and recurring add-ons share the
  price's billing interval

Every violation is collected before ``ConfigValidationError`` is raised.
The engine never calls this module.
"""

from typing import Dict, Iterable, List

from shared.errors import ConfigValidationError
from .billing_config import AddonSchema, BillingConfig, PriceSchema
from .models import FeatureType


def _validate_default_plan(config: BillingConfig, errors: List[str]) -> None:
    default_plans = [slug for slug, plan in config.plans.items() if plan.is_default]

    if not default_plans:
        errors.append(
            "No default plan found. Every project must have exactly one plan with is_default: true."
        )
    elif len(default_plans) > 1:
        errors.append(
            f"Multiple default plans found ({', '.join(default_plans)}). "
            "Only one plan can have is_default: true."
        )


def _validate_feature_references(
    product_type: str,
    product_slug: str,
    feature_slugs: Iterable[str],
    known_features: Iterable[str],
    errors: List[str]
) -> None:
    known = set(known_features)
    for feature_slug in feature_slugs:
        if feature_slug not in known:
            errors.append(f'{product_type} "{product_slug}" references undefined feature "{feature_slug}".')


def _validate_price_addons(
    plan_slug: str,
    price: PriceSchema,
    addons: Dict[str, AddonSchema],
    errors: List[str]
) -> None:
    for addon_slug in price.available_addons or []:
        addon = addons.get(addon_slug)
        if addon is None:
            errors.append(f'Plan "{plan_slug}" price references undefined addon "{addon_slug}".')
            continue

        if addon.type == "recurring" and addon.billing_interval != price.billing_interval:
            errors.append(
                f"Interval Mismatch: Plan '{plan_slug}' price is '{price.billing_interval}', "
                f"but Addon '{addon_slug}' is '{addon.billing_interval}'. "
                "Recurring addons must match the price's billing interval."
            )


def _validate_plan_pricing(plan_slug: str, config: BillingConfig, errors: List[str]) -> None:
    for price in config.plans[plan_slug].prices or []:
        for feature_slug in (price.overage_configuration or {}):
            feature = config.features.get(feature_slug)
            if feature is None:
                errors.append(
                    f'Plan "{plan_slug}" overage_configuration references undefined feature "{feature_slug}".'
                )
            elif feature.type != FeatureType.METERED:
                errors.append(
                    f'Plan "{plan_slug}" configures overage for feature "{feature_slug}", '
                    "which is not of type 'metered'."
                )

        _validate_price_addons(plan_slug, price, config.addons or {}, errors)


def collect_config_errors(config: BillingConfig) -> List[str]:
    """Return every business-rule violation in ``config``."""
    errors: List[str] = []

    _validate_default_plan(config, errors)

    for slug, plan in config.plans.items():
        _validate_feature_references("Plan", slug, plan.features, config.features, errors)
        _validate_plan_pricing(slug, config, errors)

    for slug, addon in (config.addons or {}).items():
        _validate_feature_references("Addon", slug, addon.features, config.features, errors)

    return errors


def validate_config(config: BillingConfig) -> None:
    """Raise ``ConfigValidationError`` if ``config`` breaks any business rule."""
    errors = collect_config_errors(config)
    if errors:
        raise ConfigValidationError(errors)
