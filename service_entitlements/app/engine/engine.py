"""
Entitlement evaluation engine for Entitlements Service.
"""

import math
from functools import reduce
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union

from shared.logging import get_logger
from .models import (
    AddonDef, AddonFeatureValue, PlanDef, PlanFeatureValue, CheckResult, CheckReason,
    SubscriptionStatus, BLOCKED_STATUSES, Number
)


BLOCKED_RESULT = CheckResult(allowed=False, reason=CheckReason.PAST_DUE, remaining=0)
FEATURE_MISSING_RESULT = CheckResult(allowed=False, reason=CheckReason.FEATURE_MISSING)


class _Aggregate(NamedTuple):
    """Running totals folded over the plan and add-on contributions."""
    total_limit: Number = 0
    has_access: bool = False
    is_infinite: bool = False
    hard_limit: bool = True
    granted_by: Tuple[str, ...] = ()


def _append(granted_by: Tuple[str, ...], slug: str) -> Tuple[str, ...]:
    return granted_by if slug in granted_by else granted_by + (slug,)


def _apply_plan(acc: _Aggregate, slug: str, value: PlanFeatureValue) -> _Aggregate:
    if value.value_bool is True:
        acc = acc._replace(has_access=True, is_infinite=True, granted_by=(slug,))
    if value.value_limit is not None:
        acc = acc._replace(
            has_access=True,
            total_limit=acc.total_limit + value.value_limit,
            granted_by=(slug,),
        )
    if value.is_hard_limit is False:
        acc = acc._replace(hard_limit=False)
    return acc


def _apply_addon(acc: _Aggregate, entry: Tuple[str, AddonFeatureValue]) -> _Aggregate:
    slug, value = entry

    if value.has_access is True:
        acc = acc._replace(
            has_access=True,
            is_infinite=True,
            granted_by=_append(acc.granted_by, slug),
        )

    if value.value_limit is not None:
        if value.is_set:
            # set supersedes every earlier contributor
            acc = acc._replace(has_access=True, total_limit=value.value_limit, granted_by=(slug,))
        else:
            acc = acc._replace(
                has_access=True,
                total_limit=acc.total_limit + value.value_limit,
                granted_by=_append(acc.granted_by, slug),
            )

    # Soft limits are sticky, even across a later set
    if value.is_hard_limit is False:
        acc = acc._replace(hard_limit=False)

    return acc


class EntitlementEngine:
    """Evaluates feature access for a single customer.

    Built from the customer's active plan, purchased add-ons and the
    subscription status. Every call to ``check`` is independent and
    side-effect free, so one engine can be shared across threads.

    Add-on limits are summed onto the plan unless the add-on uses ``set``,
    in which case it replaces whatever was accumulated. ``set`` entries are
    always applied before ``increment`` entries regardless of the order the
    add-ons were supplied in. If any source marks the feature as a soft
    limit, usage past the limit is reported as ``overage_allowed``.
    """

    def __init__(
        self,
        plan: PlanDef,
        addons: Optional[Iterable[AddonDef]] = None,
        subscription_status: Union[SubscriptionStatus, str] = SubscriptionStatus.ACTIVE,
    ):
        self.logger = get_logger("entitlements.engine")
        self._plan = plan
        self._addons: Tuple[AddonDef, ...] = tuple(addons or ())
        self._subscription_status = SubscriptionStatus(subscription_status)

    @property
    def plan(self) -> PlanDef:
        return self._plan

    @property
    def addons(self) -> Tuple[AddonDef, ...]:
        return self._addons

    @property
    def subscription_status(self) -> SubscriptionStatus:
        return self._subscription_status

    @property
    def is_blocked(self) -> bool:
        return self._subscription_status in BLOCKED_STATUSES

    def check(self, feature_id: str, current_usage: Number = 0) -> CheckResult:
        """Check whether the customer may use ``feature_id`` at ``current_usage``."""
        if self.is_blocked:
            return BLOCKED_RESULT

        plan_value = self._plan.features.get(feature_id)
        addon_entries = self._collect_addon_entries(feature_id)

        if plan_value is None and not addon_entries:
            return FEATURE_MISSING_RESULT

        acc = _Aggregate()
        if plan_value is not None:
            acc = _apply_plan(acc, self._plan.slug, plan_value)
        acc = reduce(_apply_addon, addon_entries, acc)

        result = self._evaluate(acc, current_usage)

        self.logger.debug(
            "Entitlement check result",
            feature_id=feature_id,
            current_usage=current_usage,
            allowed=result.allowed,
            reason=result.reason.value if result.reason else None,
            granted_by=list(result.granted_by),
        )

        return result

    def check_batch(self, usages: Mapping[str, Number]) -> Dict[str, CheckResult]:
        """Run ``check`` for every feature in ``usages``."""
        return {
            feature_id: self.check(feature_id, usage)
            for feature_id, usage in usages.items()
        }

    def _collect_addon_entries(self, feature_id: str) -> List[Tuple[str, AddonFeatureValue]]:
        """Collect the add-ons defining the feature, ``set`` entries first.

        ``sorted`` is stable, so caller order is kept within each group.
        """
        entries = [
            (addon.slug, addon.features[feature_id])
            for addon in self._addons
            if feature_id in addon.features
        ]
        return sorted(entries, key=lambda entry: 0 if entry[1].is_set else 1)

    @staticmethod
    def _evaluate(acc: _Aggregate, current_usage: Number) -> CheckResult:
        if not acc.has_access:
            return FEATURE_MISSING_RESULT

        if acc.is_infinite:
            return CheckResult(allowed=True, remaining=math.inf, granted_by=acc.granted_by)

        if current_usage < acc.total_limit:
            return CheckResult(
                allowed=True,
                reason=CheckReason.INCLUDED,
                remaining=acc.total_limit - current_usage,
                granted_by=acc.granted_by,
            )

        # Whether overage is billable is decided here; its price is not
        if not acc.hard_limit:
            return CheckResult(
                allowed=True,
                reason=CheckReason.OVERAGE_ALLOWED,
                remaining=0,
                granted_by=acc.granted_by,
            )

        return CheckResult(
            allowed=False,
            reason=CheckReason.LIMIT_REACHED,
            remaining=0,
            granted_by=acc.granted_by,
        )
