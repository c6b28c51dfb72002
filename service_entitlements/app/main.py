"""
Entitlements service for the Billing Layer.
"""

from typing import Dict, Optional

from shared.base_service import BaseService
from shared.errors import ServiceError
from shared.logging import set_customer_context
from shared.metrics import measure_time

from .engine.billing_config import BillingCatalog, BillingConfig, load_billing_config
from .engine.engine import EntitlementEngine
from .engine.models import (
    CheckResult, EntitlementCheckRequest, EntitlementBatchCheckRequest,
    EntitlementCheckResponse, EntitlementBatchCheckResponse
)
from .engine.validator import validate_config


class EntitlementsService(BaseService):
    """Entitlements service implementation."""

    def __init__(self, billing_config: Optional[BillingConfig] = None, **config_overrides):
        super().__init__("entitlements", 8011, **config_overrides)

        self.catalog: Optional[BillingCatalog] = None
        if billing_config is not None:
            self.load_catalog(billing_config)
        elif self.config.billing_config_file:
            self.load_catalog(load_billing_config(self.config.billing_config_file))
        else:
            self.logger.warning("No billing config configured; checks will be rejected")

        self._setup_entitlements_routes()

    def load_catalog(self, billing_config: BillingConfig) -> BillingCatalog:
        """Validate a billing config and make it the active catalog."""
        if self.config.validate_billing_config:
            validate_config(billing_config)

        self.catalog = BillingCatalog(billing_config)
        self.metrics.record_business_event("billing_catalog_loaded")
        self.logger.info(
            "Billing catalog loaded",
            plans=len(self.catalog.plans),
            addons=len(self.catalog.addons),
            features=len(self.catalog.features)
        )
        return self.catalog

    def _require_catalog(self) -> BillingCatalog:
        if self.catalog is None:
            raise ServiceError("No billing config loaded")
        return self.catalog

    def _engine_for(self, request) -> EntitlementEngine:
        set_customer_context(request.customer_id)
        return self._require_catalog().engine_for(
            request.plan, request.addons, request.subscription_status
        )

    def _record_result(self, feature_id: str, result: CheckResult, **fields):
        reason = result.reason.value if result.reason else "unlimited"
        self.metrics.increment_counter("entitlement_checks_total", reason=reason)
        self.logger.info(
            "Entitlement check completed",
            feature_id=feature_id,
            allowed=result.allowed,
            reason=reason,
            granted_by=list(result.granted_by),
            **fields
        )

    def _setup_entitlements_routes(self):
        """Set up entitlements-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "entitlements",
                "message": "Billing Layer - Entitlements Service",
                "version": "1.0.0",
                "capabilities": ["entitlement_engine", "batch_checks", "billing_config"],
                "catalog_loaded": self.catalog is not None
            }

        @self.app.post("/entitlements/check", response_model=EntitlementCheckResponse)
        @measure_time("entitlement_check_duration_seconds", self.metrics, operation="check")
        async def check_entitlement(request: EntitlementCheckRequest):
            """Check one feature for a customer."""
            engine = self._engine_for(request)
            result = engine.check(request.feature_id, request.current_usage)

            self._record_result(
                request.feature_id,
                result,
                plan=request.plan,
                addons=request.addons,
                subscription_status=request.subscription_status.value,
                current_usage=request.current_usage
            )
            return EntitlementCheckResponse.from_result(result)

        @self.app.post("/entitlements/check/batch", response_model=EntitlementBatchCheckResponse)
        @measure_time("entitlement_check_duration_seconds", self.metrics, operation="batch")
        async def check_entitlements_batch(request: EntitlementBatchCheckRequest):
            """Check several features for a customer."""
            engine = self._engine_for(request)
            results = engine.check_batch(request.usages)

            for feature_id, result in results.items():
                self._record_result(feature_id, result, plan=request.plan, batch=True)

            return EntitlementBatchCheckResponse(results={
                feature_id: EntitlementCheckResponse.from_result(result)
                for feature_id, result in results.items()
            })

        @self.app.get("/entitlements/plans")
        async def list_plans():
            """List plans in the active catalog."""
            config = self._require_catalog().config
            return {
                "plans": [
                    {
                        "slug": slug,
                        "name": plan.name,
                        "is_default": plan.is_default,
                        "is_public": plan.is_public,
                        "status": plan.status,
                        "features": sorted(plan.features)
                    }
                    for slug, plan in config.plans.items()
                ],
                "total": len(config.plans)
            }

        @self.app.get("/entitlements/addons")
        async def list_addons():
            """List add-ons in the active catalog."""
            addons = self._require_catalog().config.addons or {}
            return {
                "addons": [
                    {
                        "slug": slug,
                        "name": addon.name,
                        "type": addon.type,
                        "billing_interval": addon.billing_interval,
                        "features": sorted(addon.features)
                    }
                    for slug, addon in addons.items()
                ],
                "total": len(addons)
            }

        @self.app.get("/entitlements/features")
        async def list_features():
            """List features in the active catalog."""
            features = self._require_catalog().features
            return {
                "features": [
                    {
                        "slug": feature.slug,
                        "name": feature.name,
                        "type": feature.type.value,
                        "unit_type": feature.unit_type.value
                    }
                    for feature in features.values()
                ],
                "total": len(features)
            }

    async def _check_dependencies(self) -> Dict[str, str]:
        """Report whether a billing catalog is loaded."""
        return {"billing_config": "ok" if self.catalog is not None else "missing"}


def create_app(billing_config: Optional[BillingConfig] = None, **config_overrides):
    """Create entitlements service application."""
    service = EntitlementsService(billing_config, **config_overrides)
    return service.app


if __name__ == "__main__":
    service = EntitlementsService()
    service.run()
