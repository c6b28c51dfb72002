"""
Integration tests for Entitlements service flow.
"""

import pytest
import httpx

from shared.test_helpers import TestDataFactory, write_billing_config
from service_entitlements.app.main import EntitlementsService


class TestEntitlementsFlow:
    """Integration tests driving the service from a billing config file."""

    @pytest.fixture
    def billing_config_file(self, tmp_path):
        """Write the sample billing config as YAML."""
        return write_billing_config(tmp_path, TestDataFactory.create_billing_config())

    @pytest.fixture
    def service(self, billing_config_file):
        """Service started from the billing config file."""
        return EntitlementsService(billing_config_file=str(billing_config_file))

    @pytest.fixture
    def entitlements_url(self):
        """Entitlements service base URL."""
        return "http://entitlements.test"

    @pytest.mark.asyncio
    async def test_customer_upgrade_flow(self, service, entitlements_url):
        """Test a customer moving from the free plan to pro with add-ons."""
        transport = httpx.ASGITransport(app=service.app)
        async with httpx.AsyncClient(transport=transport, base_url=entitlements_url) as client:
            # Free plan: second seat is refused
            free = await client.post(
                "/entitlements/check",
                json=TestDataFactory.create_check_request("seats", plan="free", current_usage=1)
            )
            assert free.status_code == 200
            assert free.json()["reason"] == "limit_reached"

            # Pro plan with extra seats
            pro = await client.post(
                "/entitlements/check",
                json=TestDataFactory.create_check_request("seats", addons=["extra_seats"], current_usage=7)
            )
            assert pro.json()["allowed"] is True
            assert pro.json()["remaining"] == 1

            # Enterprise seats override the plan regardless of add-on order
            enterprise = await client.post(
                "/entitlements/check/batch",
                json={
                    "plan": "pro",
                    "addons": ["extra_seats", "sso_module", "enterprise_seats"],
                    "customer_id": "cus_42",
                    "usages": {"seats": 22, "sso": 0, "ai_tokens": 25000},
                }
            )
            results = enterprise.json()["results"]
            assert results["seats"] == {
                "allowed": True,
                "reason": "included",
                "remaining": 1,
                "unlimited": False,
                "granted_by": ["enterprise_seats", "extra_seats"],
            }
            assert results["sso"]["unlimited"] is True
            assert results["ai_tokens"]["reason"] == "overage_allowed"

    @pytest.mark.asyncio
    async def test_canceled_subscription_flow(self, service, entitlements_url):
        """Test a canceled subscription loses every entitlement."""
        transport = httpx.ASGITransport(app=service.app)
        async with httpx.AsyncClient(transport=transport, base_url=entitlements_url) as client:
            response = await client.post(
                "/entitlements/check/batch",
                json={
                    "plan": "pro",
                    "addons": ["sso_module"],
                    "subscription_status": "canceled",
                    "usages": {"seats": 0, "sso": 0, "api_calls": 0},
                }
            )

            assert response.status_code == 200
            for result in response.json()["results"].values():
                assert result["allowed"] is False
                assert result["reason"] == "past_due"
                assert result["remaining"] == 0

    @pytest.mark.asyncio
    async def test_catalog_matches_config(self, service, entitlements_url):
        """Test the catalog endpoints reflect the loaded file."""
        transport = httpx.ASGITransport(app=service.app)
        async with httpx.AsyncClient(transport=transport, base_url=entitlements_url) as client:
            plans = (await client.get("/entitlements/plans")).json()
            addons = (await client.get("/entitlements/addons")).json()
            health = (await client.get("/health")).json()

            assert {plan["slug"] for plan in plans["plans"]} == {"free", "pro"}
            assert {addon["slug"] for addon in addons["addons"]} == {"extra_seats", "enterprise_seats", "sso_module"}
            assert health["dependencies"]["billing_config"] == "ok"
