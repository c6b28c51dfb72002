"""
Test helper functions and factory methods for the Billing Layer.
"""

import copy
import json
from pathlib import Path
from typing import Dict, Any, Optional

import yaml


_SAMPLE_BILLING_CONFIG: Dict[str, Any] = {
    "features": {
        "seats": {"name": "Seats", "type": "static", "unit_type": "count"},
        "sso": {"name": "Single Sign-On", "type": "boolean", "unit_type": "custom"},
        "ai_tokens": {"name": "AI Tokens", "type": "metered", "unit_type": "tokens"},
        "api_calls": {"name": "API Calls", "type": "metered", "unit_type": "requests"},
    },
    "plans": {
        "free": {
            "name": "Free",
            "is_default": True,
            "is_public": True,
            "type": "free",
            "features": {
                "seats": {"value_limit": 1, "is_hard_limit": True},
                "api_calls": {"value_limit": 1000, "is_hard_limit": True, "reset_period": "monthly"},
            },
        },
        "pro": {
            "name": "Pro",
            "is_default": False,
            "is_public": True,
            "type": "paid",
            "prices": [
                {
                    "amount": 2900,
                    "currency": "USD",
                    "billing_interval": "monthly",
                    "overage_configuration": {
                        "ai_tokens": {"overage_amount": 10, "overage_unit": 1000},
                    },
                    "available_addons": ["extra_seats", "sso_module", "enterprise_seats"],
                }
            ],
            "features": {
                "seats": {"value_limit": 5, "is_hard_limit": True},
                "ai_tokens": {"value_limit": 10000, "is_hard_limit": False, "reset_period": "monthly"},
                "api_calls": {"value_limit": 50000, "reset_period": "monthly"},
                "sso": {"value_bool": False},
            },
        },
    },
    "addons": {
        "extra_seats": {
            "name": "Extra Seats",
            "type": "recurring",
            "billing_interval": "monthly",
            "amount": 500,
            "currency": "USD",
            "features": {"seats": {"value_limit": 3, "type": "increment"}},
        },
        "enterprise_seats": {
            "name": "Enterprise Seats",
            "type": "recurring",
            "billing_interval": "monthly",
            "amount": 9900,
            "currency": "USD",
            "features": {"seats": {"value_limit": 20, "type": "set"}},
        },
        "sso_module": {
            "name": "SSO Module",
            "type": "one_time",
            "amount": 1000,
            "currency": "USD",
            "features": {"sso": {"has_access": True}},
        },
    },
    "coupons": [
        {"code": "LAUNCH20", "type": "percent", "value": 20, "duration": "repeating", "duration_in_months": 3},
    ],
}


class TestDataFactory:
    """Factory for creating test data."""

    __test__ = False

    @staticmethod
    def create_billing_config(**overrides) -> Dict[str, Any]:
        """Create a valid billing config dict; top-level keys can be overridden."""
        config = copy.deepcopy(_SAMPLE_BILLING_CONFIG)
        config.update(copy.deepcopy(overrides))
        return config

    @staticmethod
    def create_check_request(
        feature_id: str,
        plan: str = "pro",
        addons: Optional[list] = None,
        subscription_status: str = "active",
        current_usage: float = 0,
        customer_id: Optional[str] = "cus_test",
    ) -> Dict[str, Any]:
        """Create an entitlement check request body."""
        return {
            "plan": plan,
            "addons": addons or [],
            "subscription_status": subscription_status,
            "customer_id": customer_id,
            "feature_id": feature_id,
            "current_usage": current_usage,
        }


def write_billing_config(directory: Path, config: Dict[str, Any], fmt: str = "yaml") -> Path:
    """Write a billing config to ``directory`` as YAML or JSON and return its path."""
    path = Path(directory) / f"billing.{fmt}"
    if fmt == "json":
        path.write_text(json.dumps(config))
    else:
        path.write_text(yaml.safe_dump(config))
    return path
