"""
Entitlements Service package for the Billing Layer.

This package answers whether a customer may use a feature right now,
given their plan, purchased add-ons and subscription status. It provides:

- app.main: API surface for entitlement checks, catalog listings and health.
- app.engine: Entitlement data model, engine and billing config loading.

Guidelines:
- The service is stateless; usage counters are owned by the caller and
  passed in as snapshots.
- Denials are results, not errors. Only unknown plans or add-ons and a
  missing billing config produce error responses.
"""
