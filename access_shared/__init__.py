"""
Shared utilities for the NACM access layer.

This package aggregates common building blocks consumed by the decision
service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into access_shared/.
"""
