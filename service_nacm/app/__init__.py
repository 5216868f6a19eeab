"""
NACM decision service package for the access layer.

This package decides whether a management-plane request (data access, RPC
or free-form command) is permitted under an NACM-style policy. It provides:

- app.rules: Policy model, snapshot construction, predicate matching and
  the decision engine.

Guidelines:
- Decisions are pure functions of (snapshot, request); nothing is cached.
- Snapshots are immutable; reload by publishing a new one.
- Keep decisions deterministic and observable (metrics + logs).
"""
