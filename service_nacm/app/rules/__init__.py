"""
Rules engine package.

Defines the policy model and decision engine used by the NACM decision
service. Rule lists are gated on user groups, matching rules are ranked by
their precedence key, and operation-class defaults apply when nothing
matches. Each decision also reports whether it should be logged.

Modules of interest:
- models: Immutable policy snapshot, rules, requests and results.
- builder: Snapshot construction and precedence assignment.
- groups: Group membership resolution.
- matcher: Per-dimension guards for data rules and command rules.
- engine: The validate algorithm and the service-facing DecisionEngine.
- store: Atomic publication of snapshots for concurrent readers.
"""
