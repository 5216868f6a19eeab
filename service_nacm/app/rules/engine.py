"""
Decision engine for the NACM decision service.
"""

import time
from typing import Any, Dict, List, Optional, Sequence

from access_shared.config import ServiceConfig, get_config
from access_shared.errors import PolicyNotLoadedError
from access_shared.logging import configure_logging, get_logger, request_context
from access_shared.metrics import MetricsCollector
from .groups import resolve_groups
from .matcher import command_rule_matches, rule_matches
from .models import (
    AccessRequest, CommandRule, DataRule, Operation, PolicySnapshot,
    RuleEffect, ValidationResult
)
from .store import PolicyStore


def validate(snapshot: PolicySnapshot, req: AccessRequest) -> ValidationResult:
    """Decide whether ``req`` is permitted under ``snapshot``.

    Algorithm:
    1. NACM disabled: permit without logging.
    2. Resolve the user's groups.
    3. Collect matching rules (command rules for command requests, data rules
       otherwise) from every rule list gated on ``*`` or one of those groups.
    4. The matching rule with the lowest ``order`` decides.
    5. With no match, apply the default for the operation class.
    """
    if not snapshot.enable_nacm:
        return ValidationResult(effect=RuleEffect.PERMIT, should_log=False)

    user_groups = resolve_groups(snapshot, req.user)

    if req.is_command:
        matches = _collect_command_matches(snapshot, user_groups, req)
    else:
        matches = _collect_data_matches(snapshot, user_groups, req)

    if matches:
        winner = min(matches, key=lambda rule: rule.order)
        return ValidationResult(
            effect=winner.effect,
            should_log=winner.should_log(winner.effect),
            matched_rule=winner.name
        )

    effect = default_effect(snapshot, req)
    return ValidationResult(effect=effect, should_log=snapshot.default_should_log(effect))


def default_effect(snapshot: PolicySnapshot, req: AccessRequest) -> RuleEffect:
    """Default policy for the request's operation class."""
    if req.is_command:
        # Every non-read operation falls under the exec-class command default
        if req.operation is Operation.READ:
            return snapshot.cmd_read_default
        return snapshot.cmd_exec_default

    if req.operation is Operation.READ:
        return snapshot.read_default
    if req.operation.is_write:
        return snapshot.write_default
    return snapshot.exec_default


def _collect_data_matches(snapshot: PolicySnapshot, user_groups, req: AccessRequest) -> List[DataRule]:
    return [
        rule
        for rule_list in snapshot.rule_lists if rule_list.applies_to(user_groups)
        for rule in rule_list.rules if rule_matches(rule, req)
    ]


def _collect_command_matches(snapshot: PolicySnapshot, user_groups, req: AccessRequest) -> List[CommandRule]:
    return [
        rule
        for rule_list in snapshot.rule_lists if rule_list.applies_to(user_groups)
        for rule in rule_list.command_rules if command_rule_matches(rule, req)
    ]


class DecisionEngine:
    """Service-facing engine: validates against the published snapshot."""

    def __init__(self, store: Optional[PolicyStore] = None, config: Optional[ServiceConfig] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.config = config or get_config("nacm")
        configure_logging(self.config.service_name, self.config.log_level)
        self.logger = get_logger("nacm.decision_engine")
        self.audit_logger = get_logger(self.config.audit_logger_name)
        self.metrics = metrics or MetricsCollector("nacm", enabled=self.config.enable_metrics)
        self.store = store or PolicyStore()

    def load(self, snapshot: PolicySnapshot) -> int:
        """Publish a new snapshot and return its version."""
        version = self.store.publish(snapshot)
        self.metrics.record_reload()
        self.logger.info(
            "Policy snapshot published", version=version, env=self.config.env, **snapshot.stats()
        )
        return version

    def evaluate(self, req: AccessRequest, request_id: Optional[str] = None) -> ValidationResult:
        """Validate ``req`` against the current snapshot.

        Decision log events carry ``request_id``, generated when not given.
        """
        with request_context(request_id):
            return self._decide(self._current(), req)

    def evaluate_many(self, requests: Sequence[AccessRequest],
                      request_id: Optional[str] = None) -> List[ValidationResult]:
        """Validate a batch of requests against one snapshot under one request ID."""
        snapshot = self._current()
        with request_context(request_id):
            return [self._decide(snapshot, req) for req in requests]

    def _current(self) -> PolicySnapshot:
        snapshot = self.store.current()
        if snapshot is None:
            raise PolicyNotLoadedError()
        return snapshot

    def _decide(self, snapshot: PolicySnapshot, req: AccessRequest) -> ValidationResult:
        start_time = time.perf_counter()
        result = validate(snapshot, req)
        duration = time.perf_counter() - start_time

        kind = "command" if req.is_command else "data"
        if not snapshot.enable_nacm:
            source = "bypass"
        elif result.matched_rule is None:
            source = "default"
        else:
            source = "rule"
        self.metrics.record_decision(result.effect.value, source, kind, duration)

        self.logger.debug(
            "Access decision",
            user=req.user,
            operation=req.operation.value,
            kind=kind,
            effect=result.effect.value,
            source=source,
            matched_rule=result.matched_rule
        )

        if result.should_log:
            self.audit_logger.info(
                "Access decision logged",
                **self._describe(req, result)
            )

        return result

    def get_engine_stats(self) -> Dict[str, Any]:
        """Get engine statistics."""
        snapshot = self.store.current()
        if snapshot is None:
            return {"loaded": False, "version": self.store.version}

        stats: Dict[str, Any] = {
            "loaded": True,
            "version": self.store.version,
            "enable_nacm": snapshot.enable_nacm,
        }
        stats.update(snapshot.stats())
        return stats

    @staticmethod
    def _describe(req: AccessRequest, result: ValidationResult) -> Dict[str, Any]:
        description: Dict[str, Any] = {
            "decision": result.effect.value,
            "user": req.user,
            "operation": req.operation.value,
            "matched_rule": result.matched_rule,
        }
        for key in ("module_name", "rpc_name", "path", "command"):
            value = getattr(req, key)
            if value is not None:
                description[key] = value
        if req.context is not None:
            description["context"] = req.context.canonical_name
        return description
