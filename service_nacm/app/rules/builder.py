"""
Construction of policy snapshots.

Loaders translate their source format into calls on ``SnapshotBuilder`` and
receive a fully-formed, immutable ``PolicySnapshot`` from ``build()``. Rule
precedence is assigned here from a single counter that runs across the whole
snapshot in declaration order.
"""

import itertools
from typing import Any, Dict, Iterable, List, Optional, Union

from access_shared.errors import PolicyConstructionError, UnknownTokenError
from access_shared.logging import get_logger
from .models import (
    CommandRule, DataRule, Group, Operation, PolicySnapshot, RuleEffect, RuleList,
    DEFAULT_COMMAND_OPERATIONS, parse_operations
)

EffectLike = Union[RuleEffect, str]
OperationsLike = Union[str, Iterable[Union[Operation, str]], None]


def _effect(value: EffectLike, owner: str) -> RuleEffect:
    if isinstance(value, RuleEffect):
        return value
    try:
        return RuleEffect.parse(value)
    except UnknownTokenError as e:
        raise PolicyConstructionError(
            f"Invalid effect for {owner}: {value}",
            {"owner": owner, "token": value}
        ) from e


def _operations(value: OperationsLike, owner: str):
    if value is None or isinstance(value, str):
        return parse_operations(value)
    operations = set()
    for item in value:
        if isinstance(item, Operation):
            operations.add(item)
            continue
        try:
            operations.add(Operation.parse(item))
        except UnknownTokenError as e:
            raise PolicyConstructionError(
                f"Invalid operation for {owner}: {item}",
                {"owner": owner, "token": item}
            ) from e
    return frozenset(operations)


class RuleListBuilder:
    """Accumulates the rules of one rule list."""

    def __init__(self, name: str, groups: Iterable[str]):
        self.name = name
        self.groups = tuple(groups)
        self._rules: List[Dict[str, Any]] = []
        self._command_rules: List[Dict[str, Any]] = []

    def add_rule(self, name: str, effect: EffectLike, module_name: Optional[str] = None,
                 rpc_name: Optional[str] = None, path: Optional[str] = None,
                 access_operations: OperationsLike = None, context: Optional[str] = None,
                 log_if_permit: bool = False, log_if_deny: bool = False) -> "RuleListBuilder":
        """Declare a data rule; no operations means every operation."""
        self._check_unique(name, self._rules, "rule")
        owner = f"rule {self.name}/{name}"
        self._rules.append({
            "name": name,
            "effect": _effect(effect, owner),
            "module_name": module_name,
            "rpc_name": rpc_name,
            "path": path,
            "access_operations": _operations(access_operations, owner),
            "context": context,
            "log_if_permit": log_if_permit,
            "log_if_deny": log_if_deny,
        })
        return self

    def add_command_rule(self, name: str, effect: EffectLike, context: Optional[str] = None,
                         command: Optional[str] = None, access_operations: OperationsLike = None,
                         log_if_permit: bool = False, log_if_deny: bool = False,
                         comment: Optional[str] = None) -> "RuleListBuilder":
        """Declare a command rule; no operations means read and exec."""
        self._check_unique(name, self._command_rules, "command rule")
        owner = f"command rule {self.name}/{name}"
        if access_operations is None:
            operations = DEFAULT_COMMAND_OPERATIONS
        else:
            operations = _operations(access_operations, owner)
        self._command_rules.append({
            "name": name,
            "effect": _effect(effect, owner),
            "context": context,
            "command": command,
            "access_operations": operations,
            "log_if_permit": log_if_permit,
            "log_if_deny": log_if_deny,
            "comment": comment,
        })
        return self

    def _check_unique(self, name: str, declared: List[Dict[str, Any]], kind: str):
        if any(spec["name"] == name for spec in declared):
            raise PolicyConstructionError(
                f"Duplicate {kind} name in rule list {self.name}: {name}",
                {"rule_list": self.name, "name": name}
            )

    def _build(self, next_order) -> RuleList:
        rules = tuple(DataRule(order=next_order(), **spec) for spec in self._rules)
        command_rules = tuple(CommandRule(order=next_order(), **spec) for spec in self._command_rules)
        return RuleList(
            name=self.name,
            groups=self.groups,
            rules=rules,
            command_rules=command_rules
        )


class SnapshotBuilder:
    """Assembles a ``PolicySnapshot``."""

    def __init__(self, enable_nacm: bool = True,
                 read_default: EffectLike = RuleEffect.PERMIT,
                 write_default: EffectLike = RuleEffect.DENY,
                 exec_default: EffectLike = RuleEffect.PERMIT,
                 cmd_read_default: EffectLike = RuleEffect.PERMIT,
                 cmd_exec_default: EffectLike = RuleEffect.PERMIT,
                 log_if_default_permit: bool = False,
                 log_if_default_deny: bool = False):
        self.logger = get_logger("nacm.snapshot_builder")
        self.enable_nacm = enable_nacm
        self.defaults = {
            "read_default": _effect(read_default, "read-default"),
            "write_default": _effect(write_default, "write-default"),
            "exec_default": _effect(exec_default, "exec-default"),
            "cmd_read_default": _effect(cmd_read_default, "cmd-read-default"),
            "cmd_exec_default": _effect(cmd_exec_default, "cmd-exec-default"),
        }
        self.log_if_default_permit = log_if_default_permit
        self.log_if_default_deny = log_if_default_deny
        self._groups: Dict[str, Group] = {}
        self._rule_lists: List[RuleListBuilder] = []

    def add_group(self, name: str, users: Iterable[str] = (), gid: Optional[int] = None) -> "SnapshotBuilder":
        """Declare a group; names must be unique."""
        if name in self._groups:
            raise PolicyConstructionError(f"Duplicate group name: {name}", {"group": name})
        if gid is not None and gid < 0:
            raise PolicyConstructionError(f"Invalid gid for group {name}: {gid}", {"group": name, "gid": gid})
        self._groups[name] = Group(name=name, users=tuple(users), gid=gid)
        return self

    def add_rule_list(self, name: str, groups: Iterable[str]) -> RuleListBuilder:
        """Declare a rule list and return its builder.

        Group names are not checked against declared groups; ``*`` gates the
        list on every user.
        """
        if any(rule_list.name == name for rule_list in self._rule_lists):
            raise PolicyConstructionError(f"Duplicate rule list name: {name}", {"rule_list": name})
        rule_list = RuleListBuilder(name, groups)
        self._rule_lists.append(rule_list)
        return rule_list

    def build(self) -> PolicySnapshot:
        """Return a new immutable snapshot with precedence assigned."""
        counter = itertools.count()

        def next_order() -> int:
            return next(counter)

        snapshot = PolicySnapshot(
            enable_nacm=self.enable_nacm,
            log_if_default_permit=self.log_if_default_permit,
            log_if_default_deny=self.log_if_default_deny,
            groups=dict(self._groups),
            rule_lists=tuple(rule_list._build(next_order) for rule_list in self._rule_lists),
            **self.defaults
        )
        self.logger.debug("Policy snapshot built", **snapshot.stats())
        return snapshot
