"""
Policy data models for the NACM decision service.

Every type here is an immutable value. A ``PolicySnapshot`` is built once
(see ``builder.py``) and then shared read-only between any number of
concurrent ``validate`` calls.
"""

from types import MappingProxyType
from typing import AbstractSet, Dict, FrozenSet, Mapping, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum

from access_shared.logging import get_logger
from access_shared.errors import UnknownTokenError


class Operation(str, Enum):
    """Access operation types."""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXEC = "exec"

    @classmethod
    def parse(cls, token: str) -> "Operation":
        """Parse an operation token, case-insensitively."""
        if not isinstance(token, str):
            raise UnknownTokenError("operation", token)
        try:
            return cls(token.strip().lower())
        except ValueError:
            raise UnknownTokenError("operation", token) from None

    @property
    def is_write(self) -> bool:
        return self in (Operation.CREATE, Operation.UPDATE, Operation.DELETE)


ALL_OPERATIONS: FrozenSet[Operation] = frozenset(Operation)
DEFAULT_COMMAND_OPERATIONS: FrozenSet[Operation] = frozenset({Operation.READ, Operation.EXEC})


class RuleEffect(str, Enum):
    """Rule effect types."""
    PERMIT = "permit"
    DENY = "deny"

    @classmethod
    def parse(cls, token: str) -> "RuleEffect":
        """Parse an effect token, case-insensitively."""
        if not isinstance(token, str):
            raise UnknownTokenError("rule effect", token)
        try:
            return cls(token.strip().lower())
        except ValueError:
            raise UnknownTokenError("rule effect", token) from None


def parse_operations(text: Optional[str]) -> FrozenSet[Operation]:
    """Parse a space-separated ``access-operations`` value.

    ``None`` yields the empty set and ``"*"`` yields every operation.
    Unrecognised tokens are dropped with a warning rather than rejected.
    """
    if text is None:
        return frozenset()
    if text.strip() == "*":
        return ALL_OPERATIONS

    operations = set()
    for token in text.split():
        try:
            operations.add(Operation.parse(token))
        except UnknownTokenError:
            get_logger("nacm.models").warning(
                "Dropping unknown access operation", token=token, value=text
            )
    return frozenset(operations)


class ContextKind(str, Enum):
    """Known management interfaces plus the open-ended fallback."""
    NETCONF = "netconf"
    CLI = "cli"
    WEBUI = "webui"
    OTHER = "other"


@dataclass(frozen=True)
class RequestContext:
    """Management interface a request originates from.

    Use the ``NETCONF``, ``CLI`` and ``WEBUI`` class attributes for the known
    interfaces and ``RequestContext.other(name)`` for anything else.
    """
    kind: ContextKind
    name: Optional[str] = None

    # Populated after the class body
    NETCONF = None  # type: RequestContext
    CLI = None  # type: RequestContext
    WEBUI = None  # type: RequestContext

    def __post_init__(self):
        if self.kind is ContextKind.OTHER and not self.name:
            raise ValueError("Other contexts need a name")
        if self.kind is not ContextKind.OTHER and self.name is not None:
            raise ValueError("Only other contexts carry a name")

    @classmethod
    def other(cls, name: str) -> "RequestContext":
        return cls(ContextKind.OTHER, name)

    @classmethod
    def parse(cls, text: str) -> "RequestContext":
        """Map a context name to a known variant, or wrap it as other."""
        lowered = text.strip().lower()
        for kind in (ContextKind.NETCONF, ContextKind.CLI, ContextKind.WEBUI):
            if lowered == kind.value:
                return cls(kind)
        return cls.other(text.strip())

    @property
    def canonical_name(self) -> str:
        if self.kind is ContextKind.OTHER:
            return self.name
        return self.kind.value

    def matches(self, pattern: str) -> bool:
        """Check a rule context pattern against this context."""
        if pattern == "*":
            return True
        return pattern.lower() == self.canonical_name.lower()

    def __str__(self) -> str:
        return self.canonical_name


RequestContext.NETCONF = RequestContext(ContextKind.NETCONF)
RequestContext.CLI = RequestContext(ContextKind.CLI)
RequestContext.WEBUI = RequestContext(ContextKind.WEBUI)


@dataclass(frozen=True)
class Group:
    """Named set of users."""
    name: str
    users: Tuple[str, ...] = ()
    gid: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "users", tuple(self.users))

    def has_member(self, user: str) -> bool:
        return user in self.users


@dataclass(frozen=True)
class DataRule:
    """Access rule over data nodes, RPCs and paths.

    An empty ``access_operations`` set matches every operation.
    """
    name: str
    effect: RuleEffect
    order: int
    module_name: Optional[str] = None
    rpc_name: Optional[str] = None
    path: Optional[str] = None
    access_operations: FrozenSet[Operation] = frozenset()
    context: Optional[str] = None
    log_if_permit: bool = False
    log_if_deny: bool = False

    def __post_init__(self):
        object.__setattr__(self, "access_operations", frozenset(self.access_operations))

    def should_log(self, effect: RuleEffect) -> bool:
        return self.log_if_permit if effect is RuleEffect.PERMIT else self.log_if_deny


@dataclass(frozen=True)
class CommandRule:
    """Access rule over free-form management commands.

    Unlike ``DataRule``, an unspecified operation set means read and exec.
    """
    name: str
    effect: RuleEffect
    order: int
    context: Optional[str] = None
    command: Optional[str] = None
    access_operations: FrozenSet[Operation] = DEFAULT_COMMAND_OPERATIONS
    log_if_permit: bool = False
    log_if_deny: bool = False
    comment: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "access_operations", frozenset(self.access_operations))

    def should_log(self, effect: RuleEffect) -> bool:
        return self.log_if_permit if effect is RuleEffect.PERMIT else self.log_if_deny


@dataclass(frozen=True)
class RuleList:
    """Group-gated ordered collection of data and command rules."""
    name: str
    groups: Tuple[str, ...] = ()
    rules: Tuple[DataRule, ...] = ()
    command_rules: Tuple[CommandRule, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "groups", tuple(self.groups))
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "command_rules", tuple(self.command_rules))

    def applies_to(self, user_groups: AbstractSet[str]) -> bool:
        """True if the list is gated on ``*`` or on one of ``user_groups``."""
        return any(group == "*" or group in user_groups for group in self.groups)


@dataclass(frozen=True)
class PolicySnapshot:
    """Complete, immutable access-control configuration."""
    enable_nacm: bool = True
    read_default: RuleEffect = RuleEffect.PERMIT
    write_default: RuleEffect = RuleEffect.DENY
    exec_default: RuleEffect = RuleEffect.PERMIT
    cmd_read_default: RuleEffect = RuleEffect.PERMIT
    cmd_exec_default: RuleEffect = RuleEffect.PERMIT
    log_if_default_permit: bool = False
    log_if_default_deny: bool = False
    groups: Mapping[str, Group] = field(default_factory=dict)
    rule_lists: Tuple[RuleList, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "groups", MappingProxyType(dict(self.groups)))
        object.__setattr__(self, "rule_lists", tuple(self.rule_lists))

    def default_should_log(self, effect: RuleEffect) -> bool:
        return self.log_if_default_permit if effect is RuleEffect.PERMIT else self.log_if_default_deny

    def stats(self) -> Dict[str, int]:
        """Summary counts of the snapshot contents."""
        return {
            "groups": len(self.groups),
            "rule_lists": len(self.rule_lists),
            "rules": sum(len(rule_list.rules) for rule_list in self.rule_lists),
            "command_rules": sum(len(rule_list.command_rules) for rule_list in self.rule_lists),
        }


@dataclass(frozen=True)
class AccessRequest:
    """Single access request; lives for one validate call."""
    user: str
    operation: Operation
    module_name: Optional[str] = None
    rpc_name: Optional[str] = None
    path: Optional[str] = None
    context: Optional[RequestContext] = None
    command: Optional[str] = None

    @property
    def is_command(self) -> bool:
        return self.command is not None


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validate call."""
    effect: RuleEffect
    should_log: bool = False
    matched_rule: Optional[str] = None

    @property
    def permitted(self) -> bool:
        return self.effect is RuleEffect.PERMIT
