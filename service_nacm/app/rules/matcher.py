"""
Predicate matching for data rules and command rules.

Each dimension of a rule (operation, context, module, RPC, path, command)
is checked by its own guard. A rule matches a request only when every guard
passes; evaluation stops at the first failing guard.
"""

from typing import AbstractSet, Optional

from .models import AccessRequest, CommandRule, DataRule, Operation, RequestContext

WILDCARD = "*"


def operation_allowed(access_operations: AbstractSet[Operation], operation: Operation) -> bool:
    """An empty operation set covers every operation."""
    return not access_operations or operation in access_operations


def context_allowed(pattern: Optional[str], context: Optional[RequestContext]) -> bool:
    """A request without a context only satisfies the ``*`` pattern."""
    if pattern is None:
        return True
    if context is None:
        return pattern == WILDCARD
    return context.matches(pattern)


def module_allowed(module_name: Optional[str], requested: Optional[str]) -> bool:
    if module_name is None:
        return True
    return requested is not None and requested == module_name


def rpc_allowed(rpc_name: Optional[str], requested: Optional[str]) -> bool:
    """``*`` matches any RPC, including none at all."""
    if rpc_name is None or rpc_name == WILDCARD:
        return True
    return requested is not None and requested == rpc_name


def path_allowed(path: Optional[str], requested: Optional[str]) -> bool:
    """Match a rule path against a request path.

    ``/`` matches everything, a trailing ``/*`` is a prefix match on the
    part before it, anything else must be equal.
    """
    if path is None or path == "/":
        return True
    if requested is None:
        return False
    if path.endswith("/*"):
        return requested.startswith(path[:-2])
    return requested == path


def command_matches(pattern: str, command: str) -> bool:
    """Match a command pattern such as ``show *`` against command text."""
    if pattern == WILDCARD or pattern == command:
        return True
    if pattern.endswith(WILDCARD):
        return command.startswith(pattern[:-1].strip())
    return False


def command_allowed(pattern: Optional[str], command: Optional[str]) -> bool:
    if pattern is None or pattern == WILDCARD:
        return True
    if command is None:
        return False
    return command_matches(pattern, command)


def rule_matches(rule: DataRule, req: AccessRequest) -> bool:
    """Check whether a data rule applies to ``req``."""
    return (
        operation_allowed(rule.access_operations, req.operation)
        and context_allowed(rule.context, req.context)
        and module_allowed(rule.module_name, req.module_name)
        and rpc_allowed(rule.rpc_name, req.rpc_name)
        and path_allowed(rule.path, req.path)
    )


def command_rule_matches(rule: CommandRule, req: AccessRequest) -> bool:
    """Check whether a command rule applies to ``req``."""
    return (
        operation_allowed(rule.access_operations, req.operation)
        and context_allowed(rule.context, req.context)
        and command_allowed(rule.command, req.command)
    )
