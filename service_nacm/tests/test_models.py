"""
Unit tests for the NACM policy data model.
"""

import dataclasses

import pytest
from structlog.testing import capture_logs

from access_shared.errors import UnknownTokenError
from service_nacm.app.rules.models import (
    AccessRequest, CommandRule, ContextKind, DataRule, Group, Operation,
    PolicySnapshot, RequestContext, RuleEffect, RuleList, ValidationResult,
    ALL_OPERATIONS, DEFAULT_COMMAND_OPERATIONS, parse_operations
)


class TestTokens:
    """Test cases for operation and effect tokens."""

    def test_operation_parse_is_case_insensitive(self):
        """Test operation tokens ignore case and whitespace."""
        assert Operation.parse("READ") is Operation.READ
        assert Operation.parse(" exec ") is Operation.EXEC

    def test_operation_parse_unknown(self):
        """Test unknown operation tokens are rejected."""
        with pytest.raises(UnknownTokenError) as exc_info:
            Operation.parse("write")

        assert exc_info.value.token == "write"
        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_write_operations(self):
        """Test create/update/delete are write operations."""
        assert {op for op in Operation if op.is_write} == {
            Operation.CREATE, Operation.UPDATE, Operation.DELETE
        }

    def test_effect_parse(self):
        """Test effect tokens."""
        assert RuleEffect.parse("Permit") is RuleEffect.PERMIT
        assert RuleEffect.parse("deny") is RuleEffect.DENY
        with pytest.raises(UnknownTokenError):
            RuleEffect.parse("allow")

    @pytest.mark.parametrize("token", [None, 3, b"read"])
    def test_parse_rejects_non_string_tokens(self, token):
        """Test non-string tokens raise UnknownTokenError."""
        with pytest.raises(UnknownTokenError) as exc_info:
            Operation.parse(token)
        assert exc_info.value.token is token

        with pytest.raises(UnknownTokenError):
            RuleEffect.parse(token)

    def test_parse_operations_none_is_empty(self):
        """Test a missing operation list yields the empty set."""
        assert parse_operations(None) == frozenset()

    def test_parse_operations_wildcard(self):
        """Test the wildcard operation list."""
        assert parse_operations(" * ") == ALL_OPERATIONS

    def test_parse_operations_space_separated(self):
        """Test space-separated operation lists."""
        assert parse_operations("read update") == {Operation.READ, Operation.UPDATE}

    def test_parse_operations_drops_unknown_tokens(self):
        """Test unknown tokens are dropped with a warning."""
        with capture_logs() as logs:
            operations = parse_operations("read wrte exec")

        assert operations == {Operation.READ, Operation.EXEC}
        assert any(
            entry["event"] == "Dropping unknown access operation" and entry["token"] == "wrte"
            for entry in logs
        )


class TestRequestContext:
    """Test cases for RequestContext."""

    def test_wildcard_matches_everything(self):
        """Test '*' matches every context."""
        for context in (RequestContext.NETCONF, RequestContext.CLI,
                        RequestContext.WEBUI, RequestContext.other("rest")):
            assert context.matches("*")

    def test_named_variants_match_case_insensitively(self):
        """Test known variants match their canonical names."""
        assert RequestContext.CLI.matches("cli")
        assert RequestContext.CLI.matches("CLI")
        assert RequestContext.WEBUI.matches("WebUI")
        assert RequestContext.NETCONF.matches("netconf")
        assert not RequestContext.CLI.matches("webui")

    def test_other_matches_its_name(self):
        """Test other contexts match their payload name."""
        context = RequestContext.other("RESTCONF")

        assert context.kind is ContextKind.OTHER
        assert context.matches("restconf")
        assert not context.matches("netconf")

    def test_parse(self):
        """Test parsing context names."""
        assert RequestContext.parse("CLI") == RequestContext.CLI
        assert RequestContext.parse("webui") == RequestContext.WEBUI
        assert RequestContext.parse("snmp") == RequestContext.other("snmp")

    def test_other_requires_name(self):
        """Test other contexts must carry a name."""
        with pytest.raises(ValueError):
            RequestContext(ContextKind.OTHER)

    def test_canonical_name(self):
        """Test canonical names."""
        assert RequestContext.NETCONF.canonical_name == "netconf"
        assert str(RequestContext.other("snmp")) == "snmp"


class TestValueTypes:
    """Test cases for rules, groups and snapshots."""

    def test_group_membership(self):
        """Test membership is a plain username lookup."""
        group = Group(name="admin", users=["alice", "bob"], gid=1000)

        assert group.has_member("alice")
        assert not group.has_member("carol")
        assert group.users == ("alice", "bob")

    def test_data_rule_defaults_to_all_operations(self):
        """Test data rules default to an empty (match-all) operation set."""
        rule = DataRule(name="r", effect=RuleEffect.PERMIT, order=0)

        assert rule.access_operations == frozenset()

    def test_command_rule_defaults_to_read_exec(self):
        """Test command rules default to read and exec."""
        rule = CommandRule(name="c", effect=RuleEffect.PERMIT, order=0)

        assert rule.access_operations == DEFAULT_COMMAND_OPERATIONS
        assert rule.access_operations == {Operation.READ, Operation.EXEC}

    def test_rule_should_log(self):
        """Test per-effect log flags."""
        rule = DataRule(name="r", effect=RuleEffect.PERMIT, order=0, log_if_permit=True)

        assert rule.should_log(RuleEffect.PERMIT) is True
        assert rule.should_log(RuleEffect.DENY) is False

    def test_rules_are_frozen(self):
        """Test rules cannot be mutated."""
        rule = DataRule(name="r", effect=RuleEffect.PERMIT, order=0)

        with pytest.raises(dataclasses.FrozenInstanceError):
            rule.order = 5

    def test_snapshot_groups_are_read_only(self):
        """Test snapshot group mapping cannot be mutated."""
        snapshot = PolicySnapshot(groups={"admin": Group(name="admin", users=("alice",))})

        with pytest.raises(TypeError):
            snapshot.groups["oper"] = Group(name="oper")

    def test_snapshot_defaults(self):
        """Test snapshot defaults."""
        snapshot = PolicySnapshot()

        assert snapshot.enable_nacm is True
        assert snapshot.cmd_read_default is RuleEffect.PERMIT
        assert snapshot.cmd_exec_default is RuleEffect.PERMIT
        assert snapshot.log_if_default_permit is False
        assert snapshot.log_if_default_deny is False

    def test_snapshot_stats(self):
        """Test snapshot summary counts."""
        rule_list = RuleList(
            name="list",
            groups=["*"],
            rules=[DataRule(name="r1", effect=RuleEffect.PERMIT, order=0),
                   DataRule(name="r2", effect=RuleEffect.DENY, order=1)],
            command_rules=[CommandRule(name="c1", effect=RuleEffect.PERMIT, order=2)]
        )
        snapshot = PolicySnapshot(groups={"g": Group(name="g")}, rule_lists=[rule_list])

        assert snapshot.stats() == {"groups": 1, "rule_lists": 1, "rules": 2, "command_rules": 1}

    def test_rule_list_applies_to(self):
        """Test the rule list applicability gate."""
        gated = RuleList(name="admin", groups=["admin"])
        wildcard = RuleList(name="all", groups=["*"])
        ungated = RuleList(name="none")

        assert gated.applies_to({"admin", "oper"})
        assert not gated.applies_to({"oper"})
        assert wildcard.applies_to(set())
        assert not ungated.applies_to({"admin"})
        assert gated.applies_to(frozenset({"admin"}))

    def test_request_is_command(self):
        """Test command requests are detected by the command field."""
        assert AccessRequest(user="u", operation=Operation.READ, command="show").is_command
        assert not AccessRequest(user="u", operation=Operation.READ).is_command

    def test_result_permitted(self):
        """Test result helpers."""
        assert ValidationResult(effect=RuleEffect.PERMIT).permitted
        assert not ValidationResult(effect=RuleEffect.DENY, should_log=True).permitted
