"""Tests for the data model, closure graph, cycle guard, activity and config."""

from datetime import datetime, timedelta, timezone

import pytest

from nestaudit.analysis.activity import classify_activity, days_since
from nestaudit.analysis.cycle_guard import CycleGuard
from nestaudit.config import NestAuditConfig, TraversalConfig
from nestaudit.model.graph_builder import ClosureGraph
from nestaudit.model.schemas import (
    ActivityState, ClosureWarning, DirectoryObject, MembershipEdge, NodeType
)

from conftest import NOW, make_group, make_user


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class TestNodeType:
    @pytest.mark.parametrize("label, expected", [
        ("User", NodeType.USER),
        ("group", NodeType.GROUP),
        ("Computers", NodeType.COMPUTER),
        ("inetOrgPerson", NodeType.USER),
        ("OU", NodeType.UNKNOWN),
        ("", NodeType.UNKNOWN),
    ])
    def test_from_string(self, label, expected):
        assert NodeType.from_string(label) == expected

    def test_computer_object_class_wins_over_user(self):
        classes = ["top", "person", "organizationalPerson", "user", "computer"]
        assert NodeType.from_object_classes(classes) == NodeType.COMPUTER


class TestDirectoryObject:
    def test_identity_is_the_object_id(self):
        first = DirectoryObject("S-1-5-21-1-1001", "jdoe", NodeType.USER)
        second = DirectoryObject("S-1-5-21-1-1001", "JDOE", NodeType.USER)

        assert first == second
        assert len({first, second}) == 1

    def test_display_name_falls_back_to_name(self):
        assert make_user("jdoe", displayName="John Doe").display_name == "John Doe"
        assert make_user("jdoe").display_name == "jdoe"

    def test_to_dict_serializes_timestamps(self):
        data = make_user("jdoe", days_ago=1).to_dict()

        assert data["node_type"] == "User"
        assert data["properties"]["lastLogonTimestamp"] == (NOW - timedelta(days=1)).isoformat()

    def test_warning_str_includes_object(self):
        warning = ClosureWarning(object_id="G1", message="permission denied")

        assert str(warning) == "G1: permission denied"
        assert warning.to_dict()["kind"] == "lookup"


# ---------------------------------------------------------------------------
# ClosureGraph
# ---------------------------------------------------------------------------


class TestClosureGraph:
    def test_first_object_wins(self):
        graph = ClosureGraph()

        assert graph.add_object(DirectoryObject("G1", "first", NodeType.GROUP))
        assert not graph.add_object(DirectoryObject("G1", "second", NodeType.GROUP))
        assert graph.get_object("G1").name == "first"
        assert graph.object_count == 1

    def test_edges_are_deduplicated_by_pair(self):
        graph = ClosureGraph()

        assert graph.add_edge(MembershipEdge("U", "G1"))
        assert not graph.add_edge(MembershipEdge("U", "G1"))
        assert graph.add_edge(MembershipEdge("G1", "U"))
        assert graph.edge_count == 2

    def test_bare_endpoints_are_not_objects(self):
        graph = ClosureGraph()
        graph.add_object(make_user("U"))
        graph.add_edge(MembershipEdge("U", "CN=Missing,DC=corp,DC=local"))

        assert graph.object_count == 1
        assert graph.node_count == 2
        assert not graph.has_object("CN=Missing,DC=corp,DC=local")
        assert graph.get_node_name("CN=Missing,DC=corp,DC=local") == "CN=Missing,DC=corp,DC=local"

    def test_member_and_membership_lookups(self):
        graph = ClosureGraph()
        graph.add_edge(MembershipEdge("U", "G1"))
        graph.add_edge(MembershipEdge("G2", "G1"))

        assert graph.member_ids_of("G1") == {"U", "G2"}
        assert graph.membership_ids_of("U") == {"G1"}
        assert graph.member_ids_of("nope") == set()

    def test_objects_in_discovery_order(self):
        graph = ClosureGraph()
        for obj in (make_group("B"), make_user("A"), make_group("C")):
            graph.add_object(obj)

        assert [o.object_id for o in graph.objects()] == ["B", "A", "C"]
        assert {o.object_id for o in graph.get_objects_by_type(NodeType.GROUP)} == {"B", "C"}


# ---------------------------------------------------------------------------
# CycleGuard
# ---------------------------------------------------------------------------


class TestCycleGuard:
    def test_expand_only_once(self):
        guard = CycleGuard()

        assert guard.should_expand("G1")
        assert not guard.should_expand("G1")
        assert "G1" in guard
        assert guard.expanded_count == 1

    def test_guards_are_independent(self):
        first, second = CycleGuard(), CycleGuard()
        first.should_expand("G1")

        assert second.should_expand("G1")


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


class TestActivity:
    @pytest.mark.parametrize("days_ago, expected", [
        (0, ActivityState.ACTIVE),
        (90, ActivityState.ACTIVE),
        (91, ActivityState.INACTIVE),
        (None, ActivityState.NEVER_LOGGED_ON),
    ])
    def test_threshold_is_strict(self, days_ago, expected):
        last = None if days_ago is None else NOW - timedelta(days=days_ago)

        assert classify_activity(last, 90, now=NOW) == expected

    def test_naive_timestamps_are_utc(self):
        last = datetime(2024, 1, 1, 12, 0)

        assert classify_activity(last, 90, now=NOW) == ActivityState.INACTIVE
        assert days_since(last, now=NOW) == (NOW - last.replace(tzinfo=timezone.utc)).days

    def test_never_logged_on_counts_as_inactive(self):
        assert ActivityState.NEVER_LOGGED_ON.is_inactive
        assert not ActivityState.ACTIVE.is_inactive
        assert days_since(None) is None


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfig:
    @pytest.mark.parametrize("kwargs", [
        {"inactive_days": -1},
        {"max_depth": -1},
        {"max_nodes": 0},
    ])
    def test_invalid_traversal_settings_raise(self, kwargs):
        with pytest.raises(ValueError):
            TraversalConfig(**kwargs)

    def test_from_dict(self, tmp_path):
        output_dir = str(tmp_path / "reports")
        config = NestAuditConfig.from_dict({
            "traversal": {"include_inactive": True, "max_depth": 3},
            "ldap": {"use_ssl": True},
            "output": {"output_dir": output_dir, "generate_html": False},
            "verbose": False,
        })

        assert config.traversal.include_inactive
        assert config.traversal.max_depth == 3
        assert config.ldap.port == 636
        assert not config.output.generate_html
        assert (tmp_path / "reports").is_dir()

    def test_password_from_environment(self, monkeypatch):
        from nestaudit.config import ldap_password_from_env

        monkeypatch.setenv("NESTAUDIT_LDAP_PASSWORD", "s3cret")

        assert ldap_password_from_env() == "s3cret"
