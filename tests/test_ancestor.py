"""Tests for AncestorClosureResolver: groups an object belongs to."""

import pytest

from nestaudit.analysis.ancestor import AncestorClosureResolver
from nestaudit.config import TraversalConfig
from nestaudit.directory.base import ObjectNotFoundError

from conftest import FailingDirectory, make_directory, make_group, make_user


def _ids(objects):
    return [obj.object_id for obj in objects]


# ---------------------------------------------------------------------------
# Closure and provenance
# ---------------------------------------------------------------------------


class TestAncestorClosure:
    def test_cycle_terminates_and_keeps_both_parents(self, cyclic_directory):
        closure = AncestorClosureResolver(cyclic_directory).resolve("P")

        assert _ids(closure.groups) == ["G1", "G2"]
        assert closure.parents_of("G1") == {"P", "G2"}
        assert closure.parents_of("G2") == {"G1"}
        assert not closure.truncated
        assert closure.warnings == []

    def test_group_reached_twice_keeps_every_parent(self, diamond_directory):
        closure = AncestorClosureResolver(diamond_directory).resolve("U")

        assert set(_ids(closure.groups)) == {"A", "B", "C"}
        assert closure.parents_of("C") == {"A", "B"}
        assert closure.parents_of("A") == {"U"}

    def test_groups_are_listed_once(self, diamond_directory):
        closure = AncestorClosureResolver(diamond_directory).resolve("U")

        ids = _ids(closure.groups)
        assert len(ids) == len(set(ids))

    def test_root_is_not_a_group_of_itself(self, cyclic_directory):
        closure = AncestorClosureResolver(cyclic_directory).resolve("G1")

        # G1 -> G2 -> G1: G1 is reached again but is the root
        assert _ids(closure.groups) == ["G2"]
        assert closure.parents_of("G1") == {"G2"}

    def test_object_without_memberships_has_empty_closure(self):
        directory = make_directory([make_user("lonely")], [])

        closure = AncestorClosureResolver(directory).resolve("lonely")

        assert closure.groups == []
        assert closure.parent_map() == {}

    def test_to_dict_lists_sorted_parents(self, diamond_directory):
        closure = AncestorClosureResolver(diamond_directory).resolve("U")

        data = closure.to_dict()
        assert data["direction"] == "ancestors"
        assert data["root"]["object_id"] == "U"
        assert data["parents"]["C"] == ["A", "B"]


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestAncestorFailures:
    def test_unknown_identity_raises(self, cyclic_directory):
        with pytest.raises(ObjectNotFoundError):
            AncestorClosureResolver(cyclic_directory).resolve("nobody")

    def test_membership_lookup_failure_is_localized(self):
        directory = make_directory(
            [make_user("U"), make_group("A"), make_group("B"), make_group("C")],
            [("U", "A"), ("U", "B"), ("A", "C")],
            directory=FailingDirectory(fail_memberships={"A"}),
        )

        closure = AncestorClosureResolver(directory).resolve("U")

        assert _ids(closure.groups) == ["A", "B"]
        assert [w.object_id for w in closure.warnings] == ["A"]
        assert closure.warnings[0].kind == "lookup"
        assert not closure.truncated

    def test_attribute_failure_yields_placeholder_group(self):
        dn = "CN=Sales,OU=Groups,DC=corp,DC=local"
        directory = make_directory(
            [make_user("U"), make_group(dn)],
            [("U", dn)],
            directory=FailingDirectory(fail_attributes={dn}),
        )

        closure = AncestorClosureResolver(directory).resolve("U")

        assert _ids(closure.groups) == [dn]
        assert closure.groups[0].name == "Sales"
        assert closure.parents_of(dn) == {"U"}
        assert len(closure.warnings) == 1


# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------


class TestAncestorLimits:
    @pytest.fixture
    def chain_directory(self):
        """U in A, A in B, B in C."""
        return make_directory(
            [make_user("U"), make_group("A"), make_group("B"), make_group("C")],
            [("U", "A"), ("A", "B"), ("B", "C")],
        )

    def test_max_depth_stops_following_memberships(self, chain_directory):
        resolver = AncestorClosureResolver(chain_directory, TraversalConfig(max_depth=1))

        closure = resolver.resolve("U")

        assert _ids(closure.groups) == ["A", "B"]
        assert closure.truncated
        assert [(w.object_id, w.kind) for w in closure.warnings] == [("B", "truncated")]

    def test_max_depth_zero_keeps_direct_groups_only(self, chain_directory):
        resolver = AncestorClosureResolver(chain_directory, TraversalConfig(max_depth=0))

        closure = resolver.resolve("U")

        assert _ids(closure.groups) == ["A"]
        assert closure.truncated

    def test_max_nodes_counts_root(self, diamond_directory):
        resolver = AncestorClosureResolver(diamond_directory, TraversalConfig(max_nodes=2))

        closure = resolver.resolve("U")

        assert _ids(closure.groups) == ["A"]
        assert closure.truncated
        assert closure.warnings[-1].kind == "truncated"

    def test_generous_limits_do_not_truncate(self, chain_directory):
        resolver = AncestorClosureResolver(chain_directory,
                                           TraversalConfig(max_depth=10, max_nodes=100))

        closure = resolver.resolve("U")

        assert _ids(closure.groups) == ["A", "B", "C"]
        assert not closure.truncated


def test_progress_callback_receives_messages(cyclic_directory):
    messages = []
    resolver = AncestorClosureResolver(cyclic_directory, progress_callback=messages.append)

    resolver.resolve("P")

    assert messages[0].startswith("[*]")
    assert messages[-1].startswith("[+] Found 2 groups")
