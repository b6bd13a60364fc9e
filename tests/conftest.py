"""Shared fixtures: small in-memory directories for the closure resolvers."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from nestaudit.directory.base import DirectoryLookupError
from nestaudit.directory.snapshot import SnapshotDirectory
from nestaudit.model.schemas import DirectoryObject, NodeType

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_user(object_id: str, days_ago=5, **properties) -> DirectoryObject:
    """User whose last logon was days_ago before NOW (None: never logged on)."""
    if days_ago is not None:
        properties.setdefault("lastLogonTimestamp", NOW - timedelta(days=days_ago))
    return DirectoryObject(object_id=object_id, name=object_id,
                           node_type=NodeType.USER, properties=properties)


def make_group(object_id: str, **properties) -> DirectoryObject:
    return DirectoryObject(object_id=object_id, name=object_id,
                           node_type=NodeType.GROUP, properties=properties)


def make_directory(objects, memberships, directory=None) -> SnapshotDirectory:
    """Build a directory from objects and (member_id, group_id) pairs, in order."""
    directory = directory or SnapshotDirectory()
    for obj in objects:
        directory.add_object(obj)
    for member_id, group_id in memberships:
        directory.add_membership(member_id, group_id)
    return directory


class FailingDirectory(SnapshotDirectory):
    """SnapshotDirectory whose calls fail for selected ids."""

    def __init__(self, fail_memberships=(), fail_members=(), fail_attributes=()):
        super().__init__()
        self.fail_memberships = set(fail_memberships)
        self.fail_members = set(fail_members)
        self.fail_attributes = set(fail_attributes)

    def get_memberships_of(self, object_id):
        if object_id in self.fail_memberships:
            raise DirectoryLookupError(object_id, "permission denied")
        return super().get_memberships_of(object_id)

    def get_members_of(self, group_id):
        if group_id in self.fail_members:
            raise DirectoryLookupError(group_id, "permission denied")
        return super().get_members_of(group_id)

    def get_attributes(self, object_id, node_type):
        if object_id in self.fail_attributes:
            raise DirectoryLookupError(object_id, "server unavailable")
        return super().get_attributes(object_id, node_type)


# ---------------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def cyclic_directory():
    """P in G1, G1 in G2, G2 in G1."""
    return make_directory(
        [make_user("P"), make_group("G1"), make_group("G2")],
        [("P", "G1"), ("G1", "G2"), ("G2", "G1")],
    )


@pytest.fixture
def nested_directory():
    """G1 = {U1, G2}, G2 = {U2}."""
    return make_directory(
        [make_group("G1"), make_group("G2"), make_user("U1"), make_user("U2")],
        [("U1", "G1"), ("G2", "G1"), ("U2", "G2")],
    )


@pytest.fixture
def diamond_directory():
    """U in A and B; A and B both in C."""
    return make_directory(
        [make_user("U"), make_group("A"), make_group("B"), make_group("C")],
        [("U", "A"), ("U", "B"), ("A", "C"), ("B", "C")],
    )


@pytest.fixture
def snapshot_files(tmp_path):
    """A SharpHound-style export: Domain Admins containing jdoe and a stale user."""
    groups = {
        "meta": {"type": "groups", "count": 1, "version": 5},
        "data": [{
            "ObjectIdentifier": "S-1-5-21-1-512",
            "Properties": {
                "name": "DOMAIN ADMINS@CORP.LOCAL",
                "domain": "CORP.LOCAL",
                "distinguishedname": "CN=Domain Admins,CN=Users,DC=corp,DC=local",
            },
            "Members": [
                {"ObjectIdentifier": "S-1-5-21-1-1001", "ObjectType": "User"},
                {"ObjectIdentifier": "S-1-5-21-1-1002", "ObjectType": "User"},
            ],
        }],
    }
    users = {
        "meta": {"type": "users", "count": 2, "version": 5},
        "data": [
            {
                "ObjectIdentifier": "S-1-5-21-1-1001",
                "Properties": {
                    "name": "JDOE@CORP.LOCAL",
                    "domain": "CORP.LOCAL",
                    "samaccountname": "jdoe",
                    "displayname": "John Doe",
                    "enabled": True,
                    "lastlogontimestamp": int(datetime.now(timezone.utc).timestamp()) - 86400,
                },
            },
            {
                "ObjectIdentifier": "S-1-5-21-1-1002",
                "Properties": {
                    "name": "OLDADMIN@CORP.LOCAL",
                    "domain": "CORP.LOCAL",
                    "samaccountname": "oldadmin",
                    "enabled": True,
                    "lastlogontimestamp": -1,
                },
            },
        ],
    }
    groups_path = tmp_path / "20240601_groups.json"
    users_path = tmp_path / "20240601_users.json"
    groups_path.write_text(json.dumps(groups), encoding="utf-8")
    users_path.write_text(json.dumps(users), encoding="utf-8")
    return [str(groups_path), str(users_path)]
