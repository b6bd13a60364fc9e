"""
Directory Query Interface
=========================

Abstract contract between the closure resolvers and whatever answers
directory questions (a live LDAP server, a BloodHound snapshot, a test
fixture).

Every call may fail with DirectoryLookupError. Resolvers treat that as a
localized failure of one node. ObjectNotFoundError is only meaningful from
resolve_object and is fatal for the invocation.
"""

from abc import ABC, abstractmethod

from ..model.schemas import DirectoryObject, NodeType


class NestAuditError(Exception):
    """Base class for nestaudit errors."""


class ObjectNotFoundError(NestAuditError):
    """An identity resolved to zero objects, or to more than one."""

    def __init__(self, identity: str, reason: str = "no matching object"):
        self.identity = identity
        self.reason = reason
        super().__init__(f"Could not resolve '{identity}': {reason}")


class DirectoryLookupError(NestAuditError):
    """A directory call failed (unreachable, permission denied, missing)."""

    def __init__(self, object_id: str, message: str):
        self.object_id = object_id
        super().__init__(message)


class DirectoryQuery(ABC):
    """Read-only directory collaborator used by the resolvers."""

    @abstractmethod
    def resolve_object(self, identity: str) -> DirectoryObject:
        """Resolve a login name, unique id or fully-qualified name to one object.

        Raises:
            ObjectNotFoundError: zero matches or an ambiguous match
        """

    @abstractmethod
    def get_memberships_of(self, object_id: str) -> list[str]:
        """Direct is-member-of edges: ids of the groups object_id belongs to."""

    @abstractmethod
    def get_members_of(self, group_id: str) -> list[tuple[str, NodeType]]:
        """Direct has-member edges: (member id, kind) in directory order."""

    @abstractmethod
    def get_attributes(self, object_id: str, node_type: NodeType) -> DirectoryObject:
        """Fetch display, activity and organizational attributes."""
