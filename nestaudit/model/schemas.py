"""
nestaudit Data Schemas
======================

Typed dataclasses representing directory objects, membership edges and the
results produced by the closure resolvers.

Design Decisions:
-----------------
1. DirectoryObject is a single class keyed on object_id; the node kind is a
   NodeType value rather than a subclass, since the engine never branches on
   anything but the kind
2. MembershipEdge always points child -> parent ("is-member-of"), regardless
   of which resolver discovered it
3. Results (AncestorClosure, DescendantClosure) carry their warnings and a
   truncation flag so partial output is never confused with complete output

Schema Overview:
- DirectoryObject: a user, group or computer
- MembershipEdge: child is-member-of parent
- ClosureWarning: a localized failure or advisory attached to a node
- DescendantEntry: one row of a descendant closure (object, depth, source)
- AncestorClosure / DescendantClosure: resolver outputs
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .graph_builder import ClosureGraph


class NodeType(Enum):
    """Kinds of directory objects the engine classifies."""
    USER = "User"
    GROUP = "Group"
    COMPUTER = "Computer"
    UNKNOWN = "Unknown"

    @classmethod
    def from_string(cls, s: str) -> "NodeType":
        """Convert string to NodeType, handling LDAP objectClass and BloodHound labels."""
        normalized = (s or "").strip().lower()

        for node_type in cls:
            if node_type.value.lower() == normalized:
                return node_type

        aliases = {
            "person": cls.USER,
            "inetorgperson": cls.USER,
            "user": cls.USER,
            "users": cls.USER,
            "group": cls.GROUP,
            "groups": cls.GROUP,
            "computer": cls.COMPUTER,
            "computers": cls.COMPUTER,
        }
        return aliases.get(normalized, cls.UNKNOWN)

    @classmethod
    def from_object_classes(cls, object_classes) -> "NodeType":
        """Classify an LDAP entry from its objectClass values.

        computer derives from user in the AD schema, so it must be checked first.
        """
        classes = {str(c).lower() for c in object_classes or []}
        if "computer" in classes:
            return cls.COMPUTER
        if "group" in classes:
            return cls.GROUP
        if "user" in classes or "person" in classes or "inetorgperson" in classes:
            return cls.USER
        return cls.UNKNOWN


class ActivityState(Enum):
    """Activity classification of a user account."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    NEVER_LOGGED_ON = "NeverLoggedOn"

    @property
    def is_inactive(self) -> bool:
        return self is not ActivityState.ACTIVE


@dataclass
class DirectoryObject:
    """A node of the directory: user, group or computer.

    Attributes:
        object_id: Stable unique key (DN, SID or equivalent)
        name: Human-readable name (sAMAccountName or CN)
        node_type: Kind of object
        distinguished_name: Full LDAP DN, when known
        domain: Domain the object belongs to
        properties: Optional attributes (displayName, enabled,
            lastLogonTimestamp, department, ...)

    Two objects with the same object_id are the same node.
    """
    object_id: str
    name: str
    node_type: NodeType = NodeType.UNKNOWN
    distinguished_name: Optional[str] = None
    domain: Optional[str] = None
    properties: dict = field(default_factory=dict)

    def __hash__(self):
        return hash(self.object_id)

    def __eq__(self, other):
        if isinstance(other, DirectoryObject):
            return self.object_id == other.object_id
        return False

    @property
    def display_name(self) -> str:
        """Return a display-friendly name."""
        display = self.properties.get("displayName")
        if display:
            return display
        return self.name or self.object_id

    @property
    def enabled(self) -> bool:
        return bool(self.properties.get("enabled", True))

    @property
    def last_activity(self) -> Optional[datetime]:
        value = self.properties.get("lastLogonTimestamp")
        return value if isinstance(value, datetime) else None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "object_id": self.object_id,
            "name": self.name,
            "node_type": self.node_type.value,
            "distinguished_name": self.distinguished_name,
            "domain": self.domain,
            "properties": {
                key: (value.isoformat() if isinstance(value, datetime) else value)
                for key, value in self.properties.items()
            },
        }


@dataclass(frozen=True)
class MembershipEdge:
    """Directed relation: source_id is-member-of target_id.

    Edges are identified by the ordered pair (source_id, target_id).
    """
    source_id: str
    target_id: str


@dataclass
class ClosureWarning:
    """A non-fatal condition encountered during traversal.

    kind is "lookup" for a failed directory call and "truncated" when a
    depth or node-count limit stopped the traversal.
    """
    object_id: Optional[str]
    message: str
    kind: str = "lookup"

    def to_dict(self) -> dict:
        return {"object_id": self.object_id, "message": self.message, "kind": self.kind}

    def __str__(self) -> str:
        if self.object_id:
            return f"{self.object_id}: {self.message}"
        return self.message


@dataclass
class DescendantEntry:
    """One object found while expanding a group.

    Attributes:
        obj: The discovered object
        depth: Nesting depth (direct members of the root are depth 0)
        source_group_id: The group the object was listed under
        activity: Activity state for users, None for other kinds
        is_nested_group: True when obj is a group found as a member
    """
    obj: DirectoryObject
    depth: int
    source_group_id: str
    activity: Optional[ActivityState] = None
    is_nested_group: bool = False

    @property
    def object_id(self) -> str:
        return self.obj.object_id

    @property
    def node_type(self) -> NodeType:
        return self.obj.node_type

    @property
    def is_inactive(self) -> bool:
        return self.activity is not None and self.activity.is_inactive

    def to_dict(self) -> dict:
        return {
            "object_id": self.obj.object_id,
            "name": self.obj.name,
            "display_name": self.obj.display_name,
            "node_type": self.obj.node_type.value,
            "depth": self.depth,
            "source_group_id": self.source_group_id,
            "activity": self.activity.value if self.activity else None,
            "is_nested_group": self.is_nested_group,
        }


@dataclass
class AncestorClosure:
    """Result of an ancestor (member-of) traversal.

    The graph holds every discovered group plus the root, and one edge per
    distinct (child, parent) pair that was observed.
    """
    root: DirectoryObject
    graph: "ClosureGraph"
    warnings: list = field(default_factory=list)
    truncated: bool = False

    @property
    def groups(self) -> list[DirectoryObject]:
        """All discovered groups, excluding the root, in discovery order."""
        return [obj for obj in self.graph.objects() if obj.object_id != self.root.object_id]

    def parents_of(self, object_id: str) -> set[str]:
        """Recorded immediate parents (nodes that led to object_id)."""
        return self.graph.member_ids_of(object_id)

    def parent_map(self) -> dict[str, set[str]]:
        """object_id -> set of nodes through which it was discovered."""
        return {
            obj.object_id: self.graph.member_ids_of(obj.object_id)
            for obj in self.graph.objects()
            if obj.object_id != self.root.object_id or self.graph.member_ids_of(obj.object_id)
        }

    def to_dict(self) -> dict:
        return {
            "direction": "ancestors",
            "root": self.root.to_dict(),
            "groups": [g.to_dict() for g in self.groups],
            "parents": {k: sorted(v) for k, v in self.parent_map().items()},
            "warnings": [w.to_dict() for w in self.warnings],
            "truncated": self.truncated,
        }


@dataclass
class DescendantClosure:
    """Result of a descendant (has-member) traversal."""
    root: DirectoryObject
    graph: "ClosureGraph"
    entries: list = field(default_factory=list)  # List of DescendantEntry
    warnings: list = field(default_factory=list)
    truncated: bool = False

    def to_dict(self) -> dict:
        return {
            "direction": "descendants",
            "root": self.root.to_dict(),
            "entries": [e.to_dict() for e in self.entries],
            "warnings": [w.to_dict() for w in self.warnings],
            "truncated": self.truncated,
        }


def name_from_id(object_id: str) -> str:
    """Best-effort display name from a DN ("CN=Sales,OU=..." -> "Sales")."""
    if object_id.upper().startswith('CN='):
        return object_id[3:].split(',')[0]
    return object_id


def placeholder_group(object_id: str) -> DirectoryObject:
    """Minimal group object used when a group's attributes cannot be read."""
    return DirectoryObject(object_id=object_id, name=name_from_id(object_id),
                           node_type=NodeType.GROUP)
