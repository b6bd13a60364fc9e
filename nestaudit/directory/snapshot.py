"""
Snapshot Directory
==================

In-memory directory built programmatically or loaded from BloodHound /
SharpHound JSON exports.

Supported Formats:
- SharpHound v4+/BloodHound CE JSON ("meta" + "data" keys)
- Older SharpHound JSON with "users"/"groups"/"computers" keys
- Zipped SharpHound exports

Design Decisions:
-----------------
1. Only users, groups and computers are loaded; the membership audit has no
   use for OUs, GPOs, sessions or ACEs
2. Group "Members" and object "MemberOf" lists are both honoured, and
   merged into one ordered edge list per direction
3. Property names are normalized to the same keys LDAPDirectory produces
   (displayName, enabled, lastLogonTimestamp, ...)
"""

import json
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Callable

from ..model.schemas import DirectoryObject, NodeType
from .base import DirectoryQuery, DirectoryLookupError, ObjectNotFoundError


# BloodHound property -> normalized property
PROPERTY_MAP = {
    'displayname': 'displayName',
    'description': 'description',
    'email': 'mail',
    'title': 'title',
    'department': 'department',
    'enabled': 'enabled',
    'operatingsystem': 'operatingSystem',
    'samaccountname': 'sAMAccountName',
}


class SnapshotDirectory(DirectoryQuery):
    """Directory answering queries from memory.

    Usage:
        directory = SnapshotDirectory()
        directory.add_object(DirectoryObject("G1", "G1", NodeType.GROUP))
        directory.add_object(DirectoryObject("U1", "U1", NodeType.USER))
        directory.add_membership("U1", "G1")

        # Or load a SharpHound export
        directory = SnapshotDirectory().load_files(["users.json", "groups.json"])
    """

    def __init__(
        self,
        verbose: bool = False,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        self.verbose = verbose
        self.progress_callback = progress_callback

        self._objects: dict[str, DirectoryObject] = {}
        self._memberships: dict[str, list[str]] = {}  # child -> parents
        self._members: dict[str, list[str]] = {}      # group -> members
        self._type_hints: dict[str, NodeType] = {}

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_object(self, obj: DirectoryObject) -> None:
        """Add or replace an object."""
        self._objects[obj.object_id] = obj
        self._type_hints[obj.object_id] = obj.node_type

    def add_membership(self, member_id: str, group_id: str,
                       member_type: Optional[NodeType] = None) -> None:
        """Record member_id is-member-of group_id (idempotent)."""
        parents = self._memberships.setdefault(member_id, [])
        if group_id not in parents:
            parents.append(group_id)
        members = self._members.setdefault(group_id, [])
        if member_id not in members:
            members.append(member_id)
        if member_type and member_id not in self._type_hints:
            self._type_hints[member_id] = member_type
        self._type_hints.setdefault(group_id, NodeType.GROUP)

    @property
    def object_count(self) -> int:
        return len(self._objects)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_files(self, file_paths: list[str]) -> "SnapshotDirectory":
        """Load multiple BloodHound JSON (or zip) files.

        Returns:
            self, for chaining
        """
        for file_path in file_paths:
            self._load_file(file_path)
        self._log(f"[+] Snapshot loaded: {self.object_count} objects")
        return self

    def _load_file(self, file_path: str) -> None:
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {file_path}")

        self._log(f"[*] Loading {path.name}...")

        if path.suffix == '.zip':
            with zipfile.ZipFile(path, 'r') as zf:
                for name in zf.namelist():
                    if name.endswith('.json'):
                        with zf.open(name) as f:
                            self._process_json(json.load(f), name)
        else:
            with open(path, 'r', encoding='utf-8-sig') as f:
                self._process_json(json.load(f), path.name)

    def _process_json(self, data, filename: str) -> None:
        """Dispatch on the JSON layout.

        Args:
            data: Parsed JSON data
            filename: Original filename (used as a type hint)
        """
        if isinstance(data, dict) and 'data' in data and 'meta' in data:
            meta_type = data.get('meta', {}).get('type', '').lower()
            self._process_items(data.get('data', []), meta_type or filename.lower())
            return

        if isinstance(data, dict):
            for key in ('users', 'groups', 'computers'):
                if key in data:
                    self._process_items(data[key], key)
            return

        if isinstance(data, list):
            self._process_items(data, filename.lower())

    def _process_items(self, items: list, type_hint: str) -> None:
        if 'computer' in type_hint:
            node_type = NodeType.COMPUTER
        elif 'group' in type_hint:
            node_type = NodeType.GROUP
        elif 'user' in type_hint:
            node_type = NodeType.USER
        else:
            self._log(f"[!] Skipping unsupported snapshot section: {type_hint}")
            return

        for item in items:
            try:
                self._process_item(item, node_type)
            except (KeyError, TypeError, ValueError) as e:
                self._log(f"[!] Skipping malformed {node_type.value.lower()} entry: {e}")

    def _process_item(self, item: dict, node_type: NodeType) -> None:
        props = item.get('Properties', item.get('properties', {})) or {}

        object_id = (
            item.get('ObjectIdentifier') or
            item.get('objectid') or
            props.get('objectid') or
            props.get('objectsid')
        )
        if not object_id:
            raise ValueError("entry has no object identifier")

        name = (
            props.get('name') or
            props.get('samaccountname') or
            item.get('Name') or
            object_id
        )
        domain = props.get('domain') or None

        self.add_object(DirectoryObject(
            object_id=object_id,
            name=self._clean_name(name, domain),
            node_type=node_type,
            distinguished_name=props.get('distinguishedname'),
            domain=domain,
            properties=self._normalize_properties(props)
        ))

        for member in item.get('Members', item.get('members', [])) or []:
            member_id, member_type = self._reference(member)
            if member_id:
                self.add_membership(member_id, object_id, member_type)

        for parent in item.get('MemberOf', item.get('memberof', [])) or []:
            parent_id, _ = self._reference(parent)
            if parent_id:
                self.add_membership(object_id, parent_id, node_type)

    @staticmethod
    def _reference(ref) -> tuple[Optional[str], Optional[NodeType]]:
        """Parse a member reference: a bare id or {"ObjectIdentifier", "ObjectType"}."""
        if isinstance(ref, str):
            return ref, None
        if isinstance(ref, dict):
            ref_id = ref.get('ObjectIdentifier') or ref.get('objectid') or ref.get('MemberId')
            ref_type = ref.get('ObjectType') or ref.get('MemberType')
            return ref_id, NodeType.from_string(ref_type) if ref_type else None
        return None, None

    @staticmethod
    def _clean_name(name: str, domain: Optional[str]) -> str:
        """Strip the '@DOMAIN' suffix BloodHound appends to names."""
        if domain and '@' in name and name.upper().endswith('@' + domain.upper()):
            return name[:-(len(domain) + 1)]
        return name

    @staticmethod
    def _normalize_properties(props: dict) -> dict:
        normalized = {}
        for key, target in PROPERTY_MAP.items():
            if key in props and props[key] not in (None, ''):
                normalized[target] = props[key]

        timestamp = props.get('lastlogontimestamp', props.get('lastlogon'))
        if isinstance(timestamp, (int, float)) and timestamp > 0:
            normalized['lastLogonTimestamp'] = datetime.fromtimestamp(timestamp, tz=timezone.utc)
        return normalized

    # ------------------------------------------------------------------
    # DirectoryQuery
    # ------------------------------------------------------------------

    def resolve_object(self, identity: str) -> DirectoryObject:
        """Resolve by id first, then by name, name@domain, sAMAccountName or DN."""
        if identity in self._objects:
            return self._objects[identity]

        wanted = identity.strip().lower()
        matches = []
        for obj in self._objects.values():
            candidates = {obj.object_id.lower(), obj.name.lower()}
            if obj.domain:
                candidates.add(f"{obj.name}@{obj.domain}".lower())
            if obj.distinguished_name:
                candidates.add(obj.distinguished_name.lower())
            sam = obj.properties.get('sAMAccountName')
            if sam:
                candidates.add(str(sam).lower())
            if wanted in candidates:
                matches.append(obj)

        if not matches:
            raise ObjectNotFoundError(identity)
        if len(matches) > 1:
            raise ObjectNotFoundError(identity, f"ambiguous, {len(matches)} objects match")
        return matches[0]

    def get_memberships_of(self, object_id: str) -> list[str]:
        if object_id not in self._objects and object_id not in self._memberships:
            raise DirectoryLookupError(object_id, f"object not found: {object_id}")
        return list(self._memberships.get(object_id, []))

    def get_members_of(self, group_id: str) -> list[tuple[str, NodeType]]:
        if group_id not in self._objects and group_id not in self._members:
            raise DirectoryLookupError(group_id, f"group not found: {group_id}")
        return [
            (member_id, self._type_hints.get(member_id, NodeType.UNKNOWN))
            for member_id in self._members.get(group_id, [])
        ]

    def get_attributes(self, object_id: str, node_type: NodeType) -> DirectoryObject:
        obj = self._objects.get(object_id)
        if obj is None:
            raise DirectoryLookupError(object_id, f"object not found: {object_id}")
        return obj
