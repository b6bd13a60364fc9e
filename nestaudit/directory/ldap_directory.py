"""
LDAP Directory Module
=====================

Live Active Directory queries via LDAP.

Features:
- Resolves users, groups and computers by sAMAccountName, UPN, CN, DN or SID
- Reads direct memberOf / member edges one object at a time
- Supports LDAP (389) and LDAPS (636), NTLM and simple binds
- Handles large groups with paged searches

Design Decisions:
-----------------
1. Uses ldap3 library for cross-platform LDAP support
2. Distinguished names are the object ids, since memberOf and member
   values are DNs and need no extra lookup to follow
3. Members are enumerated with a (memberOf=<group>) search so each member
   comes back already classified by objectClass
4. Primary-group membership (primaryGroupID) is not in memberOf, so both
   directions add it explicitly from the domain SID and the group RID

Security Consideration:
This module performs read-only operations. No modifications are made to the AD.
"""

import struct
from datetime import datetime, timedelta, timezone
from typing import Optional, Callable

from ldap3 import Server, Connection, ALL, SUBTREE, BASE, NTLM, SIMPLE
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from ..model.schemas import DirectoryObject, NodeType
from ..config import LDAPConfig
from .base import DirectoryQuery, DirectoryLookupError, ObjectNotFoundError


OBJECT_ATTRIBUTES = [
    'objectClass', 'objectSid', 'sAMAccountName', 'cn', 'displayName',
    'userPrincipalName', 'userAccountControl', 'lastLogonTimestamp',
    'department', 'title', 'description', 'mail', 'operatingSystem',
]

# userAccountControl ACCOUNTDISABLE flag
UAC_ACCOUNTDISABLE = 0x02

FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)


def convert_sid(sid_bytes: bytes) -> str:
    """Convert binary SID to string format (e.g. "S-1-5-21-...").

    SID structure:
    Byte 0: Revision
    Byte 1: Number of sub-authorities
    Bytes 2-7: Identifier authority (big-endian)
    Remaining: Sub-authorities (little-endian 32-bit)
    """
    if not sid_bytes or len(sid_bytes) < 8:
        return ""

    revision = sid_bytes[0]
    sub_auth_count = sid_bytes[1]
    id_auth = int.from_bytes(sid_bytes[2:8], 'big')

    if len(sid_bytes) < 8 + sub_auth_count * 4:
        return ""

    sid = f"S-{revision}-{id_auth}"
    for i in range(sub_auth_count):
        offset = 8 + (i * 4)
        sid += f"-{struct.unpack('<I', sid_bytes[offset:offset + 4])[0]}"
    return sid


def filetime_to_datetime(value) -> Optional[datetime]:
    """Convert an AD timestamp (FILETIME int or ldap3-formatted datetime).

    Returns None for "never" (0, the 1601 epoch, or the max value).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return None if value <= FILETIME_EPOCH else value
    try:
        ticks = int(value)
    except (TypeError, ValueError):
        return None
    if ticks <= 0 or ticks >= 0x7FFFFFFFFFFFFFFF:
        return None
    return FILETIME_EPOCH + timedelta(microseconds=ticks // 10)


def _first(attrs: dict, key: str, default=None):
    values = attrs.get(key)
    if isinstance(values, list):
        return values[0] if values else default
    return values if values not in (None, '') else default


def _sid_string(value) -> str:
    if isinstance(value, bytes):
        return convert_sid(value)
    return str(value) if value else ""


class LDAPDirectory(DirectoryQuery):
    """Directory answering queries against a domain controller.

    Usage:
        with LDAPDirectory(
            server_ip="192.168.1.100",
            domain="corp.local",
            username="auditor",
            password="password"
        ) as directory:
            root = directory.resolve_object("jdoe")
    """

    def __init__(
        self,
        server_ip: str,
        domain: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        config: Optional[LDAPConfig] = None,
        base_dn: Optional[str] = None,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        """Initialize the LDAP directory.

        Args:
            server_ip: IP address or hostname of the domain controller
            domain: Domain name (e.g., "corp.local")
            username: Username for authentication (domain\\user or user@domain)
            password: Password for authentication
            config: LDAPConfig object for connection settings
            base_dn: Search base (derived from domain if None)
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
        """
        self.server_ip = server_ip
        self.domain = domain
        self.username = username
        self.password = password
        self.config = config or LDAPConfig()
        self.verbose = verbose
        self.progress_callback = progress_callback

        self.connection: Optional[Connection] = None
        self.base_dn = base_dn or ",".join(f"DC={part}" for part in domain.split("."))
        # primary group SID -> DN, resolved once per group
        self._primary_group_dns: dict[str, Optional[str]] = {}

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def __enter__(self) -> "LDAPDirectory":
        if not self.connection and not self.connect():
            raise ConnectionError(f"Failed to connect to LDAP server {self.server_ip}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def connect(self) -> bool:
        """Establish connection to the LDAP server.

        Returns:
            True if connection successful, False otherwise
        """
        port = self.config.port or (636 if self.config.use_ssl else 389)
        try:
            server = Server(
                self.server_ip,
                port=port,
                use_ssl=self.config.use_ssl,
                get_info=ALL,
                connect_timeout=self.config.timeout
            )

            if self.username and self.password:
                if '\\' not in self.username and '@' not in self.username:
                    ntlm_user = f"{self.domain.split('.')[0].upper()}\\{self.username}"
                else:
                    ntlm_user = self.username

                self._log(f"[*] Connecting to {self.server_ip}:{port} as {ntlm_user}")

                try:
                    self.connection = Connection(
                        server,
                        user=ntlm_user,
                        password=self.password,
                        authentication=NTLM,
                        auto_bind=True,
                        receive_timeout=self.config.timeout
                    )
                except LDAPException as ntlm_error:
                    self._log(f"[*] NTLM auth failed ({ntlm_error}), trying simple bind...")
                    self.connection = Connection(
                        server,
                        user=self.username if '@' in self.username else f"{self.username}@{self.domain}",
                        password=self.password,
                        authentication=SIMPLE,
                        auto_bind=True,
                        receive_timeout=self.config.timeout
                    )
            else:
                self._log(f"[*] Connecting anonymously to {self.server_ip}:{port}")
                self.connection = Connection(
                    server,
                    auto_bind=True,
                    receive_timeout=self.config.timeout
                )

            self._log(f"[+] Connected successfully to {self.server_ip}")
            return True

        except LDAPException as e:
            self._log(f"[!] Connection failed: {e}")
            return False

    def disconnect(self) -> None:
        """Close the LDAP connection."""
        if self.connection:
            try:
                self.connection.unbind()
            except LDAPException as e:
                self._log(f"[!] Error during unbind: {e}")
            self.connection = None

    def _require_connection(self) -> Connection:
        if not self.connection:
            raise ConnectionError("LDAP directory is not connected")
        return self.connection

    def _search(self, search_base: str, search_filter: str, scope, attributes: list) -> list[dict]:
        """Run a paged search and return entries as {'dn', 'attributes'} dicts."""
        conn = self._require_connection()
        results = conn.extend.standard.paged_search(
            search_base=search_base,
            search_filter=search_filter,
            search_scope=scope,
            attributes=attributes,
            paged_size=self.config.page_size,
            generator=False
        )
        return [r for r in results if r.get('type') == 'searchResEntry']

    def _entry_to_object(self, dn: str, attrs: dict,
                         node_type: Optional[NodeType] = None) -> DirectoryObject:
        """Build a DirectoryObject from an LDAP entry's attributes."""
        if node_type is None or node_type == NodeType.UNKNOWN:
            node_type = NodeType.from_object_classes(attrs.get('objectClass', []))

        name = str(_first(attrs, 'sAMAccountName') or _first(attrs, 'cn') or dn)
        if node_type == NodeType.COMPUTER and name.endswith('$'):
            name = name[:-1]

        properties = {}
        for key in ('displayName', 'userPrincipalName', 'department', 'title',
                    'description', 'mail', 'operatingSystem', 'sAMAccountName'):
            value = _first(attrs, key)
            if value not in (None, ''):
                properties[key] = str(value)

        uac = _first(attrs, 'userAccountControl')
        if uac not in (None, ''):
            try:
                properties['enabled'] = not (int(uac) & UAC_ACCOUNTDISABLE)
            except (TypeError, ValueError):
                raise DirectoryLookupError(dn, f"malformed userAccountControl: {uac!r}") from None

        last_logon = filetime_to_datetime(_first(attrs, 'lastLogonTimestamp'))
        if last_logon:
            properties['lastLogonTimestamp'] = last_logon

        sid = _sid_string(_first(attrs, 'objectSid'))
        if sid:
            properties['objectSid'] = sid

        return DirectoryObject(
            object_id=dn,
            name=name,
            node_type=node_type,
            distinguished_name=dn,
            domain=self.domain,
            properties=properties
        )

    # ------------------------------------------------------------------
    # DirectoryQuery
    # ------------------------------------------------------------------

    def resolve_object(self, identity: str) -> DirectoryObject:
        """Resolve sAMAccountName, UPN, CN, DN or string SID to one object."""
        identity = identity.strip()
        try:
            if identity.upper().startswith('S-1-'):
                entries = self._search(self.base_dn, f"(objectSid={escape_filter_chars(identity)})",
                                       SUBTREE, OBJECT_ATTRIBUTES)
            elif '=' in identity and ',' in identity:
                entries = self._search(identity, "(objectClass=*)", BASE, OBJECT_ATTRIBUTES)
            else:
                value = escape_filter_chars(identity)
                entries = self._search(
                    self.base_dn,
                    f"(|(sAMAccountName={value})(userPrincipalName={value})(cn={value}))",
                    SUBTREE,
                    OBJECT_ATTRIBUTES
                )
        except LDAPException as e:
            raise DirectoryLookupError(identity, f"lookup failed: {e}") from e

        if not entries:
            raise ObjectNotFoundError(identity)
        if len(entries) > 1:
            raise ObjectNotFoundError(identity, f"ambiguous, {len(entries)} objects match")
        return self._entry_to_object(entries[0]['dn'], entries[0]['attributes'])

    def get_memberships_of(self, object_id: str) -> list[str]:
        """Groups listed in memberOf, plus the primary group.

        AD never lists the primary group (primaryGroupID, usually Domain
        Users) in memberOf, so it is resolved from the object's domain SID.
        """
        try:
            entries = self._search(object_id, "(objectClass=*)", BASE,
                                   ['memberOf', 'primaryGroupID', 'objectSid'])
        except LDAPException as e:
            raise DirectoryLookupError(object_id, f"memberOf lookup failed: {e}") from e
        if not entries:
            raise DirectoryLookupError(object_id, f"object not found: {object_id}")

        attrs = entries[0]['attributes']
        parents = [str(dn) for dn in attrs.get('memberOf', []) or []]
        primary = self._primary_group_dn(object_id, attrs)
        if primary and primary not in parents:
            parents.append(primary)
        return parents

    def _primary_group_dn(self, object_id: str, attrs: dict) -> Optional[str]:
        rid = _first(attrs, 'primaryGroupID')
        sid = _sid_string(_first(attrs, 'objectSid'))
        if rid in (None, '') or '-' not in sid:
            return None

        # domain SID is the object SID without its final RID
        group_sid = f"{sid.rsplit('-', 1)[0]}-{rid}"
        if group_sid not in self._primary_group_dns:
            try:
                entries = self._search(self.base_dn, f"(objectSid={escape_filter_chars(group_sid)})",
                                       SUBTREE, ['objectClass'])
            except LDAPException as e:
                raise DirectoryLookupError(object_id, f"primary group lookup failed: {e}") from e
            self._primary_group_dns[group_sid] = str(entries[0]['dn']) if entries else None
        return self._primary_group_dns[group_sid]

    def get_members_of(self, group_id: str) -> list[tuple[str, NodeType]]:
        """Objects whose memberOf or primaryGroupID points at the group."""
        try:
            group = self._search(group_id, "(objectClass=*)", BASE, ['objectSid'])
            if not group:
                raise DirectoryLookupError(group_id, f"group not found: {group_id}")

            search_filter = f"(memberOf={escape_filter_chars(group_id)})"
            sid = _sid_string(_first(group[0]['attributes'], 'objectSid'))
            if '-' in sid:
                search_filter = f"(|{search_filter}(primaryGroupID={sid.rsplit('-', 1)[1]}))"

            entries = self._search(self.base_dn, search_filter, SUBTREE, ['objectClass'])
        except LDAPException as e:
            raise DirectoryLookupError(group_id, f"member lookup failed: {e}") from e
        return [
            (entry['dn'], NodeType.from_object_classes(entry['attributes'].get('objectClass', [])))
            for entry in entries
        ]

    def get_attributes(self, object_id: str, node_type: NodeType) -> DirectoryObject:
        try:
            entries = self._search(object_id, "(objectClass=*)", BASE, OBJECT_ATTRIBUTES)
        except LDAPException as e:
            raise DirectoryLookupError(object_id, f"attribute lookup failed: {e}") from e
        if not entries:
            raise DirectoryLookupError(object_id, f"object not found: {object_id}")
        return self._entry_to_object(entries[0]['dn'], entries[0]['attributes'], node_type)
