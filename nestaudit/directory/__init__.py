"""
nestaudit Directory Module
==========================

Collaborators that answer directory questions for the resolvers.

Supported Sources:
- LDAP live queries (using ldap3)
- BloodHound/SharpHound JSON snapshots, or objects added programmatically

Design Philosophy:
- All sources implement DirectoryQuery
- Every call is read-only and may fail with DirectoryLookupError
"""

from .base import DirectoryQuery, NestAuditError, ObjectNotFoundError, DirectoryLookupError
from .snapshot import SnapshotDirectory
from .ldap_directory import LDAPDirectory
