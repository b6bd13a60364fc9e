"""
nestaudit - Active Directory Group Nesting Audit
================================================

A Python framework for answering two directory questions in the presence of
arbitrarily nested, possibly cyclic group membership:

- Which groups does this object belong to, directly or transitively?
- Which objects does this group contain, directly or transitively?

Architecture Overview:
----------------------
- directory/: Query collaborators (live LDAP, BloodHound/SharpHound snapshots)
- model/: Typed data models and the per-traversal closure graph
- analysis/: Deterministic, cycle-safe closure algorithms
- reporting/: Text, JSON, CSV and HTML presentation
- integration/: Pipeline entry point used by the CLI

Design Decisions:
-----------------
1. NetworkX is used as the graph backend for each traversal's result
2. All data models use Python dataclasses for type safety and clarity
3. Every traversal is bounded by a per-invocation visitation set, so
   membership cycles cannot cause non-termination
4. Both live LDAP queries and BloodHound JSON snapshots are supported
"""

__version__ = "1.0.0"

from .config import NestAuditConfig
