"""
nestaudit Analysis Module
=========================

Deterministic membership-closure algorithms.

Components:
- cycle_guard.py: Per-invocation visitation set guaranteeing termination
- ancestor.py: Groups a principal belongs to (breadth-first, multi-parent)
- descendant.py: Members a group contains (depth-first, depth-tagged)
- activity.py: Inactive-account classification
"""

from .cycle_guard import CycleGuard
from .activity import classify_activity
from .ancestor import AncestorClosureResolver
from .descendant import DescendantClosureResolver, DescendantTraversal
