"""
nestaudit Model Module
======================

Contains the core data models and the per-traversal graph representation.

Key Components:
- schemas.py: Typed dataclasses for directory objects, edges and results
- graph_builder.py: NetworkX-based closure graph
"""

from .schemas import (
    NodeType,
    ActivityState,
    DirectoryObject,
    MembershipEdge,
    ClosureWarning,
    DescendantEntry,
    AncestorClosure,
    DescendantClosure
)
from .graph_builder import ClosureGraph
