"""
nestaudit Closure Graph
=======================

NetworkX-based accumulator for the objects and membership edges discovered
during a single resolver invocation.

Design Decisions:
-----------------
1. Uses a NetworkX DiGraph as the underlying data structure
2. Edges always point child -> parent (MemberOf), so the nodes an object
   was reached from during an ancestor walk are its predecessors
3. Nodes are stored with their DirectoryObject as the 'obj' attribute; an
   edge may reference a node whose object was never added (lookup failed),
   in which case the node exists without 'obj'
4. The object map is deduplicated: the first object added for an id wins

A ClosureGraph is created empty by a resolver, filled during traversal and
then only read by the projectors.
"""

import networkx as nx
from typing import Iterator, Optional
from collections import defaultdict

from .schemas import DirectoryObject, MembershipEdge, NodeType


class ClosureGraph:
    """Abstraction layer over NetworkX for membership-closure state.

    Example Usage:
        graph = ClosureGraph()
        graph.add_object(DirectoryObject("CN=alice,...", "alice", NodeType.USER))
        graph.add_edge(MembershipEdge("CN=alice,...", "CN=Staff,..."))

        graph.member_ids_of("CN=Staff,...")      # {"CN=alice,..."}
        graph.membership_ids_of("CN=alice,...")  # {"CN=Staff,..."}
    """

    def __init__(self):
        """Initialize empty closure graph."""
        self._graph = nx.DiGraph()

        self._objects_by_type: dict[NodeType, set[str]] = defaultdict(set)

    def add_object(self, obj: DirectoryObject) -> bool:
        """Add an object to the object map.

        Args:
            obj: DirectoryObject to add

        Returns:
            True if the object was new, False if the id was already present
            (the existing object is kept)
        """
        if self.has_object(obj.object_id):
            return False

        self._graph.add_node(
            obj.object_id,
            obj=obj,
            node_type=obj.node_type,
            name=obj.name,
        )
        self._objects_by_type[obj.node_type].add(obj.object_id)
        return True

    def has_object(self, object_id: str) -> bool:
        return self._graph.has_node(object_id) and 'obj' in self._graph.nodes[object_id]

    def get_object(self, object_id: str) -> Optional[DirectoryObject]:
        """Get an object by id, or None if it was never added."""
        if not self._graph.has_node(object_id):
            return None
        return self._graph.nodes[object_id].get('obj')

    def add_edge(self, edge: MembershipEdge) -> bool:
        """Record a membership edge.

        Endpoints that are not yet in the object map are created as bare
        nodes so provenance can reference them.

        Returns:
            True if the edge was new, False if the pair was already recorded
        """
        if self._graph.has_edge(edge.source_id, edge.target_id):
            return False
        self._graph.add_edge(edge.source_id, edge.target_id, edge_obj=edge)
        return True

    def has_edge(self, source_id: str, target_id: str) -> bool:
        return self._graph.has_edge(source_id, target_id)

    def member_ids_of(self, object_id: str) -> set[str]:
        """Ids with a recorded edge into object_id (its discovered members)."""
        if not self._graph.has_node(object_id):
            return set()
        return set(self._graph.predecessors(object_id))

    def membership_ids_of(self, object_id: str) -> set[str]:
        """Ids object_id has a recorded edge to (its discovered groups)."""
        if not self._graph.has_node(object_id):
            return set()
        return set(self._graph.successors(object_id))

    def objects(self) -> Iterator[DirectoryObject]:
        """Iterate over added objects in discovery order."""
        for _, attrs in self._graph.nodes(data=True):
            obj = attrs.get('obj')
            if obj is not None:
                yield obj

    def get_objects_by_type(self, node_type: NodeType) -> Iterator[DirectoryObject]:
        """Iterate over all objects of a specific type."""
        for object_id in self._objects_by_type[node_type]:
            obj = self.get_object(object_id)
            if obj:
                yield obj

    def edges(self) -> Iterator[MembershipEdge]:
        for _, _, attrs in self._graph.edges(data=True):
            yield attrs['edge_obj']

    def get_node_name(self, object_id: str) -> str:
        """Get the display name for a node, falling back to the raw id."""
        obj = self.get_object(object_id)
        if obj:
            return obj.display_name
        return object_id

    @property
    def object_count(self) -> int:
        """Number of objects in the object map."""
        return sum(len(ids) for ids in self._objects_by_type.values())

    @property
    def node_count(self) -> int:
        """Total number of nodes, including bare edge endpoints."""
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()
