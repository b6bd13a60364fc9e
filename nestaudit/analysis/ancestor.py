"""
Ancestor Closure Resolver
=========================

Computes every group a principal belongs to, directly or through nested
groups, keeping every immediate edge that led to each group.

Algorithm:
    Breadth-first work queue seeded with the root. A node is expanded
    (its memberOf edges queried) at most once, guarded by CycleGuard. Edges
    to a target are recorded unconditionally, even when the target is
    already known, so a group reached along two independent paths keeps
    both parents. A target is fetched and enqueued only the first time it
    is seen.

Nesting depth is counted the same way as for descendant closure: the root's
direct groups are at depth 0.
"""

from collections import deque
from typing import Optional, Callable

from ..config import TraversalConfig
from ..directory.base import DirectoryQuery, DirectoryLookupError
from ..model.graph_builder import ClosureGraph
from ..model.schemas import (
    AncestorClosure, ClosureWarning, DirectoryObject, MembershipEdge, NodeType,
    placeholder_group
)
from .cycle_guard import CycleGuard


class AncestorClosureResolver:
    """Resolves the transitive is-member-of closure of a principal.

    Usage:
        resolver = AncestorClosureResolver(directory)
        closure = resolver.resolve("jdoe")
        for group in closure.groups:
            print(group.name, closure.parents_of(group.object_id))
    """

    def __init__(
        self,
        directory: DirectoryQuery,
        config: Optional[TraversalConfig] = None,
        verbose: bool = False,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        """Initialize the resolver.

        Args:
            directory: Directory collaborator to query
            config: Traversal limits (max_depth, max_nodes); other fields unused
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
        """
        self.directory = directory
        self.config = config or TraversalConfig()
        self.verbose = verbose
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def _warn(self, warnings: list, object_id: Optional[str], message: str,
              kind: str = "lookup") -> None:
        warning = ClosureWarning(object_id=object_id, message=message, kind=kind)
        warnings.append(warning)
        self._log(f"[!] {warning}")

    def resolve(self, identity: str) -> AncestorClosure:
        """Compute the ancestor closure of identity.

        Raises:
            ObjectNotFoundError: identity does not resolve to exactly one object
        """
        root = self.directory.resolve_object(identity)
        return self.resolve_from(root)

    def resolve_from(self, root: DirectoryObject) -> AncestorClosure:
        """Compute the ancestor closure of an already-resolved root."""
        graph = ClosureGraph()
        guard = CycleGuard()
        warnings: list[ClosureWarning] = []
        truncated = False

        max_depth = self.config.max_depth
        max_nodes = self.config.max_nodes

        graph.add_object(root)
        self._log(f"[*] Resolving group memberships of {root.name}...")

        # Root sits one level above its direct groups (depth -1)
        queue = deque([(root.object_id, -1)])

        while queue:
            node_id, depth = queue.popleft()

            if not guard.should_expand(node_id):
                continue

            if max_depth is not None and depth >= max_depth:
                truncated = True
                self._warn(warnings, node_id,
                           f"depth limit {max_depth} reached, memberships not followed",
                           kind="truncated")
                continue

            try:
                parent_ids = self.directory.get_memberships_of(node_id)
            except DirectoryLookupError as e:
                self._warn(warnings, node_id, f"membership lookup failed: {e}")
                continue

            for parent_id in parent_ids:
                is_new = not graph.has_object(parent_id)

                if is_new and max_nodes is not None and graph.object_count >= max_nodes:
                    truncated = True
                    self._warn(warnings, parent_id,
                               f"node limit {max_nodes} reached, traversal stopped",
                               kind="truncated")
                    queue.clear()
                    break

                graph.add_edge(MembershipEdge(source_id=node_id, target_id=parent_id))

                if is_new:
                    graph.add_object(self._fetch_group(parent_id, warnings))
                    queue.append((parent_id, depth + 1))

        closure = AncestorClosure(root=root, graph=graph, warnings=warnings, truncated=truncated)
        self._log(f"[+] Found {len(closure.groups)} groups "
                  f"({graph.edge_count} membership edges, {len(warnings)} warnings)")
        return closure

    def _fetch_group(self, group_id: str, warnings: list) -> DirectoryObject:
        """Fetch a newly discovered group, or a placeholder if the lookup fails.

        The placeholder keeps the object map consistent with the recorded edge.
        """
        try:
            return self.directory.get_attributes(group_id, NodeType.GROUP)
        except DirectoryLookupError as e:
            self._warn(warnings, group_id, f"attribute lookup failed: {e}")
            return placeholder_group(group_id)
