"""
Descendant Closure Resolver
===========================

Expands a group into every object it transitively contains, tagging each
result with its nesting depth and the group it was listed under.

Algorithm:
    Depth-first, pre-order expansion driven by an explicit stack of member
    iterators. Each group's membership is expanded at most once per
    traversal (CycleGuard). A group reached a second time still appears as
    a nested-group entry, but contributes no members again, so depth and
    source shown for its members are those of the first path.

Inclusion policy:
    Users are classified against the inactivity threshold; inactive users
    (including ones that never logged on) are dropped unless
    include_inactive is set, in which case they are kept and flagged.
"""

from datetime import datetime
from typing import Iterator, Optional, Callable

from ..config import TraversalConfig
from ..directory.base import DirectoryQuery, DirectoryLookupError, ObjectNotFoundError
from ..model.graph_builder import ClosureGraph
from ..model.schemas import (
    ClosureWarning, DescendantClosure, DescendantEntry, DirectoryObject,
    MembershipEdge, NodeType, placeholder_group
)
from .activity import classify_activity
from .cycle_guard import CycleGuard


class DescendantTraversal:
    """State of one descendant-closure invocation.

    Iterating yields DescendantEntry objects as they are discovered; the
    sequence is finite and can only be consumed once. result() drains any
    remaining entries and returns the DescendantClosure.
    """

    def __init__(self, resolver: "DescendantClosureResolver", root: DirectoryObject):
        self.resolver = resolver
        self.root = root
        self.graph = ClosureGraph()
        self.guard = CycleGuard()
        self.entries: list[DescendantEntry] = []
        self.warnings: list[ClosureWarning] = []
        self.truncated = False

        self.graph.add_object(root)
        self._walker = self._walk()

    def __iter__(self) -> Iterator[DescendantEntry]:
        return self

    def __next__(self) -> DescendantEntry:
        return next(self._walker)

    def result(self) -> DescendantClosure:
        for _ in self._walker:
            pass
        return DescendantClosure(
            root=self.root,
            graph=self.graph,
            entries=list(self.entries),
            warnings=list(self.warnings),
            truncated=self.truncated,
        )

    def _warn(self, object_id: Optional[str], message: str, kind: str = "lookup") -> None:
        warning = ClosureWarning(object_id=object_id, message=message, kind=kind)
        self.warnings.append(warning)
        self.resolver._log(f"[!] {warning}")

    def _members(self, group_id: str) -> list[tuple[str, NodeType]]:
        try:
            return self.resolver.directory.get_members_of(group_id)
        except DirectoryLookupError as e:
            self._warn(group_id, f"member lookup failed: {e}")
            return []

    def _fetch(self, member_id: str, node_type: NodeType) -> Optional[DirectoryObject]:
        """Object from the graph if already seen, else from the directory.

        A group whose attributes cannot be read is replaced by a placeholder so
        its members are still expanded; any other member is skipped.
        """
        obj = self.graph.get_object(member_id)
        if obj is not None:
            return obj
        try:
            obj = self.resolver.directory.get_attributes(member_id, node_type)
        except DirectoryLookupError as e:
            if node_type != NodeType.GROUP:
                self._warn(member_id, f"attribute lookup failed, skipped: {e}")
                return None
            self._warn(member_id, f"attribute lookup failed, using placeholder: {e}")
            obj = placeholder_group(member_id)
        self.graph.add_object(obj)
        return obj

    def _walk(self) -> Iterator[DescendantEntry]:
        config = self.resolver.config
        max_nodes = config.max_nodes

        if not self.guard.should_expand(self.root.object_id):
            return

        # (group id, depth of its members, iterator over its members)
        stack = [(self.root.object_id, 0, iter(self._members(self.root.object_id)))]

        while stack:
            group_id, depth, members = stack[-1]
            member = next(members, None)
            if member is None:
                stack.pop()
                continue

            member_id, node_type = member

            if (max_nodes is not None and not self.graph.has_object(member_id)
                    and self.graph.object_count >= max_nodes):
                self.truncated = True
                self._warn(member_id, f"node limit {max_nodes} reached, traversal stopped",
                           kind="truncated")
                return

            obj = self._fetch(member_id, node_type)
            if obj is None:
                continue

            entry = self._classify(obj, node_type, group_id, depth)
            if entry is None:
                continue

            self.graph.add_edge(MembershipEdge(source_id=member_id, target_id=group_id))
            self.entries.append(entry)
            yield entry

            if entry.is_nested_group and config.expand_nested:
                if member_id in self.guard:
                    continue
                if config.max_depth is not None and depth >= config.max_depth:
                    self.truncated = True
                    self._warn(member_id, f"depth limit {config.max_depth} reached, "
                                          f"nested members not expanded", kind="truncated")
                    continue
                if self.guard.should_expand(member_id):
                    stack.append((member_id, depth + 1, iter(self._members(member_id))))

    def _classify(self, obj: DirectoryObject, listed_type: NodeType,
                  group_id: str, depth: int) -> Optional[DescendantEntry]:
        """Apply kind-specific handling; None means the object is excluded."""
        config = self.resolver.config
        node_type = obj.node_type if obj.node_type != NodeType.UNKNOWN else listed_type

        if node_type == NodeType.GROUP:
            return DescendantEntry(obj=obj, depth=depth, source_group_id=group_id,
                                   is_nested_group=True)

        if node_type == NodeType.USER:
            activity = classify_activity(obj.last_activity, config.inactive_days, self.resolver.now)
            if activity.is_inactive and not config.include_inactive:
                return None
            return DescendantEntry(obj=obj, depth=depth, source_group_id=group_id,
                                   activity=activity)

        return DescendantEntry(obj=obj, depth=depth, source_group_id=group_id)


class DescendantClosureResolver:
    """Resolves the transitive has-member closure of a group.

    Usage:
        resolver = DescendantClosureResolver(directory, TraversalConfig(include_inactive=True))
        closure = resolver.resolve("Domain Admins")

        # Or stream entries as they are discovered
        traversal = resolver.traverse("Domain Admins")
        for entry in traversal:
            print(entry.depth, entry.obj.name)
    """

    def __init__(
        self,
        directory: DirectoryQuery,
        config: Optional[TraversalConfig] = None,
        now: Optional[datetime] = None,
        verbose: bool = False,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        """Initialize the resolver.

        Args:
            directory: Directory collaborator to query
            config: Inactivity policy, nested expansion flag and limits
            now: Reference time for activity classification (default: current time)
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
        """
        self.directory = directory
        self.config = config or TraversalConfig()
        self.now = now
        self.verbose = verbose
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def traverse(self, identity: str) -> DescendantTraversal:
        """Resolve the root group and return a lazy traversal over its members.

        Raises:
            ObjectNotFoundError: identity does not resolve to exactly one group
        """
        root = self.directory.resolve_object(identity)
        if root.node_type != NodeType.GROUP:
            raise ObjectNotFoundError(identity, f"{root.name} is a {root.node_type.value}, not a Group")
        self._log(f"[*] Expanding members of {root.name}...")
        return DescendantTraversal(self, root)

    def resolve(self, identity: str) -> DescendantClosure:
        """Compute the full descendant closure of a group."""
        closure = self.traverse(identity).result()
        self._log(f"[+] Found {len(closure.entries)} entries "
                  f"({len(closure.warnings)} warnings)")
        return closure
