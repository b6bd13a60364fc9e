"""
Cycle Guard
===========

Visitation bookkeeping shared by the closure resolvers.

Group nesting in AD may be cyclic (A contains B, B contains A). Every
resolver asks the guard before querying a node's edges; since the set of
objects is finite and each one is expanded at most once, every traversal
terminates.

A guard belongs to exactly one resolver invocation.
"""


class CycleGuard:
    """Monotonically growing set of expanded node ids.

    Usage:
        guard = CycleGuard()
        guard.should_expand("G1")  # True
        guard.should_expand("G1")  # False
    """

    def __init__(self):
        self._expanded: set[str] = set()

    def should_expand(self, node_id: str) -> bool:
        """Return True the first time node_id is seen, False afterwards.

        The id is recorded as expanded in both cases.
        """
        if node_id in self._expanded:
            return False
        self._expanded.add(node_id)
        return True

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._expanded

    @property
    def expanded_count(self) -> int:
        return len(self._expanded)
