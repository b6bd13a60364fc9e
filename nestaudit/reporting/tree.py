"""
Ancestor Tree Projection
========================

Rebuilds a printable hierarchy from an ancestor closure's recorded edges.

Starting at the root, the children of a node are the groups whose recorded
members include it. A group reached along several paths is printed once per
path; that repetition is the multi-path membership, not duplication. A group
that is already on the current branch (a nesting cycle) is printed with a
circular marker and not descended into.
"""

from dataclasses import dataclass

from ..model.schemas import AncestorClosure, NodeType


@dataclass(frozen=True)
class TreeLine:
    """One row of a rendered hierarchy."""
    depth: int
    object_id: str
    name: str
    node_type: NodeType = NodeType.GROUP
    circular: bool = False


def project_ancestor_tree(closure: AncestorClosure) -> list[TreeLine]:
    """Project an ancestor closure into root-to-leaf tree lines.

    Args:
        closure: Result of AncestorClosureResolver

    Returns:
        Lines in depth-first order; the root is the only line at depth 0
    """
    graph = closure.graph
    root = closure.root
    lines = [TreeLine(depth=0, object_id=root.object_id, name=root.display_name,
                      node_type=root.node_type)]

    def node_type_of(object_id: str) -> NodeType:
        obj = graph.get_object(object_id)
        return obj.node_type if obj else NodeType.UNKNOWN

    def walk(node_id: str, depth: int, branch: frozenset) -> None:
        children = sorted(graph.membership_ids_of(node_id),
                          key=lambda oid: graph.get_node_name(oid).lower())
        for child_id in children:
            circular = child_id in branch
            lines.append(TreeLine(
                depth=depth,
                object_id=child_id,
                name=graph.get_node_name(child_id),
                node_type=node_type_of(child_id),
                circular=circular,
            ))
            if not circular:
                walk(child_id, depth + 1, branch | {child_id})

    walk(root.object_id, 1, frozenset({root.object_id}))
    return lines


def render_tree(lines: list[TreeLine], indent: str = "    ") -> str:
    """Render tree lines as indented text."""
    rendered = []
    for line in lines:
        prefix = indent * (line.depth - 1) + "└── " if line.depth else ""
        suffix = " (circular)" if line.circular else ""
        rendered.append(f"{prefix}{line.name}{suffix}")
    return "\n".join(rendered)
