"""
Descendant Result Projections
=============================

Alternate presentations of a descendant closure's flat entry list. None of
them query the directory; everything comes from the entries and the
closure's object map.
"""

from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from ..model.schemas import ActivityState, AncestorClosure, DescendantClosure, NodeType
from .tree import TreeLine


@dataclass
class SummaryRow:
    """One distinct object of a descendant closure."""
    object_id: str
    name: str
    display_name: str
    node_type: NodeType
    depth: int  # shallowest depth at which the object was found
    activity: Optional[ActivityState] = None
    occurrences: int = 1


@dataclass
class DetailedRow:
    """One distinct object with every group it was listed under."""
    object_id: str
    name: str
    display_name: str
    node_type: NodeType
    depths: list = field(default_factory=list)
    parent_groups: list = field(default_factory=list)  # display names
    activity: Optional[ActivityState] = None
    enabled: bool = True
    last_activity: Optional[str] = None
    properties: dict = field(default_factory=dict)


class ResultProjector:
    """Pure transforms over a DescendantClosure.

    Usage:
        projector = ResultProjector(closure)
        for row in projector.summary():
            print(row.name, row.depth)
    """

    def __init__(self, closure: DescendantClosure):
        self.closure = closure

    def summary(self) -> list[SummaryRow]:
        """Deduplicated entries sorted by name (case-insensitive)."""
        rows: dict[str, SummaryRow] = {}
        for entry in self.closure.entries:
            row = rows.get(entry.object_id)
            if row is None:
                rows[entry.object_id] = SummaryRow(
                    object_id=entry.object_id,
                    name=entry.obj.name,
                    display_name=entry.obj.display_name,
                    node_type=entry.node_type,
                    depth=entry.depth,
                    activity=entry.activity,
                )
            else:
                row.occurrences += 1
                row.depth = min(row.depth, entry.depth)
        return sorted(rows.values(), key=lambda r: (r.name.lower(), r.object_id))

    def detailed(self) -> list[DetailedRow]:
        """Distinct objects with the display names of their source groups.

        A source group missing from the object map is shown by its raw id.
        """
        graph = self.closure.graph
        rows: dict[str, DetailedRow] = {}
        for entry in self.closure.entries:
            row = rows.get(entry.object_id)
            if row is None:
                obj = entry.obj
                last = obj.last_activity
                row = rows[entry.object_id] = DetailedRow(
                    object_id=obj.object_id,
                    name=obj.name,
                    display_name=obj.display_name,
                    node_type=obj.node_type,
                    activity=entry.activity,
                    enabled=obj.enabled,
                    last_activity=last.isoformat() if last else None,
                    properties={k: v for k, v in obj.properties.items()
                                if k in ('department', 'title', 'mail', 'description')},
                )
            if entry.depth not in row.depths:
                row.depths.append(entry.depth)
            parent_name = graph.get_node_name(entry.source_group_id)
            if parent_name not in row.parent_groups:
                row.parent_groups.append(parent_name)
        return sorted(rows.values(), key=lambda r: (r.name.lower(), r.object_id))

    def tree(self) -> list[TreeLine]:
        """Entries indented by nesting depth, in discovery order."""
        root = self.closure.root
        lines = [TreeLine(depth=0, object_id=root.object_id, name=root.display_name,
                          node_type=root.node_type)]
        for entry in self.closure.entries:
            lines.append(TreeLine(
                depth=entry.depth + 1,
                object_id=entry.object_id,
                name=entry.obj.display_name,
                node_type=entry.node_type,
            ))
        return lines

    def to_dataframe(self) -> pd.DataFrame:
        """Flat table of all entries (one row per entry)."""
        graph = self.closure.graph
        records = []
        for entry in self.closure.entries:
            last = entry.obj.last_activity
            records.append({
                "name": entry.obj.name,
                "display_name": entry.obj.display_name,
                "type": entry.node_type.value,
                "depth": entry.depth,
                "source_group": graph.get_node_name(entry.source_group_id),
                "nested_group": entry.is_nested_group,
                "activity": entry.activity.value if entry.activity else "",
                "enabled": entry.obj.enabled,
                "last_activity": last.isoformat() if last else "",
                "object_id": entry.object_id,
            })
        columns = ["name", "display_name", "type", "depth", "source_group", "nested_group",
                   "activity", "enabled", "last_activity", "object_id"]
        return pd.DataFrame.from_records(records, columns=columns)


def ancestor_dataframe(closure: AncestorClosure) -> pd.DataFrame:
    """Flat table of an ancestor closure: one row per discovered group."""
    graph = closure.graph
    records = []
    for group in closure.groups:
        via = sorted(graph.get_node_name(oid) for oid in closure.parents_of(group.object_id))
        records.append({
            "name": group.name,
            "display_name": group.display_name,
            "direct": closure.root.object_id in closure.parents_of(group.object_id),
            "via": "; ".join(via),
            "object_id": group.object_id,
        })
    return pd.DataFrame.from_records(
        records, columns=["name", "display_name", "direct", "via", "object_id"]
    )
