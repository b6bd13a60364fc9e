"""
Report Builder Module
=====================

Writes closure results to disk and renders them as text.

The report contains:
- The resolved root object
- The closure (groups for ancestors, entries for descendants)
- Warnings and the truncation flag

Design Decisions:
-----------------
1. JSON reports are the closure's to_dict() plus generation metadata
2. Tables are exported through pandas so CSV quoting is handled for us
3. Text rendering reuses the projections, so every output format shows the
   same rows
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Union

from ..model.schemas import AncestorClosure, DescendantClosure
from .projections import ResultProjector, ancestor_dataframe
from .tree import project_ancestor_tree, render_tree

Closure = Union[AncestorClosure, DescendantClosure]

VIEWS = ("summary", "tree", "detailed")


class ReportBuilder:
    """Writes JSON and CSV reports for a closure.

    Usage:
        builder = ReportBuilder(output_dir="output")
        json_path = builder.save_json(closure)
        csv_path = builder.save_csv(closure)
    """

    def __init__(self, output_dir: str = "output"):
        """Initialize the report builder.

        Args:
            output_dir: Directory for output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _basename(self, closure: Closure) -> str:
        direction = "memberof" if isinstance(closure, AncestorClosure) else "members"
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in closure.root.name)
        return f"{direction}_{safe}"

    def save_json(self, closure: Closure) -> str:
        """Save the closure as JSON.

        Returns:
            Path to saved JSON file
        """
        json_path = self.output_dir / f"{self._basename(closure)}.json"

        report_dict = closure.to_dict()
        report_dict["metadata"] = {
            "timestamp": datetime.now().isoformat(),
            "objects": closure.graph.object_count,
            "edges": closure.graph.edge_count,
        }

        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(report_dict, f, indent=2, default=str)

        return str(json_path)

    def save_csv(self, closure: Closure) -> str:
        """Save the closure's flat table as CSV.

        Returns:
            Path to saved CSV file
        """
        csv_path = self.output_dir / f"{self._basename(closure)}.csv"
        if isinstance(closure, AncestorClosure):
            frame = ancestor_dataframe(closure)
        else:
            frame = ResultProjector(closure).to_dataframe()
        frame.to_csv(csv_path, index=False, encoding='utf-8')
        return str(csv_path)


def generate_text_report(closure: Closure, view: str = "summary") -> str:
    """Generate a text report for a closure.

    Args:
        closure: AncestorClosure or DescendantClosure
        view: One of "summary", "tree", "detailed"

    Returns:
        Formatted text report
    """
    if view not in VIEWS:
        raise ValueError(f"Unknown view '{view}', expected one of {', '.join(VIEWS)}")

    root = closure.root
    if isinstance(closure, AncestorClosure):
        title = f"Group memberships of {root.display_name}"
    else:
        title = f"Members of {root.display_name}"

    lines = [
        "=" * 60,
        title,
        "=" * 60,
        f"Root: {root.object_id} ({root.node_type.value})",
        "",
    ]

    if isinstance(closure, AncestorClosure):
        lines.extend(_ancestor_body(closure, view))
    else:
        lines.extend(_descendant_body(closure, view))

    if closure.truncated:
        lines.extend(["", "NOTE: traversal was truncated; results are partial"])

    if closure.warnings:
        lines.extend(["", "WARNINGS", "-" * 40])
        for warning in closure.warnings:
            lines.append(f"  [{warning.kind}] {warning}")

    return "\n".join(lines)


def _ancestor_body(closure: AncestorClosure, view: str) -> list[str]:
    graph = closure.graph
    groups = closure.groups
    lines = [f"Total groups: {len(groups)}", ""]

    if view == "tree":
        lines.append(render_tree(project_ancestor_tree(closure)))
        return lines

    for group in sorted(groups, key=lambda g: g.display_name.lower()):
        parents = closure.parents_of(group.object_id)
        direct = closure.root.object_id in parents
        marker = "direct" if direct else "nested"
        lines.append(f"  {group.display_name} [{marker}]")
        if view == "detailed":
            via = sorted(graph.get_node_name(oid) for oid in parents)
            lines.append(f"      via: {', '.join(via)}")
            lines.append(f"      id:  {group.object_id}")
    return lines


def _descendant_body(closure: DescendantClosure, view: str) -> list[str]:
    projector = ResultProjector(closure)

    if view == "tree":
        return [render_tree(projector.tree())]

    if view == "detailed":
        rows = projector.detailed()
        lines = [f"Distinct objects: {len(rows)}", ""]
        for row in rows:
            activity = f" [{row.activity.value}]" if row.activity else ""
            lines.append(f"  {row.display_name} ({row.node_type.value}){activity}")
            lines.append(f"      member of: {', '.join(row.parent_groups)}")
            lines.append(f"      depth: {', '.join(str(d) for d in row.depths)}")
            if row.last_activity:
                lines.append(f"      last activity: {row.last_activity}")
            for key, value in sorted(row.properties.items()):
                lines.append(f"      {key}: {value}")
        return lines

    rows = projector.summary()
    lines = [f"Distinct objects: {len(rows)}", ""]
    for row in rows:
        activity = f" [{row.activity.value}]" if row.activity else ""
        lines.append(f"  {row.display_name:<40} {row.node_type.value:<9} depth {row.depth}{activity}")
    return lines
