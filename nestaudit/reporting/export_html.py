"""
HTML Export Module
==================

Exports closure results as standalone HTML reports.

Features:
- Self-contained HTML with embedded styles
- Summary cards, hierarchy and result table
- Suitable for sharing/archiving

Design Decisions:
-----------------
1. Single-file HTML for easy sharing
2. No external dependencies (CSS inline)
3. Every directory-supplied string is escaped
4. Print-friendly styling
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Union
import html

from ..model.schemas import AncestorClosure, DescendantClosure
from .projections import ResultProjector
from .tree import TreeLine, project_ancestor_tree

Closure = Union[AncestorClosure, DescendantClosure]


class HTMLExporter:
    """Exports closure results to HTML format.

    Usage:
        exporter = HTMLExporter()

        html_path = exporter.export(closure, "report.html")
    """

    # CSS styles for the report
    CSS = """
    :root {
        --bg-primary: #1a202c;
        --bg-secondary: #2d3748;
        --bg-tertiary: #4a5568;
        --text-primary: #e2e8f0;
        --text-secondary: #a0aec0;
        --accent: #ecc94b;
        --warning: #ed8936;
        --inactive: #e53e3e;
    }

    * { box-sizing: border-box; margin: 0; padding: 0; }

    body {
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
        background-color: var(--bg-primary);
        color: var(--text-primary);
        line-height: 1.6;
        padding: 2rem;
    }

    .container { max-width: 1200px; margin: 0 auto; }

    h1 {
        color: var(--accent);
        font-size: 2.2rem;
        border-bottom: 2px solid var(--accent);
        padding-bottom: 0.5rem;
        margin-bottom: 1rem;
    }

    h2 { font-size: 1.4rem; margin: 2rem 0 1rem 0; }

    .header { text-align: center; margin-bottom: 2rem; }
    .header .subtitle { color: var(--text-secondary); }

    .summary-grid {
        display: grid;
        grid-template-columns: repeat(auto-fit, minmax(180px, 1fr));
        gap: 1rem;
    }

    .stat-card {
        background: var(--bg-secondary);
        padding: 1.25rem;
        border-radius: 8px;
        text-align: center;
    }

    .stat-card .number { font-size: 2.2rem; font-weight: bold; color: var(--accent); }
    .stat-card .label { color: var(--text-secondary); font-size: 0.85rem; text-transform: uppercase; }

    .tree {
        background: var(--bg-secondary);
        padding: 1rem;
        border-radius: 4px;
        font-family: 'Consolas', 'Monaco', monospace;
        font-size: 0.9rem;
        white-space: pre;
        overflow-x: auto;
    }

    .circular { color: var(--warning); }

    .result-table { width: 100%; border-collapse: collapse; }
    .result-table th, .result-table td {
        padding: 0.6rem;
        text-align: left;
        border-bottom: 1px solid var(--bg-tertiary);
    }
    .result-table th { color: var(--accent); font-weight: 600; }
    .result-table tr.inactive td { color: var(--inactive); }

    .notice {
        background: var(--bg-secondary);
        border-left: 4px solid var(--warning);
        padding: 1rem;
        border-radius: 4px;
        margin-top: 1rem;
    }

    .footer {
        margin-top: 3rem;
        text-align: center;
        color: var(--text-secondary);
        font-size: 0.9rem;
        padding-top: 2rem;
        border-top: 1px solid var(--bg-tertiary);
    }

    @media print {
        body { background: white; color: black; }
    }
    """

    def __init__(self, output_dir: str = "output"):
        """Initialize the HTML exporter.

        Args:
            output_dir: Directory for output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def export(self, closure: Closure, filename: Optional[str] = None) -> str:
        """Export a closure to HTML.

        Args:
            closure: AncestorClosure or DescendantClosure
            filename: Output filename (default derived from direction and root)

        Returns:
            Path to generated HTML file
        """
        if filename is None:
            direction = "memberof" if isinstance(closure, AncestorClosure) else "members"
            safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in closure.root.name)
            filename = f"{direction}_{safe}.html"

        output_path = self.output_dir / filename

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(self.render(closure))

        return str(output_path)

    def render(self, closure: Closure) -> str:
        """Generate the complete HTML document."""
        if isinstance(closure, AncestorClosure):
            title = f"Group memberships of {closure.root.display_name}"
            sections = [
                self._generate_summary([
                    (len(closure.groups), "Groups"),
                    (len(closure.graph.membership_ids_of(closure.root.object_id)), "Direct"),
                    (closure.graph.edge_count, "Membership Edges"),
                    (len(closure.warnings), "Warnings"),
                ]),
                self._generate_tree(project_ancestor_tree(closure)),
                self._generate_ancestor_table(closure),
            ]
        else:
            projector = ResultProjector(closure)
            rows = projector.summary()
            inactive = sum(1 for row in rows if row.activity and row.activity.is_inactive)
            title = f"Members of {closure.root.display_name}"
            sections = [
                self._generate_summary([
                    (len(rows), "Distinct Objects"),
                    (len(closure.entries), "Entries"),
                    (inactive, "Inactive Users"),
                    (len(closure.warnings), "Warnings"),
                ]),
                self._generate_tree(projector.tree()),
                self._generate_descendant_table(projector),
            ]

        sections.append(self._generate_notices(closure))
        body_content = "\n".join(sections)
        timestamp = datetime.now().isoformat(timespec='seconds')

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <style>
    {self.CSS}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{html.escape(title)}</h1>
            <p class="subtitle">{html.escape(closure.root.object_id)}</p>
            <p class="subtitle">Generated: {html.escape(timestamp)}</p>
        </div>
        {body_content}
        <div class="footer">
            <p>Generated by nestaudit - Active Directory group nesting audit</p>
        </div>
    </div>
</body>
</html>"""

    def _generate_summary(self, stats: list[tuple[int, str]]) -> str:
        cards = "".join(
            f"""
            <div class="stat-card">
                <div class="number">{value}</div>
                <div class="label">{html.escape(label)}</div>
            </div>"""
            for value, label in stats
        )
        return f'<h2>Summary</h2>\n<div class="summary-grid">{cards}\n</div>'

    def _generate_tree(self, lines: list[TreeLine]) -> str:
        rendered = []
        for line in lines:
            prefix = "    " * (line.depth - 1) + "└── " if line.depth else ""
            name = html.escape(line.name)
            if line.circular:
                name = f'<span class="circular">{name} (circular)</span>'
            rendered.append(f"{html.escape(prefix)}{name}")
        return f'<h2>Hierarchy</h2>\n<div class="tree">{chr(10).join(rendered)}</div>'

    def _generate_ancestor_table(self, closure: AncestorClosure) -> str:
        graph = closure.graph
        rows = []
        for group in sorted(closure.groups, key=lambda g: g.display_name.lower()):
            parents = closure.parents_of(group.object_id)
            via = ", ".join(sorted(graph.get_node_name(oid) for oid in parents))
            kind = "direct" if closure.root.object_id in parents else "nested"
            rows.append(
                f"<tr><td>{html.escape(group.display_name)}</td><td>{kind}</td>"
                f"<td>{html.escape(via)}</td><td>{html.escape(group.object_id)}</td></tr>"
            )
        return f"""
        <h2>Groups ({len(rows)})</h2>
        <table class="result-table">
            <tr><th>Group</th><th>Membership</th><th>Via</th><th>Identifier</th></tr>
            {"".join(rows)}
        </table>
        """

    def _generate_descendant_table(self, projector: ResultProjector) -> str:
        rows = []
        for row in projector.detailed():
            inactive = row.activity is not None and row.activity.is_inactive
            css = ' class="inactive"' if inactive else ""
            activity = row.activity.value if row.activity else ""
            rows.append(
                f"<tr{css}><td>{html.escape(row.display_name)}</td>"
                f"<td>{row.node_type.value}</td>"
                f"<td>{', '.join(str(d) for d in row.depths)}</td>"
                f"<td>{html.escape(', '.join(row.parent_groups))}</td>"
                f"<td>{html.escape(activity)}</td>"
                f"<td>{html.escape(row.last_activity or '')}</td></tr>"
            )
        return f"""
        <h2>Members ({len(rows)})</h2>
        <table class="result-table">
            <tr><th>Name</th><th>Type</th><th>Depth</th><th>Member Of</th>
                <th>Activity</th><th>Last Activity</th></tr>
            {"".join(rows)}
        </table>
        """

    def _generate_notices(self, closure: Closure) -> str:
        parts = []
        if closure.truncated:
            parts.append('<div class="notice">Traversal was truncated by a limit; '
                         'results are partial.</div>')
        if closure.warnings:
            items = "".join(f"<li>[{html.escape(w.kind)}] {html.escape(str(w))}</li>"
                            for w in closure.warnings)
            parts.append(f'<h2>Warnings ({len(closure.warnings)})</h2>\n'
                         f'<div class="notice"><ul>{items}</ul></div>')
        return "\n".join(parts)
