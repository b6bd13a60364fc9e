"""
nestaudit Reporting Module
==========================

Presentation of closure results.

Components:
- tree.py: Hierarchy projection for ancestor closures
- projections.py: Summary, tree and detailed views of descendant closures
- report_builder.py: JSON/CSV reports and text rendering
- export_html.py: Standalone HTML report generation
"""

from .tree import TreeLine, project_ancestor_tree, render_tree
from .projections import ResultProjector, SummaryRow, DetailedRow, ancestor_dataframe
from .report_builder import ReportBuilder, generate_text_report, VIEWS
from .export_html import HTMLExporter
