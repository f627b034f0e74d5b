"""Reporting package — HTML report and CSV export."""

from .csv_export import CSV_FIELDS, build_csv_rows, export_csv
from .html_report import export_html, render_html

__all__ = [
    "CSV_FIELDS",
    "build_csv_rows",
    "export_csv",
    "export_html",
    "render_html",
]
