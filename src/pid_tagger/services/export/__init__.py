"""
Export service: Excel and CSV output of a curated tag graph.
"""

from .spreadsheet import SHEET_NAMES, TagSheetExporter, export_to_excel

__all__ = [
    "TagSheetExporter",
    "export_to_excel",
    "SHEET_NAMES",
]
