"""
sensorboard Export Module

Tabular CSV/Excel rendering of merged readings.
"""

from .tabular import render_export, to_csv, to_excel, export_filename, EXPORT_FORMATS

__all__ = ["render_export", "to_csv", "to_excel", "export_filename", "EXPORT_FORMATS"]
