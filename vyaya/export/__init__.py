"""CSV export package."""

from vyaya.export.csv_export import CSV_COLUMNS, export_history_csv

__all__ = ["CSV_COLUMNS", "export_history_csv"]
