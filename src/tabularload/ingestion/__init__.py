"""
Data ingestion layer: streaming source reading and batched row import.
"""

from tabularload.ingestion.importer import ImportStats, RowImporter, import_rows
from tabularload.ingestion.reader import CSVSource

__all__ = ["CSVSource", "ImportStats", "RowImporter", "import_rows"]
