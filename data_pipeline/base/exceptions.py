"""
Ingestion errors - the only hard failures of the lap pipeline

Everything after parsing is total; these are raised by the parser and
ingestors and converted into error messages by the orchestrator.
"""

from typing import Iterable, List


class IngestionError(ValueError):
    """Base class for unrecoverable ingestion failures."""


class MissingColumnsError(IngestionError):
    """Required canonical columns cannot be resolved from the header."""

    def __init__(self, missing: Iterable[str]):
        self.missing: List[str] = list(missing)
        super().__init__(f"Missing columns: {', '.join(self.missing)}")


class EmptyDatasetError(IngestionError):
    """No row survived the retention rule."""

    def __init__(self, message: str = "No valid lap records found"):
        super().__init__(message)


class TableNotFoundError(IngestionError):
    """The race database holds no table with the requested name."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"{table_name} table not found in race database")
