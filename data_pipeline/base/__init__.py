"""
Base Ingestion Framework - Core components of the canonical lap pipeline
"""

from data_pipeline.base.exceptions import (
    EmptyDatasetError,
    IngestionError,
    MissingColumnsError,
    TableNotFoundError,
)
from data_pipeline.base.column_normalizer import ColumnMapping, normalize_columns
from data_pipeline.base.record_parser import RecordParser, parse_records, should_retain
from data_pipeline.base.sort_keys import assign_sort_keys
from data_pipeline.base.qa_engine import LapValidator, QAReport, validate_laps
from data_pipeline.base.base_ingestor import BaseIngestor, IngestionResult

__all__ = [
    "EmptyDatasetError",
    "IngestionError",
    "MissingColumnsError",
    "TableNotFoundError",
    "ColumnMapping",
    "normalize_columns",
    "RecordParser",
    "parse_records",
    "should_retain",
    "assign_sort_keys",
    "LapValidator",
    "QAReport",
    "validate_laps",
    "BaseIngestor",
    "IngestionResult",
]
