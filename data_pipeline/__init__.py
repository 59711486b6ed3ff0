"""
Data Pipeline Package - Lap ingestion, normalization and validation

Turns delimited exports and race database tables into one canonical,
validated lap dataset.
"""

from data_pipeline.schemas import lap_schema, analysis_schema

__all__ = [
    "lap_schema",
    "analysis_schema",
]
