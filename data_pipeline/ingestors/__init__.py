"""
Data Ingestors Package - Individual lap source ingestion modules
"""

from data_pipeline.ingestors.delimited_ingestor import DelimitedIngestor
from data_pipeline.ingestors.race_database_ingestor import RaceDatabaseIngestor

__all__ = [
    "DelimitedIngestor",
    "RaceDatabaseIngestor",
]
