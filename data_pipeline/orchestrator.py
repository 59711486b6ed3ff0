"""
Ingestion Orchestrator - Coordinates lap ingestors

Entry point from raw input to the canonical, validated dataset. Input arrives
in memory (text, row tables, database tables); nothing is read from disk here.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from app.utils.logger import get_logger
from config.settings import Settings, get_settings
from data_pipeline.base.base_ingestor import IngestionResult
from data_pipeline.base.qa_engine import LapValidator
from data_pipeline.base.sort_keys import assign_sort_keys
from data_pipeline.ingestors.delimited_ingestor import DelimitedIngestor, TableInput
from data_pipeline.ingestors.race_database_ingestor import (
    RaceCatalogEntry,
    RaceDatabaseIngestor,
    TableData,
)
from data_pipeline.schemas.lap_schema import ParsedLap, ValidatedLap


class IngestionOrchestrator:
    """
    Orchestrates lap ingestion.

    Manages:
    - Validator configuration shared by all ingestors
    - Routing of delimited exports and race databases
    - Re-validation of canonical datasets
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, settings: Optional[Settings] = None):
        """
        Initialize orchestrator.

        Args:
            config: Optional per-component overrides ('qa', 'delimited', 'race_database')
            settings: Settings instance (cached settings if None)
        """
        self.config = config or {}
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)

        validation = self.settings.validation
        qa_config = {
            "mad_multiplier": validation.mad_multiplier,
            "min_outlier_samples": validation.min_outlier_samples,
            "mad_floor": validation.mad_floor,
        }
        qa_config.update(self.config.get("qa", {}))
        self.validator = LapValidator(qa_config)

        delimited_config = {"delimiters": self.settings.ingestion.delimiters}
        delimited_config.update(self.config.get("delimited", {}))
        database_config = {
            "time_unit": self.settings.ingestion.database_time_unit,
            "auto_unit_threshold": self.settings.ingestion.auto_unit_threshold,
        }
        database_config.update(self.config.get("race_database", {}))

        self.ingestors = {
            "delimited": DelimitedIngestor(self.validator, delimited_config),
            "race_database": RaceDatabaseIngestor(self.validator, database_config),
        }

        self.logger.info("Ingestion orchestrator initialized")

    def ingest_delimited(self, table: TableInput) -> IngestionResult:
        """Build the canonical dataset of one delimited export or row table."""
        return self.ingestors["delimited"].run(table)

    def ingest_race(
        self,
        tables: Mapping[str, TableData],
        race_id: str,
        drivers: Optional[Iterable[str]] = None,
        best_laps_only: bool = False,
    ) -> IngestionResult:
        """Build the canonical dataset of one race from database tables."""
        return self.ingestors["race_database"].run(
            tables, race_id, drivers=drivers, best_laps_only=best_laps_only
        )

    def ingest_races(
        self,
        tables: Mapping[str, TableData],
        race_ids: Iterable[str],
        drivers: Optional[Iterable[str]] = None,
        best_laps_only: bool = False,
    ) -> Dict[str, IngestionResult]:
        """Build one canonical dataset per race id."""
        results = self.ingestors["race_database"].run_races(
            tables, race_ids, drivers=drivers, best_laps_only=best_laps_only
        )
        failed = [race_id for race_id, result in results.items() if not result.success]
        self.logger.info(
            f"Race batch complete: {len(results) - len(failed)}/{len(results)} races ingested",
            extra={"extra_data": {"failed": failed}},
        )
        return results

    def scan_race_catalog(self, tables: Mapping[str, TableData]) -> List[RaceCatalogEntry]:
        return self.ingestors["race_database"].scan_race_catalog(tables)

    def revalidate(self, laps: Sequence[ParsedLap]) -> List[ValidatedLap]:
        """
        Rebuild sort keys and validation for an existing dataset.

        Returns fresh instances; ``laps`` stays usable by other consumers.
        """
        return self.validator.validate(assign_sort_keys(laps))
