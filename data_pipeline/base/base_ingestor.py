"""
Base Ingestor - Abstract base class for lap ingestors

Provides the shared canonical pipeline: parse (subclass) -> sort keys ->
validation -> QA report, with error conversion and metrics collection.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import time

from prometheus_client import Counter, Histogram

from app.utils.logger import get_logger
from data_pipeline.base.exceptions import (
    EmptyDatasetError,
    IngestionError,
    MissingColumnsError,
    TableNotFoundError,
)
from data_pipeline.base.qa_engine import LapValidator, QAReport
from data_pipeline.base.sort_keys import assign_sort_keys
from data_pipeline.schemas.lap_schema import ParsedLap, SessionMeta, ValidatedLap


@dataclass
class IngestionResult:
    """Result of an ingestion operation. Failed results never carry records."""

    success: bool
    source: str
    records: List[ValidatedLap] = field(default_factory=list)
    meta: Optional[SessionMeta] = None
    qa_report: Optional[QAReport] = None
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def records_ingested(self) -> int:
        return len(self.records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "source": self.source,
            "records_ingested": self.records_ingested,
            "meta": self.meta.model_dump(mode="json") if self.meta else None,
            "qa_report": self.qa_report.to_dict() if self.qa_report else None,
            "errors": list(self.errors),
            "duration_seconds": self.duration_seconds,
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp.isoformat(),
        }


def failure_reason(error: IngestionError) -> str:
    """Metric label for an ingestion failure."""
    if isinstance(error, MissingColumnsError):
        return "missing_columns"
    if isinstance(error, EmptyDatasetError):
        return "empty_dataset"
    if isinstance(error, TableNotFoundError):
        return "table_not_found"
    return "ingestion_error"


class BaseIngestor(ABC):
    """
    Abstract base class for lap ingestors.

    Subclasses turn one raw source into parsed laps; the base class builds the
    canonical, validated dataset from them.
    """

    # Prometheus metrics (class-level, shared across instances)
    laps_ingested = Counter(
        'laps_ingested_total',
        'Total laps ingested',
        ['source', 'status']
    )
    ingestion_failures = Counter(
        'ingestion_failures_total',
        'Total ingestion failures',
        ['source', 'reason']
    )
    ingestion_duration = Histogram(
        'ingestion_duration_seconds',
        'Time spent building a canonical dataset',
        ['source'],
        buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0]
    )

    def __init__(
        self,
        source_name: str,
        validator: Optional[LapValidator] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize base ingestor.

        Args:
            source_name: Name of data source (delimited, race_database)
            validator: Lap validator instance (default tunables if None)
            config: Optional configuration dict
        """
        self.source_name = source_name
        self.validator = validator or LapValidator()
        self.config = config or {}
        self.logger = get_logger(f"ingestor.{source_name}")

    @abstractmethod
    def ingest(self, *args: Any, **kwargs: Any) -> Tuple[List[ParsedLap], SessionMeta]:
        """
        Parse the raw source into laps (abstract method).

        Returns:
            Tuple of (parsed laps, session metadata)

        Raises:
            IngestionError: If the source cannot produce any lap
        """

    def build_canonical(
        self,
        laps: List[ParsedLap]
    ) -> Tuple[List[ValidatedLap], QAReport]:
        """Sort and validate parsed laps."""
        keyed = assign_sort_keys(laps)
        return self.validator.run_checks(keyed, source=self.source_name)

    def run(self, *args: Any, **kwargs: Any) -> IngestionResult:
        """
        Execute the full pipeline: ingest -> sort -> validate -> QA.

        Ingestion errors are converted into a failed result with no records.

        Returns:
            IngestionResult with operation summary
        """
        start_time = time.time()

        try:
            laps, meta = self.ingest(*args, **kwargs)
            records, report = self.build_canonical(laps)
        except IngestionError as e:
            duration = time.time() - start_time
            reason = failure_reason(e)
            self.ingestion_failures.labels(source=self.source_name, reason=reason).inc()
            self.logger.warning(
                f"{self.source_name} ingestion aborted: {e}",
                extra={"extra_data": {"reason": reason}},
            )
            return IngestionResult(
                success=False,
                source=self.source_name,
                errors=[str(e)],
                duration_seconds=duration,
            )

        duration = time.time() - start_time
        self.ingestion_duration.labels(source=self.source_name).observe(duration)
        for status, count in (
            ("valid", report.valid_records),
            ("suspect", report.suspect_records),
            ("invalid", report.invalid_records),
        ):
            if count:
                self.laps_ingested.labels(source=self.source_name, status=status).inc(count)

        self.logger.info(
            f"{self.source_name} ingestion complete: {len(records)} laps, "
            f"{report.anomalies_detected} flagged",
            extra={"extra_data": {
                "data_mode": meta.data_mode.value,
                "has_sector_data": meta.has_sector_data,
                "duration_seconds": round(duration, 3),
            }},
        )

        return IngestionResult(
            success=True,
            source=self.source_name,
            records=records,
            meta=meta,
            qa_report=report,
            duration_seconds=duration,
        )
