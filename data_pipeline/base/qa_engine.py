"""
QA Engine - Lap validation and data quality reporting

Flags anomalous laps without discarding them. Bounds are computed over the
whole sorted session, never over a filtered subset.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from app.utils.logger import get_logger
from app.utils.validators import robust_bounds, validate_sector_times
from data_pipeline.schemas.lap_schema import (
    KeyedLap,
    LapStatus,
    ValidatedLap,
    ValidationFlag,
)


_KEYED_FIELDS = set(KeyedLap.model_fields)


@dataclass
class QAReport:
    """Quality assurance report for one validated session."""

    total_records: int
    valid_records: int
    suspect_records: int
    invalid_records: int
    flag_counts: Dict[str, int]
    warnings: List[str]
    statistics: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def anomalies_detected(self) -> int:
        return self.suspect_records + self.invalid_records

    @property
    def passed(self) -> bool:
        """True when no lap was marked invalid."""
        return self.invalid_records == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "total_records": self.total_records,
            "valid_records": self.valid_records,
            "suspect_records": self.suspect_records,
            "invalid_records": self.invalid_records,
            "flag_counts": dict(self.flag_counts),
            "warnings": list(self.warnings),
            "statistics": dict(self.statistics),
            "timestamp": self.timestamp.isoformat(),
        }


def resolve_status(flags: Sequence[ValidationFlag]) -> LapStatus:
    """invalid on a non-positive time, suspect on any other flag, else valid."""
    if ValidationFlag.NON_POSITIVE_TIME in flags:
        return LapStatus.INVALID
    if flags:
        return LapStatus.SUSPECT
    return LapStatus.VALID


class LapValidator:
    """
    Statistical lap validator.

    Checks per lap, in order:
    - Non-positive lap time
    - Lap time outside median +/- k * MAD
    - Session-elapsed going backwards relative to the last lap that reported it
    - Timestamp shared with another lap
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize validator.

        Args:
            config: Optional overrides for mad_multiplier, min_outlier_samples,
                mad_floor and sector_tolerance
        """
        self.config = config or {}
        self.logger = get_logger("qa_engine")

        self.mad_multiplier = self.config.get("mad_multiplier", 4.0)
        self.min_outlier_samples = self.config.get("min_outlier_samples", 5)
        self.mad_floor = self.config.get("mad_floor", 1.0)
        self.sector_tolerance = self.config.get("sector_tolerance", 0.1)

    def compute_bounds(self, laps: Sequence[KeyedLap]):
        """Outlier bounds over all strictly positive lap times, or None."""
        return robust_bounds(
            (lap.lap_time_s for lap in laps if lap.lap_time_s > 0),
            k=self.mad_multiplier,
            min_samples=self.min_outlier_samples,
            mad_floor=self.mad_floor,
        )

    def validate(self, laps: Sequence[KeyedLap]) -> List[ValidatedLap]:
        """
        Validate a sorted session.

        Args:
            laps: Keyed laps in sort order (ValidatedLap input is re-validated)

        Returns:
            New ValidatedLap instances in the same order
        """
        bounds = self.compute_bounds(laps)
        timestamp_counts = Counter(lap.timestamp for lap in laps if lap.timestamp)

        validated: List[ValidatedLap] = []
        previous_elapsed: Optional[float] = None

        for lap in laps:
            flags: List[ValidationFlag] = []

            if lap.lap_time_s <= 0:
                flags.append(ValidationFlag.NON_POSITIVE_TIME)
            elif bounds is not None and not (bounds[0] <= lap.lap_time_s <= bounds[1]):
                flags.append(ValidationFlag.STATISTICAL_OUTLIER)

            elapsed = lap.session_elapsed_s
            if previous_elapsed is not None and elapsed is not None and elapsed < previous_elapsed:
                flags.append(ValidationFlag.NEGATIVE_TIME_DELTA)
            if elapsed is not None:
                previous_elapsed = elapsed

            if lap.timestamp and timestamp_counts[lap.timestamp] >= 2:
                flags.append(ValidationFlag.DUPLICATE_TIMESTAMP)

            validated.append(
                ValidatedLap(
                    **lap.model_dump(include=_KEYED_FIELDS),
                    lap_status=resolve_status(flags),
                    validation_flags=tuple(flags),
                )
            )

        return validated

    def build_report(self, laps: Sequence[ValidatedLap]) -> QAReport:
        """Summarize validation results and sector consistency warnings."""
        status_counts = Counter(lap.lap_status for lap in laps)
        flag_counts = Counter(flag.value for lap in laps for flag in lap.validation_flags)

        warnings: List[str] = []
        sector_mismatches = 0
        for lap in laps:
            if lap.s1_s is None and lap.s2_s is None and lap.s3_s is None:
                continue
            is_valid, message = validate_sector_times(
                lap.s1_s, lap.s2_s, lap.s3_s,
                lap_time=lap.lap_time_s,
                tolerance=self.sector_tolerance,
            )
            if not is_valid:
                sector_mismatches += 1
                if len(warnings) < 10:
                    warnings.append(f"Lap {lap.lap_number} (row {lap.row_index}): {message}")

        if sector_mismatches > len(warnings):
            warnings.append(f"... {sector_mismatches - len(warnings)} more sector warnings")

        bounds = self.compute_bounds(laps)
        statistics = {
            "outlier_bounds": list(bounds) if bounds is not None else None,
            "sector_mismatches": sector_mismatches,
            "flagged_rate": (
                (len(laps) - status_counts[LapStatus.VALID]) / len(laps) if laps else 0.0
            ),
        }

        return QAReport(
            total_records=len(laps),
            valid_records=status_counts[LapStatus.VALID],
            suspect_records=status_counts[LapStatus.SUSPECT],
            invalid_records=status_counts[LapStatus.INVALID],
            flag_counts=dict(flag_counts),
            warnings=warnings,
            statistics=statistics,
        )

    def run_checks(self, laps: Sequence[KeyedLap], source: str = "unknown"):
        """
        Validate laps and build the QA report.

        Returns:
            Tuple of (validated laps, QAReport)
        """
        validated = self.validate(laps)
        report = self.build_report(validated)

        self.logger.info(
            f"QA checks on {report.total_records} laps from {source}: "
            f"{report.suspect_records} suspect, {report.invalid_records} invalid",
            extra={"extra_data": {"source": source, "flag_counts": report.flag_counts}},
        )
        if report.warnings:
            self.logger.warning(
                f"{report.statistics['sector_mismatches']} laps with inconsistent sectors",
                extra={"extra_data": {"source": source}},
            )

        return validated, report


def validate_laps(laps: Sequence[KeyedLap], **config: Any) -> List[ValidatedLap]:
    """Validate a sorted session with default (or overridden) tunables."""
    return LapValidator(config=config).validate(laps)
