"""
Tests for QA Engine
"""

import pytest

from app.utils.validators import robust_bounds
from data_pipeline.base.qa_engine import LapValidator, resolve_status, validate_laps
from data_pipeline.schemas.lap_schema import LapStatus, ValidationFlag


@pytest.fixture
def validator():
    """Create validator with default tunables."""
    return LapValidator(config={})


def keyed_session(make_keyed, lap_times, **overrides):
    return [
        make_keyed(lap_number=i + 1, lap_time_s=t, row_index=i, **overrides)
        for i, t in enumerate(lap_times)
    ]


def test_outlier_detected_with_zero_mad(validator, make_keyed):
    """MAD of zero falls back to the floor: bounds 10 +/- 4."""
    validated = validator.validate(keyed_session(make_keyed, [10, 10, 10, 10, 100]))

    assert [lap.lap_status for lap in validated] == [LapStatus.VALID] * 4 + [LapStatus.SUSPECT]
    assert validated[-1].validation_flags == (ValidationFlag.STATISTICAL_OUTLIER,)


def test_no_outlier_detection_below_min_samples(validator, make_keyed):
    validated = validator.validate(keyed_session(make_keyed, [10, 10, 10, 100]))

    assert all(lap.lap_status == LapStatus.VALID for lap in validated)


def test_non_positive_times_excluded_from_bounds(validator, make_keyed):
    """Only four positive samples remain, so no bounds exist."""
    validated = validator.validate(keyed_session(make_keyed, [0, 10, 10, 10, 100]))

    assert validated[0].lap_status == LapStatus.INVALID
    assert validated[0].validation_flags == (ValidationFlag.NON_POSITIVE_TIME,)
    assert validated[-1].lap_status == LapStatus.VALID


def test_zero_time_lap_with_elapsed_is_invalid(validator, make_keyed):
    validated = validator.validate([make_keyed(lap_time_s=0.0, session_elapsed_s=120.5)])

    assert validated[0].lap_status == LapStatus.INVALID
    assert ValidationFlag.NON_POSITIVE_TIME in validated[0].validation_flags


def test_negative_time_delta_against_last_known_elapsed(validator, make_keyed):
    laps = [
        make_keyed(session_elapsed_s=100.0, row_index=0),
        make_keyed(session_elapsed_s=90.0, row_index=1),
        make_keyed(session_elapsed_s=None, row_index=2),
        make_keyed(session_elapsed_s=80.0, row_index=3),
    ]

    validated = validator.validate(laps)

    assert validated[0].validation_flags == ()
    assert validated[1].validation_flags == (ValidationFlag.NEGATIVE_TIME_DELTA,)
    assert validated[2].validation_flags == ()
    # Compared with 90.0, carried over the lap without elapsed time
    assert validated[3].validation_flags == (ValidationFlag.NEGATIVE_TIME_DELTA,)


def test_elapsed_increase_after_gap_not_flagged(validator, make_keyed):
    laps = [
        make_keyed(session_elapsed_s=100.0, row_index=0),
        make_keyed(session_elapsed_s=None, row_index=1),
        make_keyed(session_elapsed_s=130.0, row_index=2),
    ]

    assert all(lap.validation_flags == () for lap in validator.validate(laps))


def test_duplicate_timestamps_flag_every_occurrence(validator, make_keyed):
    laps = [
        make_keyed(timestamp="2024-05-01 10:00:00", row_index=0),
        make_keyed(timestamp="2024-05-01 10:00:00", row_index=1),
        make_keyed(timestamp="2024-05-01 10:00:31", row_index=2),
    ]

    validated = validator.validate(laps)

    assert [lap.lap_status for lap in validated] == [
        LapStatus.SUSPECT, LapStatus.SUSPECT, LapStatus.VALID,
    ]
    assert validated[0].validation_flags == (ValidationFlag.DUPLICATE_TIMESTAMP,)


def test_flags_kept_in_detection_order(validator, make_keyed):
    laps = [
        make_keyed(session_elapsed_s=50.0, timestamp="t1", row_index=0),
        make_keyed(lap_time_s=-1.0, session_elapsed_s=40.0, timestamp="t1", row_index=1),
    ]

    flags = validator.validate(laps)[1].validation_flags

    assert flags == (
        ValidationFlag.NON_POSITIVE_TIME,
        ValidationFlag.NEGATIVE_TIME_DELTA,
        ValidationFlag.DUPLICATE_TIMESTAMP,
    )
    assert resolve_status(flags) == LapStatus.INVALID


def test_validation_is_idempotent(validator, make_keyed):
    laps = keyed_session(make_keyed, [10, 10, 0, 10, 10, 100])

    once = validator.validate(laps)
    twice = validator.validate(once)

    assert [(l.lap_status, l.validation_flags) for l in once] == \
        [(l.lap_status, l.validation_flags) for l in twice]


def test_input_laps_not_modified(validator, make_keyed):
    laps = keyed_session(make_keyed, [10, 0])

    validator.validate(laps)

    assert not hasattr(laps[1], "lap_status")


def test_report_counts(validator, make_keyed):
    laps = keyed_session(make_keyed, [10, 10, 10, 10, 100, 0])

    validated, report = validator.run_checks(laps, source="test")

    assert len(validated) == 6
    assert report.total_records == 6
    assert report.valid_records == 4
    assert report.suspect_records == 1
    assert report.invalid_records == 1
    assert report.anomalies_detected == 2
    assert report.passed is False
    assert report.flag_counts == {"statistical_outlier": 1, "non_positive_time": 1}
    assert report.to_dict()["statistics"]["outlier_bounds"] == [6.0, 14.0]


def test_report_warns_on_sector_mismatch(validator, make_keyed):
    laps = [make_keyed(lap_time_s=72.5, s1_s=20.0, s2_s=20.0, s3_s=20.0)]

    _, report = validator.run_checks(laps)

    assert report.statistics["sector_mismatches"] == 1
    assert report.warnings
    assert report.passed is True


def test_tunables_override_defaults(make_keyed):
    laps = keyed_session(make_keyed, [10, 10, 100])

    validated = validate_laps(laps, min_outlier_samples=3)

    assert validated[-1].lap_status == LapStatus.SUSPECT


def test_median_is_upper_middle_for_even_sizes():
    assert robust_bounds([1.0, 2.0, 3.0, 4.0], k=0.0, min_samples=1) == (3.0, 3.0)
