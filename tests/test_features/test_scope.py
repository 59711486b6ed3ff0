"""
Tests for scope views and dual-context KPIs
"""

import pytest

from data_pipeline.schemas.analysis_schema import AnalysisScope
from features.scope import (
    ScopedLaps,
    apply_scope,
    compute_dual_context_kpis,
    get_scope_options,
    matches_scope,
    scoped_comparison,
)


def test_enabled_driver_scope_keeps_only_driver(stint_session):
    scoped = apply_scope(stint_session, AnalysisScope(drivers=["A"], enabled=True))

    assert isinstance(scoped, ScopedLaps)
    assert len(scoped) == 10
    assert {lap.driver for lap in scoped} == {"A"}


def test_disabled_scope_returns_dataset_itself(stint_session):
    scope = AnalysisScope(drivers=["A"], enabled=False)

    assert apply_scope(stint_session, scope) is stint_session


def test_view_maps_back_to_canonical_positions(stint_session):
    scoped = apply_scope(stint_session, AnalysisScope(drivers=["B"], enabled=True))

    assert scoped.source_index(0) == 10
    assert scoped[0] is stint_session[10]
    assert scoped[-1] is stint_session[-1]
    assert [lap.row_index for lap in scoped[:2]] == [10, 11]


def test_scope_preserves_canonical_order(stint_session):
    scoped = apply_scope(stint_session, AnalysisScope(drivers=["A", "B"], enabled=True))

    assert list(scoped) == list(stint_session)


def test_entity_matches_car_model_or_team(make_lap):
    laps = [
        make_lap(car_model="GT3", team_number=None),
        make_lap(car_model="LMP2", team_number="42"),
        make_lap(car_model="LMP2", team_number="7"),
    ]

    scoped = apply_scope(laps, AnalysisScope(entity_ids=["GT3", "42"], enabled=True))

    assert [laps.index(lap) for lap in scoped] == [0, 1]


def test_lane_filter_ignores_laps_without_lane(make_lap):
    with_lane = make_lap(lane=2)
    without_lane = make_lap(lane=None)
    scope = AnalysisScope(track_positions=[1], enabled=True)

    assert matches_scope(with_lane, scope) is False
    assert matches_scope(without_lane, scope) is True


def test_scope_from_selection_sets_enabled():
    assert AnalysisScope.from_selection().enabled is False
    assert AnalysisScope.from_selection(drivers=["A"]).enabled is True


def test_scope_options(stint_session, make_lap):
    options = get_scope_options(stint_session + [make_lap(team_number="42")])

    assert options.entities == ["42", "GT3"]
    assert options.drivers == ["A", "B"]
    assert options.lanes == [1, 2]


def test_dual_context_kpis(stint_session):
    scoped = apply_scope(stint_session, AnalysisScope(drivers=["A"], enabled=True))

    dual = compute_dual_context_kpis(scoped, stint_session)

    assert dual.scoped_kpis.average_pace == pytest.approx(30.15)
    assert dual.global_kpis.average_pace == pytest.approx(30.65)
    assert dual.relative_pace == pytest.approx(-0.5)
    assert dual.relative_consistency is not None
    assert dual.lap_count_ratio == "10 / 20"


def test_dual_context_with_empty_scope(stint_session):
    scoped = apply_scope(stint_session, AnalysisScope(drivers=["Z"], enabled=True))

    dual = compute_dual_context_kpis(scoped, stint_session, include_pit_laps=False)

    assert dual.scoped_kpis.total_laps == 0
    assert dual.relative_pace is None
    assert dual.lap_count_ratio == "0 / 20"


def test_scoped_comparison_requires_enabled_scope_and_laps(stint_session):
    assert scoped_comparison(stint_session, AnalysisScope()) is None
    assert scoped_comparison([], AnalysisScope(drivers=["A"], enabled=True)) is None

    comparison = scoped_comparison(stint_session, AnalysisScope(drivers=["B"], enabled=True))
    assert comparison.relative_pace == pytest.approx(0.5)
