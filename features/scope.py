"""
Analysis scope filtering and dual-context KPIs.

A scope selects laps by entity (car model or team number), driver and lane
without copying the canonical dataset: an enabled scope yields a ScopedLaps
view holding only the positions of matching laps.
"""

from collections import abc
from typing import Callable, Iterator, List, Optional, Sequence, Union

from data_pipeline.schemas.analysis_schema import AnalysisScope, DualContextKPIs, ScopeOptions
from data_pipeline.schemas.lap_schema import ParsedLap
from features.metrics import compute_kpis
from features.utils import difference


class ScopedLaps(abc.Sequence):
    """
    Read-only view of the canonical laps matching a scope.

    Positions in the view do not correspond to positions in the canonical
    dataset; ``source_index`` maps them back.
    """

    def __init__(self, source: Sequence[ParsedLap], indices: List[int]):
        self._source = source
        self._indices = indices

    def __getitem__(self, position: Union[int, slice]):
        if isinstance(position, slice):
            return [self._source[i] for i in self._indices[position]]
        return self._source[self._indices[position]]

    def __len__(self) -> int:
        return len(self._indices)

    def __iter__(self) -> Iterator[ParsedLap]:
        source = self._source
        for i in self._indices:
            yield source[i]

    def source_index(self, position: int) -> int:
        """Position in the canonical dataset of the view's ``position``-th lap."""
        return self._indices[position]

    def __repr__(self) -> str:
        return f"ScopedLaps({len(self._indices)} of {len(self._source)} laps)"


def scope_predicate(scope: AnalysisScope) -> Callable[[ParsedLap], bool]:
    """
    Build the lap predicate of a scope.

    Empty selections do not restrict their axis. The lane axis only applies
    to laps that report a lane.
    """
    drivers = set(scope.drivers)
    entities = set(scope.entity_ids)
    lanes = set(scope.track_positions)

    def matches(lap: ParsedLap) -> bool:
        if drivers and lap.driver not in drivers:
            return False
        if entities:
            matches_car = lap.car_model in entities
            matches_team = lap.team_number is not None and lap.team_number in entities
            if not (matches_car or matches_team):
                return False
        if lanes and lap.lane is not None and lap.lane not in lanes:
            return False
        return True

    return matches


def matches_scope(lap: ParsedLap, scope: AnalysisScope) -> bool:
    return scope_predicate(scope)(lap)


def apply_scope(
    laps: Sequence[ParsedLap],
    scope: AnalysisScope
) -> Sequence[ParsedLap]:
    """
    Apply an analysis scope.

    Args:
        laps: Canonical (validated, sorted) laps
        scope: Scope to apply

    Returns:
        ``laps`` itself when the scope is disabled, otherwise a ScopedLaps view
        preserving canonical order
    """
    if not scope.enabled:
        return laps

    matches = scope_predicate(scope)
    return ScopedLaps(laps, [i for i, lap in enumerate(laps) if matches(lap)])


def get_scope_options(laps: Sequence[ParsedLap]) -> ScopeOptions:
    """Distinct entities (car models and team numbers), drivers and lanes."""
    entities = set()
    drivers = set()
    lanes = set()
    for lap in laps:
        if lap.car_model:
            entities.add(lap.car_model)
        if lap.team_number:
            entities.add(lap.team_number)
        if lap.driver:
            drivers.add(lap.driver)
        if lap.lane is not None:
            lanes.add(lap.lane)
    return ScopeOptions(
        entities=sorted(entities),
        drivers=sorted(drivers),
        lanes=sorted(lanes),
    )


def compute_dual_context_kpis(
    scoped_laps: Sequence[ParsedLap],
    global_laps: Sequence[ParsedLap],
    include_pit_laps: bool = True,
) -> DualContextKPIs:
    """
    KPIs of a scoped subset next to the full-session reference.

    Formula:
        relative_pace        = scoped.average_pace - global.average_pace
        relative_consistency = scoped.consistency  - global.consistency
    """
    scoped = compute_kpis(scoped_laps, include_pit_laps=include_pit_laps)
    reference = compute_kpis(global_laps, include_pit_laps=include_pit_laps)

    return DualContextKPIs(
        scoped_kpis=scoped,
        global_kpis=reference,
        relative_pace=difference(scoped.average_pace, reference.average_pace),
        relative_consistency=difference(scoped.consistency, reference.consistency),
        lap_count_ratio=f"{scoped.total_laps} / {reference.total_laps}",
    )


def scoped_comparison(
    laps: Sequence[ParsedLap],
    scope: AnalysisScope,
    include_pit_laps: bool = True,
) -> Optional[DualContextKPIs]:
    """Dual-context KPIs for ``scope``; None when the scope is disabled or there are no laps."""
    if not scope.enabled or len(laps) == 0:
        return None
    return compute_dual_context_kpis(apply_scope(laps, scope), laps, include_pit_laps)
