"""
placement.py — Feasible placement search for plantings.

Given a bed, a date interval and a required segment count, find every start
segment where the planting fits without touching any other planting whose
window overlaps the interval. Three searches are derived from it:

- same bed, other segment      (same dates)
- other beds, same dates       (greenhouse beds only for greenhouse-compatible seeds)
- earliest later date, any bed (same duration, bounded horizon)

Searches are pure and run over the snapshot they are given; the planting
being moved is always excluded from the occupants it is checked against.
"""

from datetime import timedelta
from typing import Dict, Iterable, List, Optional

from errors import InvalidPlacementError
from models import Bed, Planting, Placement, Seed, OccupancyWindow
from conflicts import resolve_windows, seeds_by_id
from overlap import dates_overlap, segments_overlap


DEFAULT_HORIZON_DAYS = 90
DEFAULT_STEP_DAYS = 7


def check_capacity(bed: Bed, needed: int):
    """Fail fast on a segment count the bed can never hold."""
    if needed < 1:
        raise InvalidPlacementError(f"segments_used must be at least 1 (got {needed})")
    if needed > bed.segments:
        raise InvalidPlacementError(
            f"{needed} segments requested but bed '{bed.name}' only has {bed.segments}"
        )


def bed_accepts_seed(bed: Bed, seed: Optional[Seed]) -> bool:
    """Greenhouse beds only take greenhouse-compatible seeds."""
    if bed.is_greenhouse and not (seed and seed.greenhouse_compatible):
        return False
    return True


def free_starts_for_interval(bed: Bed, start, end, needed: int,
                             plantings: Iterable[Planting],
                             seeds: Optional[Iterable[Seed]] = None,
                             exclude_id=None,
                             windows: Optional[Dict[int, Optional[OccupancyWindow]]] = None) -> List[int]:
    """
    All start segments of `bed` where `needed` contiguous segments are free
    during [start, end].

    Args:
        bed: Bed to search.
        start, end: Candidate occupancy interval (dates, inclusive).
        needed: Number of contiguous segments required.
        plantings: Current plantings (any beds; other beds are ignored).
        seeds: Seeds for window resolution.
        exclude_id: Planting to ignore, typically the one being moved.
        windows: Pre-resolved windows by planting id (resolved here if omitted).

    Returns:
        Ascending list of feasible start indexes; empty if the bed is full.

    Raises:
        InvalidPlacementError: needed < 1 or needed > bed.segments.
    """
    check_capacity(bed, needed)
    plantings = list(plantings)
    if windows is None:
        windows = resolve_windows(plantings, seeds)

    occupants = []
    for p in plantings:
        if p.garden_bed_id != bed.id:
            continue
        if exclude_id is not None and p.id == exclude_id:
            continue
        w = windows.get(p.id)
        if w is None or not dates_overlap(start, end, w.start, w.end):
            continue
        occupants.append(p)

    return [
        s for s in range(0, bed.segments - needed + 1)
        if not any(segments_overlap(s, needed, o.start_segment, o.segments_used) for o in occupants)
    ]


def _prefer(starts: List[int], preferred: Optional[int]) -> List[int]:
    if preferred is not None and preferred in starts:
        return [preferred] + [s for s in starts if s != preferred]
    return starts


def same_bed_options(planting: Planting, bed: Bed, window: OccupancyWindow,
                     plantings: Iterable[Planting], seeds: Optional[Iterable[Seed]] = None,
                     windows=None) -> List[Placement]:
    """
    Free start segments in the planting's own bed for its current window.

    The planting's current segment comes first when it is still free, then
    the remaining starts in ascending order.
    """
    starts = free_starts_for_interval(
        bed, window.start, window.end, planting.segments_used,
        plantings, seeds, exclude_id=planting.id, windows=windows
    )
    preferred = planting.start_segment if planting.garden_bed_id == bed.id else None
    return [Placement(bed.id, s, window.start, window.end) for s in _prefer(starts, preferred)]


def different_bed_options(planting: Planting, beds: Iterable[Bed], window: OccupancyWindow,
                          plantings: Iterable[Planting], seeds: Optional[Iterable[Seed]] = None,
                          windows=None) -> List[Placement]:
    """First free start in every other compatible bed, same dates, in bed order."""
    plantings = list(plantings)
    seed = seeds_by_id(seeds).get(planting.seed_id)
    if windows is None:
        windows = resolve_windows(plantings, seeds)

    options = []
    for bed in sort_beds(beds):
        if bed.id == planting.garden_bed_id:
            continue
        if not bed_accepts_seed(bed, seed) or bed.segments < planting.segments_used:
            continue
        starts = free_starts_for_interval(
            bed, window.start, window.end, planting.segments_used,
            plantings, seeds, exclude_id=planting.id, windows=windows
        )
        if starts:
            options.append(Placement(bed.id, starts[0], window.start, window.end))
    return options


def earliest_feasible_slot(planting: Planting, beds: Iterable[Bed], window: OccupancyWindow,
                           plantings: Iterable[Planting], seeds: Optional[Iterable[Seed]] = None,
                           horizon_days: int = DEFAULT_HORIZON_DAYS,
                           step_days: int = DEFAULT_STEP_DAYS,
                           windows=None) -> Optional[Placement]:
    """
    Earliest later start date at which the planting fits in any compatible bed.

    The window duration is kept; candidate starts are window.start + step,
    + 2*step, ... up to horizon_days. At each date the planting's own bed is
    tried first (its current segment first), then the other beds in order.

    Returns:
        Placement, or None if nothing fits within the horizon.
    """
    if step_days < 1:
        raise InvalidPlacementError(f"step_days must be at least 1 (got {step_days})")
    plantings = list(plantings)
    seed = seeds_by_id(seeds).get(planting.seed_id)
    if windows is None:
        windows = resolve_windows(plantings, seeds)

    candidates = [
        b for b in sort_beds(beds, first_id=planting.garden_bed_id)
        if bed_accepts_seed(b, seed) and b.segments >= planting.segments_used
    ]
    duration = timedelta(days=window.duration_days)

    for offset in range(step_days, horizon_days + 1, step_days):
        test_start = window.start + timedelta(days=offset)
        test_end = test_start + duration
        for bed in candidates:
            starts = free_starts_for_interval(
                bed, test_start, test_end, planting.segments_used,
                plantings, seeds, exclude_id=planting.id, windows=windows
            )
            if bed.id == planting.garden_bed_id:
                starts = _prefer(starts, planting.start_segment)
            if starts:
                return Placement(bed.id, starts[0], test_start, test_end)
    return None


def sort_beds(beds: Iterable[Bed], first_id=None) -> List[Bed]:
    """Beds in display order, optionally with one bed moved to the front."""
    return sorted(beds, key=lambda b: (b.id != first_id, b.sort_order, b.id))
