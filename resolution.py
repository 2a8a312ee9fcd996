"""
resolution.py — Conflict resolution recommendations and their application.

This module implements:
- Offender selection: which planting of a conflicting pair should move
- Recommendations per offender, always all three, in fixed order:
    1. same_bed_different_segment  (same dates)
    2. different_bed_same_time     (other compatible bed, same dates)
    3. different_time              (earliest later date, any compatible bed)
- Applying a recommendation: one partial update of the offender, re-validated
  against a fresh snapshot right before the write
- Pending recalculations: plantings whose planned dates no longer match their
  recorded actual milestones

Offender rules:
- If exactly one of the pair is locked (has any actual date), the unlocked
  one moves
- Otherwise the one with the later window start moves; on equal starts the
  higher id (the newer record) moves

The search functions are pure; only apply_* and record_actual_date write,
and they never retry: a SlotOccupiedError goes back to the caller.
"""

from typing import Dict, Iterable, List, Optional

from errors import InvalidPlacementError, NotFoundError, SlotOccupiedError, PlannerError
from models import (
    Bed, ConflictDetail, OccupancyWindow, PendingRecalculation, Planting,
    Recommendation, Seed, Snapshot, ACTUAL_FIELDS,
    SAME_BED_DIFFERENT_SEGMENT, DIFFERENT_BED_SAME_TIME, DIFFERENT_TIME,
)
from occupancy import resolve_window, proposed_plan, latest_anchor, shift_planned_dates, to_date
from conflicts import build_conflict_index, conflict_pairs, list_overlaps, resolve_windows, seeds_by_id
from placement import (
    same_bed_options, different_bed_options, earliest_feasible_slot, check_capacity,
    DEFAULT_HORIZON_DAYS, DEFAULT_STEP_DAYS,
)
from utils.validators import validate_segment_range
import database


def load_snapshot(garden_id) -> Snapshot:
    """Read beds, seeds and plantings of a garden into an immutable snapshot."""
    return Snapshot(
        beds=tuple(database.list_beds(garden_id)),
        seeds=tuple(database.list_seeds(garden_id)),
        plantings=tuple(database.list_plantings(garden_id)),
    )


def choose_offender(a: Planting, a_window: OccupancyWindow,
                    b: Planting, b_window: OccupancyWindow):
    """Return (offender, blocker) for a conflicting pair."""
    if a.is_locked != b.is_locked:
        return (b, a) if a.is_locked else (a, b)
    if a_window.start != b_window.start:
        return (a, b) if a_window.start > b_window.start else (b, a)
    return (a, b) if (a.id or 0) > (b.id or 0) else (b, a)


def _fmt(d):
    return d.strftime('%d-%m-%Y')


def recommend(offender: Planting, window: OccupancyWindow, snapshot: Snapshot,
              horizon_days: int = DEFAULT_HORIZON_DAYS,
              step_days: int = DEFAULT_STEP_DAYS,
              windows=None) -> List[Recommendation]:
    """
    Compute the three recommendations for an offender.

    Args:
        offender: Planting to move.
        window: Its resolved occupancy window.
        snapshot: Beds, seeds and plantings of the garden.
        horizon_days, step_days: Bounds of the later-date search.
        windows: Pre-resolved windows for snapshot.plantings.

    Returns:
        [same_bed_different_segment, different_bed_same_time, different_time],
        each marked feasible or not.

    Raises:
        NotFoundError: the offender's bed is not in the snapshot.
    """
    beds_by_id = {b.id: b for b in snapshot.beds}
    bed = beds_by_id.get(offender.garden_bed_id)
    if bed is None:
        raise NotFoundError(f"Bed {offender.garden_bed_id} not found")
    if windows is None:
        windows = resolve_windows(snapshot.plantings, snapshot.seeds)
    plantings = snapshot.plantings
    seeds = snapshot.seeds

    recommendations = []

    # 1. Same bed, other segment
    options = same_bed_options(offender, bed, window, plantings, seeds, windows=windows)
    if options:
        best = options[0]
        recommendations.append(Recommendation(
            type=SAME_BED_DIFFERENT_SEGMENT,
            description=f"Move to segment {best.start_segment + 1} in {bed.name} (same timing)",
            feasible=True,
            target_bed_id=bed.id,
            target_bed_name=bed.name,
            target_segment=best.start_segment,
            target_date=best.start,
            target_end=best.end,
            alternatives=options[1:],
        ))
    else:
        recommendations.append(Recommendation(
            type=SAME_BED_DIFFERENT_SEGMENT,
            description=f"No free segments in {bed.name} for these dates",
            feasible=False,
        ))

    # 2. Other bed, same dates
    options = different_bed_options(offender, snapshot.beds, window, plantings, seeds, windows=windows)
    if options:
        best = options[0]
        target = beds_by_id[best.bed_id]
        recommendations.append(Recommendation(
            type=DIFFERENT_BED_SAME_TIME,
            description=f"Move to {target.name}, segment {best.start_segment + 1} (same timing)",
            feasible=True,
            target_bed_id=target.id,
            target_bed_name=target.name,
            target_segment=best.start_segment,
            target_date=best.start,
            target_end=best.end,
            alternatives=options[1:],
        ))
    else:
        recommendations.append(Recommendation(
            type=DIFFERENT_BED_SAME_TIME,
            description="No other bed available on the same dates",
            feasible=False,
        ))

    # 3. Later date; only a fully planned window can be shifted
    if not window.is_planned:
        recommendations.append(Recommendation(
            type=DIFFERENT_TIME,
            description="Dates are fixed by recorded actual milestones",
            feasible=False,
        ))
        return recommendations

    slot = earliest_feasible_slot(
        offender, snapshot.beds, window, plantings, seeds,
        horizon_days=horizon_days, step_days=step_days, windows=windows
    )
    if slot:
        target = beds_by_id[slot.bed_id]
        shift = (slot.start - window.start).days
        recommendations.append(Recommendation(
            type=DIFFERENT_TIME,
            description=(f"Move to {target.name}, segment {slot.start_segment + 1} "
                         f"on {_fmt(slot.start)} (+{shift} days)"),
            feasible=True,
            target_bed_id=target.id,
            target_bed_name=target.name,
            target_segment=slot.start_segment,
            target_date=slot.start,
            target_end=slot.end,
            shift_days=shift,
        ))
    else:
        recommendations.append(Recommendation(
            type=DIFFERENT_TIME,
            description=f"No free slot within {horizon_days} days",
            feasible=False,
        ))
    return recommendations


def generate_conflict_details(plantings: Iterable[Planting], beds: Iterable[Bed],
                              seeds: Optional[Iterable[Seed]] = None,
                              horizon_days: int = DEFAULT_HORIZON_DAYS,
                              step_days: int = DEFAULT_STEP_DAYS,
                              only_planting_id=None) -> List[ConflictDetail]:
    """
    One ConflictDetail per conflicting pair, with offender designated and
    recommendations computed.

    Recommendations are computed once per offender, even when it conflicts
    with several blockers.

    Args:
        only_planting_id: Restrict output to pairs involving this planting.
    """
    snapshot = Snapshot(tuple(beds), tuple(seeds or ()), tuple(plantings))
    windows = resolve_windows(snapshot.plantings, snapshot.seeds)
    seed_lookup = seeds_by_id(snapshot.seeds)
    by_id = {p.id: p for p in snapshot.plantings}
    index = build_conflict_index(snapshot.plantings, snapshot.seeds)

    cache: Dict[int, List[Recommendation]] = {}
    details = []
    for a_id, b_id in conflict_pairs(index):
        if only_planting_id is not None and only_planting_id not in (a_id, b_id):
            continue
        a, b = by_id[a_id], by_id[b_id]
        offender, blocker = choose_offender(a, windows[a_id], b, windows[b_id])
        if offender.id not in cache:
            cache[offender.id] = recommend(
                offender, windows[offender.id], snapshot,
                horizon_days=horizon_days, step_days=step_days, windows=windows
            )
        details.append(ConflictDetail(
            offender=offender,
            blocker=blocker,
            offender_seed=seed_lookup.get(offender.seed_id),
            blocker_seed=seed_lookup.get(blocker.seed_id),
            offender_window=windows[offender.id],
            blocker_window=windows[blocker.id],
            recommendations=cache[offender.id],
        ))
    return details


def _validate_target(snapshot: Snapshot, planting: Planting, bed_id, start_segment):
    beds_by_id = {b.id: b for b in snapshot.beds}
    bed = beds_by_id.get(bed_id)
    if bed is None:
        raise NotFoundError(f"Bed {bed_id} not found in this garden")
    check_capacity(bed, planting.segments_used)
    validate_segment_range(bed, start_segment, planting.segments_used)
    return bed


def _ensure_free(snapshot: Snapshot, candidate: Planting):
    window = resolve_window(candidate, seeds_by_id(snapshot.seeds).get(candidate.seed_id))
    if window is None:
        return None
    overlaps = list_overlaps(
        snapshot.plantings, snapshot.seeds, candidate.garden_bed_id,
        candidate.start_segment, candidate.segments_used,
        window.start, window.end, exclude_id=candidate.id
    )
    if overlaps:
        raise SlotOccupiedError(
            "Target is no longer free; run the search again.", conflicts=overlaps
        )
    return window


def _commit(planting_id, patch):
    updated, error = database.update_planting(planting_id, patch)
    if error:
        raise PlannerError(error)
    return updated


def apply_recommendation(offender_id, recommendation: Recommendation) -> Planting:
    """
    Apply a recommendation to the offender planting.

    Re-reads the garden, checks the target is still free, then writes bed,
    segment and (if shifted) all four planned dates in a single update.

    Returns:
        The updated Planting.

    Raises:
        NotFoundError: unknown planting or target bed.
        InvalidPlacementError: infeasible recommendation or segments that do not fit.
        SlotOccupiedError: the target became occupied since the search.
    """
    if not recommendation.feasible:
        raise InvalidPlacementError("Cannot apply an infeasible recommendation")
    if recommendation.target_bed_id is None or recommendation.target_segment is None:
        raise InvalidPlacementError("Recommendation has no target bed/segment")

    planting = database.get_planting(offender_id)
    if planting is None:
        raise NotFoundError(f"Planting {offender_id} not found")
    snapshot = load_snapshot(planting.garden_id)
    _validate_target(snapshot, planting, recommendation.target_bed_id, recommendation.target_segment)

    patch = {
        'garden_bed_id': recommendation.target_bed_id,
        'start_segment': recommendation.target_segment,
    }
    target_date = to_date(recommendation.target_date)
    if target_date is not None:
        window = resolve_window(planting, seeds_by_id(snapshot.seeds).get(planting.seed_id))
        if window is None:
            raise InvalidPlacementError(f"Planting {offender_id} has no occupancy window")
        shift = (target_date - window.start).days
        if shift:
            if not window.is_planned:
                raise InvalidPlacementError("Dates are fixed by recorded actual milestones")
            patch.update(shift_planned_dates(planting, shift))

    _ensure_free(snapshot, planting.with_changes(**patch))
    return _commit(offender_id, patch)


# ========================================
# Pending recalculations
# ========================================

def _differs(current: dict, proposed: dict) -> bool:
    return any(to_date(current.get(k)) != to_date(v) for k, v in proposed.items())


def pending_for(planting: Planting, snapshot: Snapshot) -> Optional[PendingRecalculation]:
    """Pending recalculation for one planting, or None when dates are consistent."""
    seed = seeds_by_id(snapshot.seeds).get(planting.seed_id)
    proposed = proposed_plan(planting, seed)
    if proposed is None:
        return None
    current = planting.planned_dates()
    if not _differs(current, proposed):
        return None

    anchor_type, anchor_date = latest_anchor(planting)
    candidate = planting.with_changes(**proposed)
    window = resolve_window(candidate, seed)
    conflicts_with = []
    if window is not None:
        conflicts_with = [
            o['planting_id'] for o in list_overlaps(
                snapshot.plantings, snapshot.seeds, planting.garden_bed_id,
                planting.start_segment, planting.segments_used,
                window.start, window.end, exclude_id=planting.id
            )
        ]
    return PendingRecalculation(
        planting=planting,
        anchor_type=anchor_type,
        anchor_date=anchor_date,
        current=current,
        proposed=proposed,
        window=window,
        conflicts_with=conflicts_with,
    )


def detect_pending_recalculations(snapshot: Snapshot) -> List[PendingRecalculation]:
    """Every locked planting whose planned dates differ from the anchor recompute."""
    pending = []
    for planting in snapshot.plantings:
        if not planting.is_locked:
            continue
        item = pending_for(planting, snapshot)
        if item is not None:
            pending.append(item)
    return pending


def pending_conflict_details(item: PendingRecalculation, snapshot: Snapshot,
                             horizon_days: int = DEFAULT_HORIZON_DAYS,
                             step_days: int = DEFAULT_STEP_DAYS) -> List[ConflictDetail]:
    """Conflict details as they would be once the pending dates are applied."""
    changed = item.planting.with_changes(**item.proposed)
    plantings = [changed if p.id == changed.id else p for p in snapshot.plantings]
    return generate_conflict_details(
        plantings, snapshot.beds, snapshot.seeds,
        horizon_days=horizon_days, step_days=step_days,
        only_planting_id=changed.id,
    )


def apply_pending_recalculation(planting_id, allow_conflicts=False) -> Planting:
    """
    Write the recomputed planned dates of a planting.

    Raises:
        NotFoundError: unknown planting.
        InvalidPlacementError: nothing to recalculate.
        SlotOccupiedError: the new window collides and allow_conflicts is False.
    """
    planting = database.get_planting(planting_id)
    if planting is None:
        raise NotFoundError(f"Planting {planting_id} not found")
    snapshot = load_snapshot(planting.garden_id)
    item = pending_for(planting, snapshot)
    if item is None:
        raise InvalidPlacementError(f"Planting {planting_id} has no pending recalculation")
    if item.has_conflict and not allow_conflicts:
        overlaps = list_overlaps(
            snapshot.plantings, snapshot.seeds, planting.garden_bed_id,
            planting.start_segment, planting.segments_used,
            item.window.start, item.window.end, exclude_id=planting.id
        )
        raise SlotOccupiedError("New dates collide with other plantings", conflicts=overlaps)
    return _commit(planting_id, item.proposed)


def record_actual_date(planting_id, milestone, value):
    """
    Store an actual milestone date and return the planting with its proposal.

    The planned dates are not touched; the caller decides whether to apply
    the proposal (see apply_pending_recalculation).

    Returns:
        (updated Planting, PendingRecalculation or None)
    """
    if milestone not in ACTUAL_FIELDS:
        raise InvalidPlacementError(f"Unknown milestone: {milestone}")
    actual = to_date(value)
    if value not in (None, '') and actual is None:
        raise InvalidPlacementError(f"Invalid date: {value!r}")
    if database.get_planting(planting_id) is None:
        raise NotFoundError(f"Planting {planting_id} not found")

    updated = _commit(planting_id, {ACTUAL_FIELDS[milestone]: actual})
    return updated, pending_for(updated, load_snapshot(updated.garden_id))
