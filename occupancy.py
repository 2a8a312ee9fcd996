"""
occupancy.py — Temporal window resolution for plantings.

This module implements:
- Effective occupancy window: the single [start, end] range a planting holds
  its bed segments, mixing actual and planned milestone dates
- Anchor-driven recompute: when one actual milestone is recorded, shift the
  other planned milestones so they stay consistent with the seed durations
- Initial plan: planned milestones for a new planting from its ground date

Window rules:
- start = actual ground date
        | actual presow date + presow weeks   (seed has presow weeks)
        | planned ground date
- end   = actual harvest end
        | start + harvest weeks                (only when start came from presow)
        | planned harvest end
- Any missing bound, or an end before the start, leaves the window undefined
  (None) and the planting takes no part in conflict checks.

All values are datetime.date; harvest end is the last occupied day.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from errors import InvalidPlacementError
from models import (
    OccupancyWindow, Planting, Seed, MILESTONES, PLANNED_FIELDS, ACTUAL_FIELDS
)


def to_date(value) -> Optional[date]:
    """Coerce a date, datetime or ISO date/timestamp string to a date; None if invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) > 10:
                return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
            return date.fromisoformat(text)
        except ValueError:
            return None
    return None


def weeks(n: int) -> timedelta:
    return timedelta(days=7 * n)


def resolve_window(planting: Planting, seed: Optional[Seed] = None) -> Optional[OccupancyWindow]:
    """
    Compute the occupancy window of a planting.

    Args:
        planting: The planting to resolve.
        seed: Its seed template (durations), or None if unknown.

    Returns:
        OccupancyWindow, or None when start or end cannot be resolved.
    """
    presow_w = seed.presow_duration_weeks if seed else None
    harvest_w = seed.harvest_duration_weeks if seed else None

    start = to_date(planting.actual_ground_date)
    start_basis = 'actual'
    if start is None:
        actual_presow = to_date(planting.actual_presow_date)
        if actual_presow is not None and presow_w is not None:
            start = actual_presow + weeks(presow_w)
            start_basis = 'presow'
        else:
            start = to_date(planting.planned_date)
            start_basis = 'planned'

    end = to_date(planting.actual_harvest_end)
    end_basis = 'actual'
    if end is None:
        if start_basis == 'presow' and harvest_w is not None:
            end = start + weeks(harvest_w)
            end_basis = 'presow'
        else:
            end = to_date(planting.planned_harvest_end)
            end_basis = 'planned'

    if start is None or end is None or end < start:
        return None
    return OccupancyWindow(start, end, start_basis, end_basis)


def compute_plan_from_anchor(method: str, seed: Seed, anchor_type: str,
                             anchor_date, prev: dict) -> dict:
    """
    Recompute the four planned milestone dates around a recorded anchor.

    Args:
        method: 'direct' or 'presow'.
        seed: Seed providing presow/grow/harvest durations (weeks, may be None).
        anchor_type: One of 'presow', 'ground', 'harvest_start', 'harvest_end'.
        anchor_date: Date the anchor milestone actually happened.
        prev: Current planned dates keyed by planned field name.

    Returns:
        dict keyed by planned field name with the proposed dates. A step whose
        duration is unknown keeps the previous value.
    """
    if anchor_type not in MILESTONES:
        raise InvalidPlacementError(f"Unknown anchor type: {anchor_type}")
    anchor = to_date(anchor_date)
    if anchor is None:
        raise InvalidPlacementError(f"Invalid anchor date: {anchor_date!r}")

    presow_w = seed.presow_duration_weeks
    grow_w = seed.grow_duration_weeks
    harvest_w = seed.harvest_duration_weeks

    ground = to_date(prev.get('planned_date')) or anchor
    presow = to_date(prev.get('planned_presow_date'))
    harvest_start = to_date(prev.get('planned_harvest_start'))
    harvest_end = to_date(prev.get('planned_harvest_end'))

    def presow_from(ground_date, current):
        if method == 'direct':
            return None
        if method == 'presow' and presow_w is not None:
            return ground_date - weeks(presow_w)
        return current

    if anchor_type == 'presow':
        presow = anchor
        if presow_w is not None:
            ground = anchor + weeks(presow_w)
        if grow_w is not None:
            harvest_start = ground + weeks(grow_w)
        if harvest_w is not None and harvest_start is not None:
            harvest_end = harvest_start + weeks(harvest_w)

    elif anchor_type == 'ground':
        ground = anchor
        presow = presow_from(ground, presow)
        if grow_w is not None:
            harvest_start = ground + weeks(grow_w)
        if harvest_w is not None and harvest_start is not None:
            harvest_end = harvest_start + weeks(harvest_w)

    elif anchor_type == 'harvest_start':
        harvest_start = anchor
        if harvest_w is not None:
            harvest_end = anchor + weeks(harvest_w)
        if grow_w is not None:
            ground = anchor - weeks(grow_w)
            presow = presow_from(ground, presow)

    else:
        harvest_end = anchor
        if harvest_w is not None:
            harvest_start = anchor - weeks(harvest_w)
            if grow_w is not None:
                ground = harvest_start - weeks(grow_w)
                presow = presow_from(ground, presow)

    return {
        'planned_presow_date': presow,
        'planned_date': ground,
        'planned_harvest_start': harvest_start,
        'planned_harvest_end': harvest_end,
    }


def latest_anchor(planting: Planting) -> Optional[Tuple[str, date]]:
    """The furthest-along milestone with an actual date, as (anchor_type, date)."""
    for milestone in reversed(MILESTONES):
        value = to_date(getattr(planting, ACTUAL_FIELDS[milestone]))
        if value is not None:
            return milestone, value
    return None


def proposed_plan(planting: Planting, seed: Optional[Seed]) -> Optional[dict]:
    """Recompute planned dates from the planting's latest actual milestone, if any."""
    if seed is None:
        return None
    anchor = latest_anchor(planting)
    if anchor is None:
        return None
    anchor_type, anchor_date = anchor
    return compute_plan_from_anchor(
        planting.method, seed, anchor_type, anchor_date, planting.planned_dates()
    )


def plan_from_ground_date(seed: Seed, method: str, ground_date) -> dict:
    """
    Planned milestones for a new planting going into the ground on ground_date.

    Spans are whole weeks, the same as the anchor recompute, so recording the
    planned ground date as the actual one proposes no change. Harvest end is
    the last occupied day; a follow-up planting may start the day after.

    Raises:
        InvalidPlacementError: the seed lacks the durations the method needs.
    """
    ground = to_date(ground_date)
    if ground is None:
        raise InvalidPlacementError(f"Invalid ground date: {ground_date!r}")
    if seed.grow_duration_weeks is None or seed.harvest_duration_weeks is None:
        raise InvalidPlacementError(
            f"Seed '{seed.name}' needs grow and harvest durations before it can be planned."
        )
    if method == 'presow' and seed.presow_duration_weeks is None:
        raise InvalidPlacementError(
            f"Seed '{seed.name}' needs a presow duration for the presow method."
        )

    harvest_start = ground + weeks(seed.grow_duration_weeks)
    harvest_end = harvest_start + weeks(seed.harvest_duration_weeks)
    presow = ground - weeks(seed.presow_duration_weeks) if method == 'presow' else None

    return {
        'planned_presow_date': presow,
        'planned_date': ground,
        'planned_harvest_start': harvest_start,
        'planned_harvest_end': harvest_end,
    }


def shift_planned_dates(planting: Planting, days: int) -> dict:
    """All four planned dates moved by the same number of days (None stays None)."""
    delta = timedelta(days=days)
    shifted = {}
    for name in PLANNED_FIELDS.values():
        value = to_date(getattr(planting, name))
        shifted[name] = value + delta if value is not None else None
    return shifted
