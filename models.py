"""
models.py — Python dataclasses for the garden planner.

Maps to the SQLite tables created in database.py plus the value objects
produced by the occupancy / conflict engine.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, List, Tuple, NamedTuple


# Milestone names, in lifecycle order
MILESTONES = ('presow', 'ground', 'harvest_start', 'harvest_end')

PLANNED_FIELDS = {
    'presow': 'planned_presow_date',
    'ground': 'planned_date',
    'harvest_start': 'planned_harvest_start',
    'harvest_end': 'planned_harvest_end',
}

ACTUAL_FIELDS = {
    'presow': 'actual_presow_date',
    'ground': 'actual_ground_date',
    'harvest_start': 'actual_harvest_start',
    'harvest_end': 'actual_harvest_end',
}

# Recommendation types, in the order they are offered
SAME_BED_DIFFERENT_SEGMENT = 'same_bed_different_segment'
DIFFERENT_BED_SAME_TIME = 'different_bed_same_time'
DIFFERENT_TIME = 'different_time'


@dataclass
class Garden:
    """A garden groups beds, seeds and plantings."""
    id: Optional[int] = None
    name: str = ""
    created_at: Optional[str] = None


@dataclass
class Bed:
    """Physical growing area divided into equal-width segments."""
    id: Optional[int] = None
    garden_id: int = 0
    name: str = ""
    width_cm: int = 0
    length_cm: int = 0
    segments: int = 1
    is_greenhouse: bool = False
    sort_order: int = 0


@dataclass
class Seed:
    """Reusable crop template with whole-week durations."""
    id: Optional[int] = None
    garden_id: int = 0
    name: str = ""
    sowing_type: str = "direct"
    presow_duration_weeks: Optional[int] = None
    grow_duration_weeks: Optional[int] = None
    harvest_duration_weeks: Optional[int] = None
    presow_months: List[int] = field(default_factory=list)
    greenhouse_months: List[int] = field(default_factory=list)
    ground_months: List[int] = field(default_factory=list)
    harvest_months: List[int] = field(default_factory=list)
    greenhouse_compatible: bool = False
    default_color: Optional[str] = None


@dataclass
class Planting:
    """One growing cycle of a seed placed on a contiguous segment range of a bed."""
    id: Optional[int] = None
    garden_id: int = 0
    seed_id: int = 0
    garden_bed_id: int = 0
    start_segment: int = 0
    segments_used: int = 1
    method: str = "direct"
    planned_presow_date: Optional[date] = None
    planned_date: Optional[date] = None
    planned_harvest_start: Optional[date] = None
    planned_harvest_end: Optional[date] = None
    actual_presow_date: Optional[date] = None
    actual_ground_date: Optional[date] = None
    actual_harvest_start: Optional[date] = None
    actual_harvest_end: Optional[date] = None
    color: Optional[str] = None
    status: str = "planned"
    notes: Optional[str] = None

    @property
    def end_segment(self) -> int:
        """Last occupied segment index (inclusive)."""
        return self.start_segment + self.segments_used - 1

    @property
    def is_locked(self) -> bool:
        """True once any real-world milestone has been recorded."""
        return any(getattr(self, f) is not None for f in ACTUAL_FIELDS.values())

    def planned_dates(self) -> dict:
        return {f: getattr(self, f) for f in PLANNED_FIELDS.values()}

    def with_changes(self, **changes) -> 'Planting':
        return replace(self, **changes)


@dataclass
class GardenTask:
    """Free-form garden chore not tied to a planting."""
    id: Optional[int] = None
    garden_id: int = 0
    title: str = ""
    due_date: Optional[date] = None
    status: str = "pending"
    notes: Optional[str] = None


# ========================================
# Engine value objects
# ========================================

@dataclass(frozen=True)
class OccupancyWindow:
    """Resolved [start, end] occupancy, both days inclusive.

    start_basis / end_basis record where each bound came from:
    'actual', 'presow' (derived from the actual presow date) or 'planned'.
    """
    start: date
    end: date
    start_basis: str = 'planned'
    end_basis: str = 'planned'

    @property
    def is_planned(self) -> bool:
        return self.start_basis == 'planned' and self.end_basis == 'planned'

    @property
    def duration_days(self) -> int:
        return (self.end - self.start).days


class Snapshot(NamedTuple):
    """Immutable view of one garden's data for the duration of a search."""
    beds: Tuple[Bed, ...]
    seeds: Tuple[Seed, ...]
    plantings: Tuple[Planting, ...]


@dataclass(frozen=True)
class Placement:
    """A candidate bed/segment/date combination for a planting."""
    bed_id: int
    start_segment: int
    start: date
    end: date


@dataclass
class Recommendation:
    """One remediation option for an offender planting."""
    type: str
    description: str
    feasible: bool
    target_bed_id: Optional[int] = None
    target_bed_name: Optional[str] = None
    target_segment: Optional[int] = None
    target_date: Optional[date] = None
    target_end: Optional[date] = None
    shift_days: int = 0
    alternatives: List[Placement] = field(default_factory=list)


@dataclass
class ConflictDetail:
    """A conflicting pair with the offender designated and its options."""
    offender: Planting
    blocker: Planting
    offender_seed: Optional[Seed]
    blocker_seed: Optional[Seed]
    offender_window: OccupancyWindow
    blocker_window: OccupancyWindow
    recommendations: List[Recommendation] = field(default_factory=list)


@dataclass
class PendingRecalculation:
    """Planned dates that no longer match the recorded actual milestone."""
    planting: Planting
    anchor_type: str
    anchor_date: date
    current: dict
    proposed: dict
    window: Optional[OccupancyWindow] = None
    conflicts_with: List[int] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts_with)
