"""
agenda.py — Dated agenda of plantings, presow periods and tasks.

Each agenda entry is an AgendaItem tagged with an ItemType and carrying the
payload dataclass of that type, instead of one record with optional fields:

- PLANTING:      occupancy window of a planting in a bed
- PRESOW:        presow period (presow date up to the ground date)
- MOESTUIN_TASK: a planned planting milestone not yet recorded as done
- GARDEN_TASK:   a pending free-form garden task
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional, Union

from models import Planting, GardenTask, MILESTONES, PLANNED_FIELDS, ACTUAL_FIELDS
from conflicts import resolve_windows, seeds_by_id
from occupancy import to_date
from overlap import dates_overlap


class ItemType(Enum):
    PLANTING = 'planting'
    PRESOW = 'presow'
    MOESTUIN_TASK = 'moestuin_task'
    GARDEN_TASK = 'garden_task'


MILESTONE_TASKS = {
    'presow': 'sow',
    'ground': 'plant_out',
    'harvest_start': 'harvest_start',
    'harvest_end': 'harvest_end',
}


@dataclass(frozen=True)
class PlantingPayload:
    planting_id: int
    seed_name: Optional[str]
    bed_name: Optional[str]
    start_segment: int
    segments_used: int
    end: date


@dataclass(frozen=True)
class PresowPayload:
    planting_id: int
    seed_name: Optional[str]
    ground_date: Optional[date]


@dataclass(frozen=True)
class MilestoneTaskPayload:
    planting_id: int
    seed_name: Optional[str]
    task: str
    milestone: str


@dataclass(frozen=True)
class GardenTaskPayload:
    task_id: int
    title: str
    notes: Optional[str]


@dataclass(frozen=True)
class AgendaItem:
    type: ItemType
    date: date
    payload: Union[PlantingPayload, PresowPayload, MilestoneTaskPayload, GardenTaskPayload]


def _in_range(d, start, end):
    return d is not None and start <= d <= end


def _planting_items(planting: Planting, seed, bed, window, start, end) -> List[AgendaItem]:
    items = []
    seed_name = seed.name if seed else None

    if window is not None and dates_overlap(start, end, window.start, window.end):
        items.append(AgendaItem(ItemType.PLANTING, window.start, PlantingPayload(
            planting.id, seed_name, bed.name if bed else None,
            planting.start_segment, planting.segments_used, window.end,
        )))

    presow = to_date(planting.actual_presow_date) or to_date(planting.planned_presow_date)
    ground = to_date(planting.actual_ground_date) or to_date(planting.planned_date)
    if planting.method == 'presow' and presow is not None:
        presow_end = ground or presow
        if dates_overlap(start, end, presow, presow_end):
            items.append(AgendaItem(ItemType.PRESOW, presow, PresowPayload(
                planting.id, seed_name, ground,
            )))

    for milestone in MILESTONES:
        if getattr(planting, ACTUAL_FIELDS[milestone]) is not None:
            continue
        if milestone == 'presow' and planting.method != 'presow':
            continue
        due = to_date(getattr(planting, PLANNED_FIELDS[milestone]))
        if _in_range(due, start, end):
            items.append(AgendaItem(ItemType.MOESTUIN_TASK, due, MilestoneTaskPayload(
                planting.id, seed_name, MILESTONE_TASKS[milestone], milestone,
            )))
    return items


def build_agenda(plantings, seeds, beds, garden_tasks, start, end) -> List[AgendaItem]:
    """
    Agenda items touching [start, end], sorted by date then type.

    Windows and presow periods already under way are included, dated at
    their own start; milestones and tasks must fall inside the range.

    Args:
        plantings: Plantings of the garden.
        seeds: Seeds (names, window resolution).
        beds: Beds (names).
        garden_tasks: GardenTask records; only pending ones are listed.
        start, end: Inclusive date range.
    """
    plantings = list(plantings)
    seed_lookup = seeds_by_id(seeds)
    bed_lookup = {b.id: b for b in beds}
    windows = resolve_windows(plantings, seeds)

    items = []
    for p in plantings:
        items.extend(_planting_items(
            p, seed_lookup.get(p.seed_id), bed_lookup.get(p.garden_bed_id),
            windows.get(p.id), start, end,
        ))

    for task in garden_tasks or []:
        if not isinstance(task, GardenTask) or task.status != 'pending':
            continue
        if _in_range(task.due_date, start, end):
            items.append(AgendaItem(ItemType.GARDEN_TASK, task.due_date, GardenTaskPayload(
                task.id, task.title, task.notes,
            )))

    order = {t: i for i, t in enumerate(ItemType)}
    items.sort(key=lambda item: (item.date, order[item.type]))
    return items
