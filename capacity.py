"""
capacity.py — Weekly segment occupancy per bed.

For each bed and each Monday-aligned week, which segments are occupied by a
planting whose window touches that week, and what fraction of the bed that is.
"""

from datetime import timedelta

from conflicts import resolve_windows
from overlap import dates_overlap
from placement import sort_beds


def monday_of(d):
    return d - timedelta(days=d.weekday())


def weekly_occupancy(beds, plantings, seeds, week_start, weeks=8):
    """
    Args:
        beds: Beds to report on.
        plantings: Plantings of the garden.
        seeds: Seeds for window resolution.
        week_start: Any date in the first week.
        weeks: Number of weeks to report.

    Returns:
        list of dicts, one per bed:
        {'bed_id', 'bed_name', 'segments', 'weeks': [
            {'week_start', 'occupied_segments', 'planting_ids', 'fraction'}, ...]}
    """
    plantings = list(plantings)
    windows = resolve_windows(plantings, seeds)
    first = monday_of(week_start)

    report = []
    for bed in sort_beds(beds):
        in_bed = [p for p in plantings if p.garden_bed_id == bed.id and windows.get(p.id)]
        rows = []
        for i in range(weeks):
            mon = first + timedelta(weeks=i)
            sun = mon + timedelta(days=6)
            occupied = set()
            planting_ids = []
            for p in in_bed:
                w = windows[p.id]
                if not dates_overlap(mon, sun, w.start, w.end):
                    continue
                planting_ids.append(p.id)
                occupied.update(s for s in range(p.start_segment, p.end_segment + 1) if s < bed.segments)
            rows.append({
                'week_start': mon,
                'occupied_segments': sorted(occupied),
                'planting_ids': planting_ids,
                'fraction': len(occupied) / bed.segments,
            })
        report.append({
            'bed_id': bed.id,
            'bed_name': bed.name,
            'segments': bed.segments,
            'weeks': rows,
        })
    return report
