"""
conflicts.py — Conflict index over all plantings of a garden.

A pair of plantings conflicts when they share a bed, their occupancy windows
overlap (day-inclusive) and their segment ranges overlap. The index is built
with a pairwise scan per bed; gardens hold tens to low hundreds of plantings,
so no interval tree is needed.

The index maps planting id → list of conflicting plantings and is symmetric:
if B is listed under A, A is listed under B.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from models import Planting, Seed, OccupancyWindow
from occupancy import resolve_window
from overlap import dates_overlap, segments_overlap, plantings_conflict


def seeds_by_id(seeds: Optional[Iterable[Seed]]) -> Dict[int, Seed]:
    return {s.id: s for s in (seeds or [])}


def resolve_windows(plantings: Iterable[Planting],
                    seeds: Optional[Iterable[Seed]] = None) -> Dict[int, Optional[OccupancyWindow]]:
    """Resolve every planting's window once; undefined windows map to None."""
    lookup = seeds_by_id(seeds)
    return {p.id: resolve_window(p, lookup.get(p.seed_id)) for p in plantings}


def build_conflict_index(plantings: Iterable[Planting],
                         seeds: Optional[Iterable[Seed]] = None) -> Dict[int, List[Planting]]:
    """
    Build the symmetric conflict map for a garden.

    Args:
        plantings: All plantings of the garden.
        seeds: Seed templates, used to resolve windows from actual presow dates.

    Returns:
        dict {planting_id: [conflicting Planting, ...]}. Plantings without
        conflicts are absent.
    """
    plantings = list(plantings)
    windows = resolve_windows(plantings, seeds)

    by_bed = defaultdict(list)
    for p in plantings:
        if windows.get(p.id) is None:
            continue
        by_bed[p.garden_bed_id].append(p)

    index = {}
    for bed_plantings in by_bed.values():
        bed_plantings.sort(key=lambda p: (windows[p.id].start, p.id))
        n = len(bed_plantings)
        for i in range(n):
            a = bed_plantings[i]
            for j in range(i + 1, n):
                b = bed_plantings[j]
                if plantings_conflict(a, windows[a.id], b, windows[b.id]):
                    index.setdefault(a.id, []).append(b)
                    index.setdefault(b.id, []).append(a)
    return index


def conflict_pairs(index: Dict[int, List[Planting]]) -> List[Tuple[int, int]]:
    """Unordered conflicting pairs, each once, as sorted (low_id, high_id) tuples."""
    pairs = set()
    for pid, others in index.items():
        for other in others:
            pairs.add(tuple(sorted((pid, other.id))))
    return sorted(pairs)


def count_unique_conflicts(index: Dict[int, List[Planting]]) -> int:
    """Number of conflicting pairs ("3 conflicts" rather than 6 directional entries)."""
    return len(conflict_pairs(index))


def bed_has_conflict(bed_id, plantings: Iterable[Planting], index: Dict[int, List[Planting]]) -> bool:
    return any(p.garden_bed_id == bed_id and index.get(p.id) for p in plantings)


def list_overlaps(plantings: Iterable[Planting], seeds: Optional[Iterable[Seed]],
                  bed_id, start_segment: int, segments_used: int,
                  start, end, exclude_id=None) -> List[dict]:
    """
    Describe every planting that collides with a candidate placement.

    Returns:
        List of dicts with keys: planting_id, seed_name, start, end,
        segment_from, segment_to (segment numbers are 0-based).
    """
    lookup = seeds_by_id(seeds)
    overlaps = []
    for p in plantings:
        if p.garden_bed_id != bed_id or (exclude_id is not None and p.id == exclude_id):
            continue
        seed = lookup.get(p.seed_id)
        window = resolve_window(p, seed)
        if window is None:
            continue
        if not dates_overlap(start, end, window.start, window.end):
            continue
        if not segments_overlap(start_segment, segments_used, p.start_segment, p.segments_used):
            continue
        overlaps.append({
            'planting_id': p.id,
            'seed_name': seed.name if seed else None,
            'start': window.start,
            'end': window.end,
            'segment_from': p.start_segment,
            'segment_to': p.end_segment,
        })
    return overlaps
