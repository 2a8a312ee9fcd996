"""
tests/test_conflicts.py — Tests for the conflict index.

Tests cover:
- Symmetry of the index and unique pair counting
- Bed isolation and undefined windows
- Windows resolved from actual presow dates
- Collision listing for a candidate placement
"""

from datetime import date

from models import Planting, Seed
from conflicts import (
    build_conflict_index, conflict_pairs, count_unique_conflicts,
    bed_has_conflict, list_overlaps,
)


def make_planting(pid, bed=1, seg=0, used=1, start=(2024, 4, 1), end=(2024, 6, 1), seed_id=1, **kw):
    return Planting(
        id=pid, garden_id=1, seed_id=seed_id, garden_bed_id=bed,
        start_segment=seg, segments_used=used,
        planned_date=date(*start) if start else None,
        planned_harvest_end=date(*end) if end else None,
        **kw
    )


SEEDS = [Seed(id=1, name="Lettuce", grow_duration_weeks=8, harvest_duration_weeks=4),
         Seed(id=2, name="Tomato", sowing_type="presow", presow_duration_weeks=6,
              grow_duration_weeks=8, harvest_duration_weeks=4)]


class TestBuildConflictIndex:

    def test_bed_a_scenario(self):
        p1 = make_planting(1, seg=0, start=(2024, 3, 1), end=(2024, 5, 1))
        p2 = make_planting(2, seg=0, start=(2024, 4, 1), end=(2024, 6, 1))
        index = build_conflict_index([p1, p2], SEEDS)
        assert [p.id for p in index[1]] == [2]
        assert [p.id for p in index[2]] == [1]

    def test_index_is_symmetric(self):
        plantings = [
            make_planting(1, seg=0, used=2),
            make_planting(2, seg=1, start=(2024, 5, 1), end=(2024, 7, 1)),
            make_planting(3, seg=0, start=(2024, 5, 15), end=(2024, 8, 1)),
            make_planting(4, seg=2, start=(2024, 1, 1), end=(2024, 12, 1)),
        ]
        index = build_conflict_index(plantings, SEEDS)
        for pid, others in index.items():
            for other in others:
                assert pid in [p.id for p in index[other.id]]

    def test_different_beds_never_listed(self):
        plantings = [make_planting(1, bed=1), make_planting(2, bed=2)]
        assert build_conflict_index(plantings, SEEDS) == {}

    def test_touching_windows_do_not_conflict(self):
        p1 = make_planting(1, start=(2024, 4, 1), end=(2024, 6, 23))
        p2 = make_planting(2, start=(2024, 6, 24), end=(2024, 8, 1))
        assert build_conflict_index([p1, p2], SEEDS) == {}

    def test_undefined_window_is_ignored(self):
        p1 = make_planting(1)
        p2 = make_planting(2, end=None)
        assert build_conflict_index([p1, p2], SEEDS) == {}

    def test_window_from_actual_presow(self):
        # Planned for June, but sown on 1 March: occupies 12 April - 10 May
        p1 = make_planting(1, seed_id=2, method="presow", start=(2024, 6, 1), end=(2024, 8, 1),
                           actual_presow_date=date(2024, 3, 1))
        p2 = make_planting(2, start=(2024, 5, 1), end=(2024, 5, 31))
        index = build_conflict_index([p1, p2], SEEDS)
        assert [p.id for p in index[1]] == [2]

    def test_unique_count(self):
        plantings = [
            make_planting(1, seg=0, used=3),
            make_planting(2, seg=0),
            make_planting(3, seg=1),
            make_planting(4, seg=2),
        ]
        index = build_conflict_index(plantings, SEEDS)
        assert conflict_pairs(index) == [(1, 2), (1, 3), (1, 4)]
        assert count_unique_conflicts(index) == 3

    def test_bed_has_conflict(self):
        plantings = [make_planting(1, bed=1), make_planting(2, bed=1), make_planting(3, bed=2)]
        index = build_conflict_index(plantings, SEEDS)
        assert bed_has_conflict(1, plantings, index)
        assert not bed_has_conflict(2, plantings, index)


class TestListOverlaps:

    def test_reports_colliding_plantings(self):
        plantings = [make_planting(1, seg=1, used=2), make_planting(2, seg=0)]
        overlaps = list_overlaps(plantings, SEEDS, 1, 2, 1, date(2024, 5, 1), date(2024, 5, 10))
        assert len(overlaps) == 1
        assert overlaps[0]['planting_id'] == 1
        assert overlaps[0]['seed_name'] == "Lettuce"
        assert (overlaps[0]['segment_from'], overlaps[0]['segment_to']) == (1, 2)

    def test_exclude_self(self):
        plantings = [make_planting(1)]
        assert list_overlaps(plantings, SEEDS, 1, 0, 1, date(2024, 5, 1), date(2024, 5, 2),
                             exclude_id=1) == []

    def test_other_bed_ignored(self):
        plantings = [make_planting(1, bed=2)]
        assert list_overlaps(plantings, SEEDS, 1, 0, 1, date(2024, 5, 1), date(2024, 5, 2)) == []
