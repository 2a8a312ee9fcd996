"""
tests/test_occupancy.py — Tests for occupancy window resolution and planned-date recompute.

Tests cover:
- Window resolution from actual, presow-derived and planned dates
- Undefined windows (missing bounds, end before start)
- Anchor-driven recompute for every milestone
- Initial plan from a ground date
- Latest anchor selection and planned-date shifting
"""

import pytest
from datetime import date, datetime

from errors import InvalidPlacementError
from models import Planting, Seed
from occupancy import (
    to_date, resolve_window, compute_plan_from_anchor, latest_anchor,
    proposed_plan, plan_from_ground_date, shift_planned_dates,
)


@pytest.fixture
def lettuce():
    return Seed(id=1, name="Lettuce", sowing_type="direct",
                grow_duration_weeks=8, harvest_duration_weeks=4)


@pytest.fixture
def tomato():
    return Seed(id=2, name="Tomato", sowing_type="presow", presow_duration_weeks=6,
                grow_duration_weeks=8, harvest_duration_weeks=4)


# ========================================
# Date coercion
# ========================================

class TestToDate:

    def test_passthrough_and_strings(self):
        assert to_date(date(2024, 4, 1)) == date(2024, 4, 1)
        assert to_date(datetime(2024, 4, 1, 13, 30)) == date(2024, 4, 1)
        assert to_date("2024-04-01") == date(2024, 4, 1)
        assert to_date("2024-04-01T10:00:00Z") == date(2024, 4, 1)

    def test_invalid_values(self):
        assert to_date(None) is None
        assert to_date("") is None
        assert to_date("01/04/2024") is None
        assert to_date(20240401) is None
        assert to_date("2024-03-01garbage") is None
        assert to_date("2024-03-01T99:00") is None


# ========================================
# Window resolution
# ========================================

class TestResolveWindow:

    def test_planned_only(self, lettuce):
        p = Planting(id=1, seed_id=1, planned_date=date(2024, 4, 1),
                     planned_harvest_end=date(2024, 6, 30))
        w = resolve_window(p, lettuce)
        assert (w.start, w.end) == (date(2024, 4, 1), date(2024, 6, 30))
        assert w.is_planned

    def test_actual_ground_and_harvest_end_win(self, lettuce):
        p = Planting(id=1, seed_id=1,
                     planned_date=date(2024, 4, 1), planned_harvest_end=date(2024, 6, 30),
                     actual_ground_date=date(2024, 4, 10), actual_harvest_end=date(2024, 7, 5))
        w = resolve_window(p, lettuce)
        assert (w.start, w.end) == (date(2024, 4, 10), date(2024, 7, 5))
        assert (w.start_basis, w.end_basis) == ('actual', 'actual')
        assert not w.is_planned

    def test_actual_ground_keeps_planned_end(self, lettuce):
        p = Planting(id=1, planned_date=date(2024, 4, 1), planned_harvest_end=date(2024, 6, 30),
                     actual_ground_date=date(2024, 4, 3))
        w = resolve_window(p, lettuce)
        assert w.start == date(2024, 4, 3)
        assert w.end == date(2024, 6, 30)
        assert w.end_basis == 'planned'

    def test_actual_presow_derives_start_and_end(self, tomato):
        p = Planting(id=1, seed_id=2, method="presow",
                     planned_date=date(2024, 4, 1), planned_harvest_end=date(2024, 6, 30),
                     actual_presow_date=date(2024, 3, 1))
        w = resolve_window(p, tomato)
        # 6 presow weeks, then 4 harvest weeks from that start
        assert w.start == date(2024, 4, 12)
        assert w.end == date(2024, 5, 10)
        assert (w.start_basis, w.end_basis) == ('presow', 'presow')

    def test_actual_presow_without_seed_falls_back_to_planned(self):
        p = Planting(id=1, planned_date=date(2024, 4, 1), planned_harvest_end=date(2024, 6, 30),
                     actual_presow_date=date(2024, 3, 1))
        w = resolve_window(p, None)
        assert (w.start, w.end) == (date(2024, 4, 1), date(2024, 6, 30))

    def test_actual_presow_without_presow_weeks_falls_back(self, lettuce):
        p = Planting(id=1, planned_date=date(2024, 4, 1), planned_harvest_end=date(2024, 6, 30),
                     actual_presow_date=date(2024, 3, 1))
        assert resolve_window(p, lettuce).start == date(2024, 4, 1)

    def test_missing_bound_is_undefined(self, lettuce):
        assert resolve_window(Planting(id=1, planned_date=date(2024, 4, 1)), lettuce) is None
        assert resolve_window(Planting(id=1, planned_harvest_end=date(2024, 6, 1)), lettuce) is None

    def test_end_before_start_is_undefined(self, lettuce):
        p = Planting(id=1, planned_date=date(2024, 6, 1), planned_harvest_end=date(2024, 5, 1))
        assert resolve_window(p, lettuce) is None

    def test_single_day_window(self):
        p = Planting(id=1, planned_date=date(2024, 6, 1), planned_harvest_end=date(2024, 6, 1))
        w = resolve_window(p)
        assert w.duration_days == 0

    def test_string_dates_are_accepted(self):
        p = Planting(id=1, planned_date="2024-04-01", planned_harvest_end="2024-04-30")
        assert resolve_window(p).end == date(2024, 4, 30)


# ========================================
# Anchor recompute
# ========================================

class TestComputePlanFromAnchor:

    def test_ground_anchor_direct(self, lettuce):
        plan = compute_plan_from_anchor("direct", lettuce, "ground", date(2024, 4, 1), {})
        assert plan['planned_presow_date'] is None
        assert plan['planned_date'] == date(2024, 4, 1)
        assert plan['planned_harvest_start'] == date(2024, 5, 27)
        assert plan['planned_harvest_end'] == date(2024, 6, 24)

    def test_ground_anchor_presow_method(self, tomato):
        plan = compute_plan_from_anchor("presow", tomato, "ground", "2024-04-01", {})
        assert plan['planned_presow_date'] == date(2024, 2, 19)
        assert plan['planned_harvest_start'] == date(2024, 5, 27)

    def test_presow_anchor(self, tomato):
        plan = compute_plan_from_anchor("presow", tomato, "presow", date(2024, 2, 19), {})
        assert plan['planned_presow_date'] == date(2024, 2, 19)
        assert plan['planned_date'] == date(2024, 4, 1)
        assert plan['planned_harvest_start'] == date(2024, 5, 27)
        assert plan['planned_harvest_end'] == date(2024, 6, 24)

    def test_harvest_start_anchor_walks_back(self, tomato):
        plan = compute_plan_from_anchor("presow", tomato, "harvest_start", date(2024, 5, 27), {})
        assert plan['planned_harvest_end'] == date(2024, 6, 24)
        assert plan['planned_date'] == date(2024, 4, 1)
        assert plan['planned_presow_date'] == date(2024, 2, 19)

    def test_harvest_end_anchor_walks_back(self, lettuce):
        plan = compute_plan_from_anchor("direct", lettuce, "harvest_end", date(2024, 6, 24), {})
        assert plan['planned_harvest_start'] == date(2024, 5, 27)
        assert plan['planned_date'] == date(2024, 4, 1)
        assert plan['planned_presow_date'] is None

    def test_unknown_durations_keep_previous_values(self):
        seed = Seed(id=3, name="Mystery")
        prev = {
            'planned_date': date(2024, 4, 1),
            'planned_harvest_start': date(2024, 6, 1),
            'planned_harvest_end': date(2024, 6, 20),
        }
        plan = compute_plan_from_anchor("direct", seed, "ground", date(2024, 4, 8), prev)
        assert plan['planned_date'] == date(2024, 4, 8)
        assert plan['planned_harvest_start'] == date(2024, 6, 1)
        assert plan['planned_harvest_end'] == date(2024, 6, 20)

    def test_unknown_anchor_type(self, lettuce):
        with pytest.raises(InvalidPlacementError):
            compute_plan_from_anchor("direct", lettuce, "flowering", date(2024, 4, 1), {})

    def test_invalid_anchor_date(self, lettuce):
        with pytest.raises(InvalidPlacementError):
            compute_plan_from_anchor("direct", lettuce, "ground", "not-a-date", {})


class TestAnchorSelection:

    def test_latest_anchor_prefers_furthest_milestone(self):
        p = Planting(actual_ground_date=date(2024, 4, 1), actual_harvest_start=date(2024, 5, 30))
        assert latest_anchor(p) == ('harvest_start', date(2024, 5, 30))

    def test_no_actuals(self):
        assert latest_anchor(Planting()) is None
        assert proposed_plan(Planting(), Seed(id=1)) is None

    def test_proposed_plan_scenario(self, lettuce):
        p = Planting(id=1, seed_id=1, method="direct",
                     planned_date=date(2024, 3, 25), planned_harvest_start=date(2024, 5, 20),
                     planned_harvest_end=date(2024, 6, 16), actual_ground_date=date(2024, 4, 1))
        assert resolve_window(p, lettuce).start == date(2024, 4, 1)
        plan = proposed_plan(p, lettuce)
        assert plan['planned_harvest_start'] == date(2024, 5, 27)
        assert plan['planned_harvest_end'] == date(2024, 6, 24)

    def test_proposed_plan_needs_seed(self):
        assert proposed_plan(Planting(actual_ground_date=date(2024, 4, 1)), None) is None


# ========================================
# Initial plan and shifting
# ========================================

class TestPlanFromGroundDate:

    def test_direct(self, lettuce):
        plan = plan_from_ground_date(lettuce, "direct", "2024-04-01")
        assert plan == {
            'planned_presow_date': None,
            'planned_date': date(2024, 4, 1),
            'planned_harvest_start': date(2024, 5, 27),
            'planned_harvest_end': date(2024, 6, 24),
        }

    def test_matches_anchor_recompute(self, lettuce):
        plan = plan_from_ground_date(lettuce, "direct", date(2024, 4, 1))
        assert compute_plan_from_anchor("direct", lettuce, "ground", date(2024, 4, 1), plan) == plan

    def test_zero_grow_weeks(self):
        radish = Seed(id=3, name="Radish", grow_duration_weeks=0, harvest_duration_weeks=2)
        plan = plan_from_ground_date(radish, "direct", date(2024, 4, 1))
        assert plan['planned_harvest_start'] == date(2024, 4, 1)
        assert plan['planned_harvest_end'] == date(2024, 4, 15)

    def test_presow(self, tomato):
        plan = plan_from_ground_date(tomato, "presow", date(2024, 4, 1))
        assert plan['planned_presow_date'] == date(2024, 2, 19)

    def test_missing_durations(self):
        with pytest.raises(InvalidPlacementError):
            plan_from_ground_date(Seed(id=1, name="Bare"), "direct", date(2024, 4, 1))

    def test_presow_method_needs_presow_weeks(self, lettuce):
        with pytest.raises(InvalidPlacementError):
            plan_from_ground_date(lettuce, "presow", date(2024, 4, 1))

    def test_invalid_date(self, lettuce):
        with pytest.raises(InvalidPlacementError):
            plan_from_ground_date(lettuce, "direct", "April")


def test_shift_planned_dates():
    p = Planting(planned_date=date(2024, 4, 1), planned_harvest_start=date(2024, 5, 27),
                 planned_harvest_end=date(2024, 6, 23))
    shifted = shift_planned_dates(p, 7)
    assert shifted == {
        'planned_presow_date': None,
        'planned_date': date(2024, 4, 8),
        'planned_harvest_start': date(2024, 6, 3),
        'planned_harvest_end': date(2024, 6, 30),
    }
