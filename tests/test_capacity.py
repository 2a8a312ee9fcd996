"""
tests/test_capacity.py — Tests for weekly bed occupancy.
"""

from datetime import date

import pytest

from models import Bed, Planting
from capacity import monday_of, weekly_occupancy


def test_monday_of():
    assert monday_of(date(2024, 4, 3)) == date(2024, 4, 1)
    assert monday_of(date(2024, 4, 1)) == date(2024, 4, 1)
    assert monday_of(date(2024, 4, 7)) == date(2024, 4, 1)


class TestWeeklyOccupancy:

    def setup_method(self):
        self.beds = [Bed(id=2, name="B", segments=2, sort_order=1),
                     Bed(id=1, name="A", segments=3, sort_order=0)]
        self.plantings = [
            Planting(id=1, garden_bed_id=1, start_segment=0, segments_used=2,
                     planned_date=date(2024, 4, 1), planned_harvest_end=date(2024, 4, 10)),
            Planting(id=2, garden_bed_id=1, start_segment=2, segments_used=1,
                     planned_date=date(2024, 4, 8), planned_harvest_end=date(2024, 4, 20)),
            Planting(id=3, garden_bed_id=1, start_segment=2, planned_date=date(2024, 4, 1)),
        ]

    def test_report_per_bed_in_display_order(self):
        report = weekly_occupancy(self.beds, self.plantings, [], date(2024, 4, 3), weeks=3)
        assert [r['bed_name'] for r in report] == ["A", "B"]
        assert len(report[0]['weeks']) == 3

    def test_segments_and_fraction(self):
        weeks = weekly_occupancy(self.beds, self.plantings, [], date(2024, 4, 3), weeks=3)[0]['weeks']
        assert [w['week_start'] for w in weeks] == [date(2024, 4, 1), date(2024, 4, 8), date(2024, 4, 15)]
        assert weeks[0]['occupied_segments'] == [0, 1]
        assert weeks[0]['fraction'] == pytest.approx(2 / 3)
        assert weeks[1]['occupied_segments'] == [0, 1, 2]
        assert weeks[1]['planting_ids'] == [1, 2]
        assert weeks[1]['fraction'] == 1.0
        assert weeks[2]['occupied_segments'] == [2]

    def test_empty_bed(self):
        bed_b = weekly_occupancy(self.beds, self.plantings, [], date(2024, 4, 1), weeks=1)[1]
        assert bed_b['weeks'][0] == {
            'week_start': date(2024, 4, 1), 'occupied_segments': [], 'planting_ids': [], 'fraction': 0.0,
        }
