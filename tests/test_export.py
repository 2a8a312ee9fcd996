"""
tests/test_export.py — Tests for the Excel schedule export.
"""

from datetime import date, datetime

import openpyxl

from utils.export import generate_schedule_excel


def _conflicting_pair(db):
    bed_id, _ = db.create_bed(1, "A", segments=3)
    seed_id, _ = db.create_seed(1, "Lettuce", grow_duration_weeks=8, harvest_duration_weeks=4)
    for start, end in ((date(2024, 3, 1), date(2024, 5, 1)), (date(2024, 4, 1), date(2024, 6, 1))):
        db.create_planting(1, {'seed_id': seed_id, 'garden_bed_id': bed_id,
                               'planned_date': start, 'planned_harvest_end': end})


def test_workbook_layout(garden_db):
    _conflicting_pair(garden_db)
    buffer, filename = generate_schedule_excel(1)
    assert filename == "planting_schedule_Moestuin.xlsx"

    wb = openpyxl.load_workbook(buffer)
    assert wb.sheetnames == ['Plantings', 'Conflicts']

    plantings = wb['Plantings']
    assert plantings['A1'].value == 'Bed'
    assert plantings.max_row == 3
    assert plantings['B2'].value == 'S1'
    assert plantings['D2'].value == datetime(2024, 3, 1)
    assert plantings['F2'].value == 'planned/planned'
    assert plantings['G2'].value == 1

    conflicts = wb['Conflicts']
    assert conflicts.max_row == 2
    assert conflicts['A2'].value == 'Lettuce'
    assert conflicts['D2'].value == datetime(2024, 4, 1)
    assert conflicts['E2'].value == datetime(2024, 5, 1)
    assert conflicts['F2'].value.startswith('Move to segment 2 in A')


def test_no_plantings(garden_db):
    assert generate_schedule_excel(1) == (None, None)


def test_unknown_garden(garden_db):
    assert generate_schedule_excel(42) == (None, None)
