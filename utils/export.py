"""
utils/export.py — Excel export of a garden's planting schedule using openpyxl.

Workbook layout:
- "Plantings": Bed, Segments, Seed, Start, End, Basis, Conflicts
- "Conflicts": one row per conflicting pair with the offender to move and
  the first feasible recommendation
"""

from io import BytesIO
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from database import get_garden
from conflicts import build_conflict_index, resolve_windows, seeds_by_id
from resolution import load_snapshot, generate_conflict_details


HEADER_FONT = Font(name='Calibri', bold=True, color='FFFFFF', size=11)
HEADER_FILL = PatternFill(start_color='2E7D32', end_color='2E7D32', fill_type='solid')
HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
HEADER_BORDER = Border(
    bottom=Side(style='thin', color='1B5E20'),
    right=Side(style='thin', color='E2E8F0'),
)
CELL_BORDER = Border(
    bottom=Side(style='thin', color='E2E8F0'),
    right=Side(style='thin', color='E2E8F0'),
)
CONFLICT_FILL = PatternFill(start_color='FFCDD2', end_color='FFCDD2', fill_type='solid')


def _header(ws, columns, widths):
    for col_idx, col_name in enumerate(columns, 1):
        cell = ws.cell(row=1, column=col_idx, value=col_name)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGNMENT
        cell.border = HEADER_BORDER
    for letter, width in widths.items():
        ws.column_dimensions[letter].width = width
    ws.freeze_panes = 'A2'


def _segments_label(planting):
    if planting.segments_used == 1:
        return f"S{planting.start_segment + 1}"
    return f"S{planting.start_segment + 1}-S{planting.end_segment + 1}"


def _build_plantings_sheet(ws, snapshot):
    _header(ws, ['Bed', 'Segments', 'Seed', 'Start', 'End', 'Basis', 'Conflicts'],
            {'A': 16, 'B': 12, 'C': 22, 'D': 12, 'E': 12, 'F': 16, 'G': 10})

    beds = {b.id: b for b in snapshot.beds}
    seeds = seeds_by_id(snapshot.seeds)
    windows = resolve_windows(snapshot.plantings, snapshot.seeds)
    index = build_conflict_index(snapshot.plantings, snapshot.seeds)

    ordered = sorted(
        snapshot.plantings,
        key=lambda p: (beds[p.garden_bed_id].sort_order if p.garden_bed_id in beds else 0,
                       p.garden_bed_id, p.start_segment, p.id)
    )
    for row_idx, p in enumerate(ordered, 2):
        window = windows.get(p.id)
        bed = beds.get(p.garden_bed_id)
        seed = seeds.get(p.seed_id)
        n_conflicts = len(index.get(p.id, []))
        values = [
            bed.name if bed else '',
            _segments_label(p),
            seed.name if seed else '',
            window.start if window else None,
            window.end if window else None,
            f"{window.start_basis}/{window.end_basis}" if window else 'undefined',
            n_conflicts,
        ]
        for col_idx, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = CELL_BORDER
            if col_idx in (4, 5) and value is not None:
                cell.number_format = 'DD-MM-YYYY'
            if n_conflicts:
                cell.fill = CONFLICT_FILL


def _build_conflicts_sheet(ws, snapshot):
    _header(ws, ['Move', 'Bed', 'Blocked by', 'Overlap from', 'Overlap to', 'Suggestion'],
            {'A': 22, 'B': 16, 'C': 22, 'D': 14, 'E': 14, 'F': 60})

    beds = {b.id: b for b in snapshot.beds}
    details = generate_conflict_details(snapshot.plantings, snapshot.beds, snapshot.seeds)
    for row_idx, d in enumerate(details, 2):
        first_feasible = next((r for r in d.recommendations if r.feasible), None)
        bed = beds.get(d.offender.garden_bed_id)
        values = [
            d.offender_seed.name if d.offender_seed else f"#{d.offender.id}",
            bed.name if bed else '',
            d.blocker_seed.name if d.blocker_seed else f"#{d.blocker.id}",
            max(d.offender_window.start, d.blocker_window.start),
            min(d.offender_window.end, d.blocker_window.end),
            first_feasible.description if first_feasible else 'No option found',
        ]
        for col_idx, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = CELL_BORDER
            if col_idx in (4, 5):
                cell.number_format = 'DD-MM-YYYY'


def generate_schedule_excel(garden_id):
    """Generate the planting schedule workbook for a garden.

    Returns:
        (BytesIO buffer, filename) on success, (None, None) if the garden is
        unknown or has no plantings.
    """
    import openpyxl

    garden = get_garden(garden_id)
    if not garden:
        return None, None

    snapshot = load_snapshot(garden_id)
    if not snapshot.plantings:
        return None, None

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = 'Plantings'
    _build_plantings_sheet(ws, snapshot)
    _build_conflicts_sheet(wb.create_sheet(title='Conflicts'), snapshot)

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    safe_name = ''.join(c if c.isalnum() else '_' for c in garden.name).strip('_') or 'garden'
    filename = f"planting_schedule_{safe_name}.xlsx"
    return buffer, filename
