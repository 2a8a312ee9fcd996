"""
overlap.py — Date-range and segment-range intersection predicates.

Both predicates are inclusive on every bound:
- dates: a planting occupies its harvest-end day, so another planting may
  start on the following day without overlapping
- segments: a planting occupies [start_segment, start_segment + used - 1]
"""


def dates_overlap(a_start, a_end, b_start, b_end):
    """True if [a_start, a_end] and [b_start, b_end] share at least one day."""
    return a_start <= b_end and b_start <= a_end


def segments_overlap(a_start, a_count, b_start, b_count):
    """True if the two contiguous segment ranges share at least one segment."""
    return a_start <= b_start + b_count - 1 and b_start <= a_start + a_count - 1


def plantings_conflict(a, a_window, b, b_window):
    """
    Conflict test for two plantings with resolved windows.

    Plantings with an undefined window (None) never conflict.
    """
    if a_window is None or b_window is None:
        return False
    if a.id is not None and a.id == b.id:
        return False
    if a.garden_bed_id != b.garden_bed_id:
        return False
    return (
        dates_overlap(a_window.start, a_window.end, b_window.start, b_window.end)
        and segments_overlap(a.start_segment, a.segments_used, b.start_segment, b.segments_used)
    )
