"""
utils/validators.py — Input validation helpers.

Validates:
- Segment ranges against a bed's capacity
- Planting payloads coming from the JSON API
- Bed and seed payloads (positive segment counts, known sowing types, months 1-12)
- Recommendations posted back for apply (integer targets, ISO dates)

Validators return a list of messages (empty when valid); the segment range
check raises because a range that cannot fit is a caller error.
"""

from errors import InvalidPlacementError
from occupancy import to_date


METHODS = ('direct', 'presow')
SOWING_TYPES = ('direct', 'presow', 'both')
STATUSES = ('planned', 'sown', 'planted', 'growing', 'harvesting', 'completed')


def json_object(data):
    """The posted JSON body when it is an object, else an empty dict."""
    return data if isinstance(data, dict) else {}


def parse_iso_date(value):
    """'YYYY-MM-DD' → date; None for empty or invalid input."""
    if value in (None, ''):
        return None
    return to_date(value)


def validate_segment_range(bed, start_segment, segments_used):
    """Raise InvalidPlacementError unless [start, start+used-1] lies inside the bed."""
    if segments_used is None or segments_used < 1:
        raise InvalidPlacementError("segments_used must be at least 1")
    if start_segment is None or start_segment < 0:
        raise InvalidPlacementError("start_segment must be 0 or more")
    if start_segment + segments_used > bed.segments:
        raise InvalidPlacementError(
            f"Segments {start_segment}-{start_segment + segments_used - 1} "
            f"do not fit in bed '{bed.name}' ({bed.segments} segments)"
        )


def _check_int(data, key, errors, minimum=None, required=False):
    value = data.get(key)
    if value is None:
        if required:
            errors.append(f"{key} is required")
        return
    if isinstance(value, bool) or not isinstance(value, int):
        errors.append(f"{key} must be an integer")
    elif minimum is not None and value < minimum:
        errors.append(f"{key} must be at least {minimum}")


def _check_months(data, key, errors):
    months = data.get(key)
    if months is None:
        return
    if not isinstance(months, list) or any(
            isinstance(m, bool) or not isinstance(m, int) or not 1 <= m <= 12 for m in months):
        errors.append(f"{key} must be a list of months 1-12")


def validate_planting_payload(data, partial=False):
    """Check a planting create/patch payload. Returns a list of error messages."""
    errors = []
    required = not partial
    _check_int(data, 'seed_id', errors, required=required)
    _check_int(data, 'garden_bed_id', errors, required=required)
    _check_int(data, 'start_segment', errors, minimum=0)
    _check_int(data, 'segments_used', errors, minimum=1)

    method = data.get('method')
    if method is not None and method not in METHODS:
        errors.append(f"method must be one of {', '.join(METHODS)}")
    status = data.get('status')
    if status is not None and status not in STATUSES:
        errors.append(f"status must be one of {', '.join(STATUSES)}")

    for key, value in data.items():
        if key.startswith(('planned_', 'actual_')) and value not in (None, ''):
            if parse_iso_date(value) is None:
                errors.append(f"{key} is not a valid date (YYYY-MM-DD)")

    if not partial and parse_iso_date(data.get('planned_date')) is None:
        errors.append("planned_date is required")
    return errors


def validate_bed_payload(data):
    errors = []
    if not (data.get('name') or '').strip():
        errors.append("name is required")
    _check_int(data, 'segments', errors, minimum=1, required=True)
    _check_int(data, 'width_cm', errors, minimum=0)
    _check_int(data, 'length_cm', errors, minimum=0)
    return errors


def validate_seed_payload(data):
    errors = []
    if not (data.get('name') or '').strip():
        errors.append("name is required")
    sowing_type = data.get('sowing_type', 'direct')
    if sowing_type not in SOWING_TYPES:
        errors.append(f"sowing_type must be one of {', '.join(SOWING_TYPES)}")
    for key in ('presow_duration_weeks', 'grow_duration_weeks', 'harvest_duration_weeks'):
        _check_int(data, key, errors, minimum=0)
    for key in ('presow_months', 'greenhouse_months', 'ground_months', 'harvest_months'):
        _check_months(data, key, errors)
    return errors


def validate_recommendation_payload(data):
    """Check a recommendation posted back for apply. Returns a list of error messages."""
    if not isinstance(data, dict):
        return ["recommendation must be an object"]
    errors = []
    if not isinstance(data.get('type'), str):
        errors.append("type is required")
    _check_int(data, 'target_bed_id', errors)
    _check_int(data, 'target_segment', errors, minimum=0)
    _check_int(data, 'shift_days', errors)
    for key in ('target_date', 'target_end'):
        if data.get(key) not in (None, '') and parse_iso_date(data[key]) is None:
            errors.append(f"{key} is not a valid date (YYYY-MM-DD)")
    alternatives = data.get('alternatives')
    if alternatives is not None and not (
            isinstance(alternatives, list) and all(isinstance(a, dict) for a in alternatives)):
        errors.append("alternatives must be a list of placements")
    return errors
