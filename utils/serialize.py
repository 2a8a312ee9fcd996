"""
utils/serialize.py — JSON-ready conversion of planner records.

Dates become 'YYYY-MM-DD' strings (Flask's default provider would render
them as HTTP dates), enums their value, dataclasses plain dicts.
"""

from dataclasses import fields, is_dataclass
from datetime import date
from enum import Enum

from models import Recommendation, Placement
from occupancy import to_date


def to_json(obj):
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj):
        return {f.name: to_json(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {str(k): to_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [to_json(v) for v in obj]
    return str(obj)


def recommendation_from_json(data):
    """Rebuild a Recommendation posted back by a client."""
    return Recommendation(
        type=data.get('type', ''),
        description=data.get('description', ''),
        feasible=bool(data.get('feasible', True)),
        target_bed_id=data.get('target_bed_id'),
        target_bed_name=data.get('target_bed_name'),
        target_segment=data.get('target_segment'),
        target_date=to_date(data.get('target_date')),
        target_end=to_date(data.get('target_end')),
        shift_days=data.get('shift_days') or 0,
        alternatives=[
            Placement(a['bed_id'], a['start_segment'], to_date(a['start']), to_date(a['end']))
            for a in data.get('alternatives') or []
        ],
    )
