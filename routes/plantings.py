"""
routes/plantings.py — Planting create/read/update/delete and actual-date routes.

Provides:
- GET    /api/gardens/<garden_id>/plantings — List plantings with their windows
- POST   /api/gardens/<garden_id>/plantings — Create a planting from seed + bed + ground date
- GET    /api/plantings/<planting_id>        — Planting with its window
- PATCH  /api/plantings/<planting_id>        — Partial update (re-checked for collisions)
- DELETE /api/plantings/<planting_id>        — Delete a planting
- GET    /api/plantings/<planting_id>/window — Occupancy window only
- POST   /api/plantings/<planting_id>/actual — Record an actual milestone date

Creates and edits that would collide with another planting are refused
with 409 and the list of collisions.
"""

import logging

from flask import Blueprint, request, jsonify

from database import (
    get_garden, get_bed, get_seed, list_plantings, list_seeds,
    get_planting, create_planting, update_planting, delete_planting,
    PLANTING_COLUMNS,
)
from errors import InvalidPlacementError, NotFoundError, SlotOccupiedError, PlannerError
from conflicts import list_overlaps
from models import Planting
from occupancy import resolve_window, plan_from_ground_date
from resolution import record_actual_date
from utils.serialize import to_json
from utils.validators import json_object, validate_planting_payload, validate_segment_range, parse_iso_date

logger = logging.getLogger(__name__)

plantings_bp = Blueprint('plantings', __name__, url_prefix='/api')

PLACEMENT_FIELDS = {
    'seed_id', 'garden_bed_id', 'start_segment', 'segments_used',
    'planned_date', 'planned_harvest_end',
    'actual_presow_date', 'actual_ground_date', 'actual_harvest_end',
}


def planner_error_response(e):
    """Map engine exceptions to JSON error responses."""
    if isinstance(e, SlotOccupiedError):
        return jsonify({'success': False, 'error': str(e), 'conflicts': to_json(e.conflicts)}), 409
    if isinstance(e, NotFoundError):
        return jsonify({'success': False, 'error': str(e)}), 404
    if isinstance(e, InvalidPlacementError):
        return jsonify({'success': False, 'error': str(e)}), 400
    logger.error("Planner operation failed: %s", e)
    return jsonify({'success': False, 'error': str(e)}), 500


def planting_json(planting, seed=None):
    data = to_json(planting)
    data['window'] = to_json(resolve_window(planting, seed))
    return data


def _check_free(candidate, seed, exclude_id=None):
    """Raise SlotOccupiedError if candidate's window collides in its bed."""
    window = resolve_window(candidate, seed)
    if window is None:
        return
    overlaps = list_overlaps(
        list_plantings(candidate.garden_id), list_seeds(candidate.garden_id),
        candidate.garden_bed_id, candidate.start_segment, candidate.segments_used,
        window.start, window.end, exclude_id=exclude_id,
    )
    if overlaps:
        first = overlaps[0]
        raise SlotOccupiedError(
            f"Collides with '{first['seed_name']}' ({first['start']:%d-%m-%Y} – {first['end']:%d-%m-%Y}), "
            f"segments {first['segment_from'] + 1}-{first['segment_to'] + 1}",
            conflicts=overlaps,
        )


def _bed_in_garden(bed_id, garden_id):
    bed = get_bed(bed_id)
    if bed is None or bed.garden_id != garden_id:
        raise NotFoundError(f"Bed {bed_id} not found in garden {garden_id}")
    return bed


def _seed_in_garden(seed_id, garden_id):
    seed = get_seed(seed_id)
    if seed is None or seed.garden_id != garden_id:
        raise NotFoundError(f"Seed {seed_id} not found in garden {garden_id}")
    return seed


@plantings_bp.route('/gardens/<int:garden_id>/plantings')
def plantings_list(garden_id):
    if not get_garden(garden_id):
        return jsonify({'success': False, 'error': f'Garden {garden_id} not found'}), 404
    seeds = {s.id: s for s in list_seeds(garden_id)}
    return jsonify([planting_json(p, seeds.get(p.seed_id)) for p in list_plantings(garden_id)])


@plantings_bp.route('/gardens/<int:garden_id>/plantings', methods=['POST'])
def plantings_create(garden_id):
    """Create a planting; planned dates are derived from the seed durations."""
    if not get_garden(garden_id):
        return jsonify({'success': False, 'error': f'Garden {garden_id} not found'}), 404
    data = json_object(request.get_json(silent=True))
    errors = validate_planting_payload(data)
    if errors:
        return jsonify({'success': False, 'error': '; '.join(errors)}), 400

    try:
        seed = _seed_in_garden(data['seed_id'], garden_id)
        bed = _bed_in_garden(data['garden_bed_id'], garden_id)
        method = data.get('method') or ('presow' if seed.sowing_type == 'presow' else 'direct')
        start_segment = data.get('start_segment') or 0
        segments_used = data.get('segments_used') or 1
        validate_segment_range(bed, start_segment, segments_used)
        plan = plan_from_ground_date(seed, method, data['planned_date'])

        values = dict(plan)
        values.update({
            'seed_id': seed.id,
            'garden_bed_id': bed.id,
            'start_segment': start_segment,
            'segments_used': segments_used,
            'method': method,
            'color': data.get('color') or seed.default_color,
            'notes': data.get('notes'),
        })
        _check_free(Planting(garden_id=garden_id, **values), seed)
    except PlannerError as e:
        return planner_error_response(e)

    planting, error = create_planting(garden_id, values)
    if error:
        return jsonify({'success': False, 'error': error}), 400
    logger.info("Planting %s created in bed %s", planting.id, bed.id)
    return jsonify({'success': True, 'planting': planting_json(planting, seed)}), 201


@plantings_bp.route('/plantings/<int:planting_id>')
def plantings_get(planting_id):
    planting = get_planting(planting_id)
    if not planting:
        return jsonify({'success': False, 'error': f'Planting {planting_id} not found'}), 404
    return jsonify(planting_json(planting, get_seed(planting.seed_id)))


@plantings_bp.route('/plantings/<int:planting_id>', methods=['PATCH'])
def plantings_update(planting_id):
    """Partial update. Placement changes are checked against the other plantings."""
    current = get_planting(planting_id)
    if not current:
        return jsonify({'success': False, 'error': f'Planting {planting_id} not found'}), 404

    data = json_object(request.get_json(silent=True))
    errors = validate_planting_payload(data, partial=True)
    unknown = set(data) - set(PLANTING_COLUMNS)
    if unknown:
        errors.append(f"Unknown fields: {', '.join(sorted(unknown))}")
    if errors:
        return jsonify({'success': False, 'error': '; '.join(errors)}), 400

    patch = {}
    for key, value in data.items():
        if key.startswith(('planned_', 'actual_')):
            value = parse_iso_date(value)
        patch[key] = value

    try:
        if PLACEMENT_FIELDS & set(patch):
            candidate = current.with_changes(**patch)
            bed = _bed_in_garden(candidate.garden_bed_id, current.garden_id)
            seed = _seed_in_garden(candidate.seed_id, current.garden_id)
            validate_segment_range(bed, candidate.start_segment, candidate.segments_used)
            _check_free(candidate, seed, exclude_id=planting_id)
    except PlannerError as e:
        return planner_error_response(e)

    planting, error = update_planting(planting_id, patch)
    if error:
        return jsonify({'success': False, 'error': error}), 400
    return jsonify({'success': True, 'planting': planting_json(planting, get_seed(planting.seed_id))})


@plantings_bp.route('/plantings/<int:planting_id>', methods=['DELETE'])
def plantings_delete(planting_id):
    success, error = delete_planting(planting_id)
    if not success:
        return jsonify({'success': False, 'error': error}), 404
    logger.info("Planting %s deleted", planting_id)
    return jsonify({'success': True})


@plantings_bp.route('/plantings/<int:planting_id>/window')
def plantings_window(planting_id):
    planting = get_planting(planting_id)
    if not planting:
        return jsonify({'success': False, 'error': f'Planting {planting_id} not found'}), 404
    window = resolve_window(planting, get_seed(planting.seed_id))
    return jsonify({'planting_id': planting_id, 'window': to_json(window)})


@plantings_bp.route('/plantings/<int:planting_id>/actual', methods=['POST'])
def plantings_record_actual(planting_id):
    """Record an actual milestone; returns the recomputed plan without applying it."""
    data = json_object(request.get_json(silent=True))
    milestone = data.get('milestone')
    try:
        planting, pending = record_actual_date(planting_id, milestone, data.get('date'))
    except PlannerError as e:
        return planner_error_response(e)
    return jsonify({
        'success': True,
        'planting': planting_json(planting, get_seed(planting.seed_id)),
        'pending': to_json(pending),
    })
