"""
routes/conflicts.py — Conflict, recommendation, pending-recalculation and overview routes.

Provides:
- GET  /api/gardens/<garden_id>/conflicts                  — Conflict index + unique count
- GET  /api/gardens/<garden_id>/conflicts/details          — Offenders, blockers, recommendations
- POST /api/plantings/<planting_id>/apply-recommendation   — Apply a chosen recommendation
- GET  /api/gardens/<garden_id>/pending                    — Pending recalculations
- GET  /api/gardens/<garden_id>/pending/<planting_id>/details — Conflicts the pending dates would cause
- POST /api/plantings/<planting_id>/apply-pending          — Apply recomputed planned dates
- GET  /api/gardens/<garden_id>/capacity                   — Weekly segment occupancy per bed
- GET  /api/gardens/<garden_id>/agenda                     — Dated agenda items

Search horizon and step come from app config (SEARCH_HORIZON_DAYS,
SEARCH_STEP_DAYS). A target taken between search and apply answers 409;
the client re-runs the search.
"""

import logging
from datetime import date, timedelta

from flask import Blueprint, request, jsonify, current_app

from database import get_garden, get_seed, list_garden_tasks
from errors import PlannerError
from conflicts import build_conflict_index, count_unique_conflicts, conflict_pairs, bed_has_conflict
from resolution import (
    load_snapshot, generate_conflict_details, apply_recommendation,
    detect_pending_recalculations, pending_for, pending_conflict_details,
    apply_pending_recalculation,
)
from capacity import weekly_occupancy
from agenda import build_agenda
from routes.plantings import planner_error_response, planting_json
from utils.serialize import to_json, recommendation_from_json
from utils.validators import json_object, parse_iso_date, validate_recommendation_payload

logger = logging.getLogger(__name__)

conflicts_bp = Blueprint('conflicts', __name__, url_prefix='/api')


def _search_settings():
    return {
        'horizon_days': current_app.config.get('SEARCH_HORIZON_DAYS', 90),
        'step_days': current_app.config.get('SEARCH_STEP_DAYS', 7),
    }


def _missing_garden(garden_id):
    return jsonify({'success': False, 'error': f'Garden {garden_id} not found'}), 404


@conflicts_bp.route('/gardens/<int:garden_id>/conflicts')
def conflicts_index(garden_id):
    """Conflict map (planting id → conflicting ids), unique pair count, flagged beds."""
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    snapshot = load_snapshot(garden_id)
    index = build_conflict_index(snapshot.plantings, snapshot.seeds)
    return jsonify({
        'count': count_unique_conflicts(index),
        'has_conflicts': bool(index),
        'conflicts': {str(pid): [p.id for p in others] for pid, others in index.items()},
        'pairs': [list(pair) for pair in conflict_pairs(index)],
        'beds_with_conflicts': [
            b.id for b in snapshot.beds if bed_has_conflict(b.id, snapshot.plantings, index)
        ],
    })


@conflicts_bp.route('/gardens/<int:garden_id>/conflicts/details')
def conflicts_details(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    snapshot = load_snapshot(garden_id)
    try:
        details = generate_conflict_details(
            snapshot.plantings, snapshot.beds, snapshot.seeds, **_search_settings()
        )
    except PlannerError as e:
        return planner_error_response(e)
    return jsonify([to_json(d) for d in details])


@conflicts_bp.route('/plantings/<int:planting_id>/apply-recommendation', methods=['POST'])
def conflicts_apply(planting_id):
    """Apply a recommendation as returned by the details route."""
    data = request.get_json(silent=True) or {}
    if isinstance(data, dict) and 'recommendation' in data:
        data = data['recommendation']
    errors = validate_recommendation_payload(data)
    if errors:
        return jsonify({'success': False, 'error': '; '.join(errors)}), 400
    try:
        recommendation = recommendation_from_json(data)
    except (KeyError, TypeError) as e:
        return jsonify({'success': False, 'error': f'Malformed recommendation: {e}'}), 400

    try:
        planting = apply_recommendation(planting_id, recommendation)
    except PlannerError as e:
        logger.info("Recommendation for planting %s not applied: %s", planting_id, e)
        return planner_error_response(e)
    logger.info("Applied %s to planting %s", recommendation.type, planting_id)
    return jsonify({'success': True, 'planting': planting_json(planting, get_seed(planting.seed_id))})


@conflicts_bp.route('/gardens/<int:garden_id>/pending')
def pending_list(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    pending = detect_pending_recalculations(load_snapshot(garden_id))
    return jsonify([
        dict(to_json(item), has_conflict=item.has_conflict) for item in pending
    ])


@conflicts_bp.route('/gardens/<int:garden_id>/pending/<int:planting_id>/details')
def pending_details(garden_id, planting_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    snapshot = load_snapshot(garden_id)
    planting = next((p for p in snapshot.plantings if p.id == planting_id), None)
    if planting is None:
        return jsonify({'success': False, 'error': f'Planting {planting_id} not found'}), 404
    item = pending_for(planting, snapshot)
    if item is None:
        return jsonify({'pending': None, 'conflicts': []})
    try:
        details = pending_conflict_details(item, snapshot, **_search_settings())
    except PlannerError as e:
        return planner_error_response(e)
    return jsonify({'pending': to_json(item), 'conflicts': [to_json(d) for d in details]})


@conflicts_bp.route('/plantings/<int:planting_id>/apply-pending', methods=['POST'])
def pending_apply(planting_id):
    data = json_object(request.get_json(silent=True))
    try:
        planting = apply_pending_recalculation(
            planting_id, allow_conflicts=bool(data.get('allow_conflicts'))
        )
    except PlannerError as e:
        return planner_error_response(e)
    return jsonify({'success': True, 'planting': planting_json(planting, get_seed(planting.seed_id))})


@conflicts_bp.route('/gardens/<int:garden_id>/capacity')
def capacity(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    start = parse_iso_date(request.args.get('from')) or date.today()
    weeks = request.args.get('weeks', 8, type=int)
    if weeks < 1 or weeks > 104:
        return jsonify({'success': False, 'error': 'weeks must be between 1 and 104'}), 400
    snapshot = load_snapshot(garden_id)
    report = weekly_occupancy(snapshot.beds, snapshot.plantings, snapshot.seeds, start, weeks)
    return jsonify(to_json(report))


@conflicts_bp.route('/gardens/<int:garden_id>/agenda')
def agenda(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    start = parse_iso_date(request.args.get('from')) or date.today()
    end = parse_iso_date(request.args.get('to')) or start + timedelta(days=28)
    if end < start:
        return jsonify({'success': False, 'error': "'to' is before 'from'"}), 400
    snapshot = load_snapshot(garden_id)
    items = build_agenda(
        snapshot.plantings, snapshot.seeds, snapshot.beds,
        list_garden_tasks(garden_id), start, end,
    )
    return jsonify([to_json(item) for item in items])
