"""
routes/garden.py — Garden, bed, seed and garden-task JSON routes.

Provides:
- GET  /api/csrf-token                  — CSRF token for JSON clients
- GET  /api/gardens                     — List gardens
- POST /api/gardens                     — Create a garden
- GET  /api/gardens/<garden_id>/beds    — List beds
- POST /api/gardens/<garden_id>/beds    — Create a bed
- GET  /api/gardens/<garden_id>/seeds   — List seeds
- POST /api/gardens/<garden_id>/seeds   — Create a seed
- GET  /api/gardens/<garden_id>/tasks   — List garden tasks
- POST /api/gardens/<garden_id>/tasks   — Create a garden task
"""

from flask import Blueprint, request, jsonify
from flask_wtf.csrf import generate_csrf

from database import (
    get_gardens, get_garden, create_garden,
    list_beds, get_bed, create_bed,
    list_seeds, get_seed, create_seed,
    list_garden_tasks, create_garden_task,
)
from utils.serialize import to_json
from utils.validators import json_object, validate_bed_payload, validate_seed_payload, parse_iso_date

garden_bp = Blueprint('garden', __name__, url_prefix='/api')


def _missing_garden(garden_id):
    return jsonify({'success': False, 'error': f'Garden {garden_id} not found'}), 404


@garden_bp.route('/csrf-token')
def csrf_token():
    return jsonify({'csrf_token': generate_csrf()})


@garden_bp.route('/gardens')
def gardens_list():
    return jsonify([to_json(g) for g in get_gardens()])


@garden_bp.route('/gardens', methods=['POST'])
def gardens_create():
    data = json_object(request.get_json(silent=True))
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'success': False, 'error': 'name is required'}), 400

    garden_id, error = create_garden(name)
    if error:
        return jsonify({'success': False, 'error': error}), 400
    return jsonify({'success': True, 'garden': to_json(get_garden(garden_id))}), 201


@garden_bp.route('/gardens/<int:garden_id>/beds')
def beds_list(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    return jsonify([to_json(b) for b in list_beds(garden_id)])


@garden_bp.route('/gardens/<int:garden_id>/beds', methods=['POST'])
def beds_create(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    data = json_object(request.get_json(silent=True))
    errors = validate_bed_payload(data)
    if errors:
        return jsonify({'success': False, 'error': '; '.join(errors)}), 400

    bed_id, error = create_bed(
        garden_id,
        data['name'].strip(),
        segments=data['segments'],
        width_cm=data.get('width_cm') or 0,
        length_cm=data.get('length_cm') or 0,
        is_greenhouse=bool(data.get('is_greenhouse')),
        sort_order=data.get('sort_order') or 0,
    )
    if error:
        return jsonify({'success': False, 'error': error}), 400
    return jsonify({'success': True, 'bed': to_json(get_bed(bed_id))}), 201


@garden_bp.route('/gardens/<int:garden_id>/seeds')
def seeds_list(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    return jsonify([to_json(s) for s in list_seeds(garden_id)])


@garden_bp.route('/gardens/<int:garden_id>/seeds', methods=['POST'])
def seeds_create(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    data = json_object(request.get_json(silent=True))
    errors = validate_seed_payload(data)
    if errors:
        return jsonify({'success': False, 'error': '; '.join(errors)}), 400

    fields = {k: v for k, v in data.items() if k not in ('name', 'id', 'garden_id')}
    seed_id, error = create_seed(garden_id, data['name'].strip(), **fields)
    if error:
        return jsonify({'success': False, 'error': error}), 400
    return jsonify({'success': True, 'seed': to_json(get_seed(seed_id))}), 201


@garden_bp.route('/gardens/<int:garden_id>/tasks')
def tasks_list(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    return jsonify([to_json(t) for t in list_garden_tasks(garden_id)])


@garden_bp.route('/gardens/<int:garden_id>/tasks', methods=['POST'])
def tasks_create(garden_id):
    if not get_garden(garden_id):
        return _missing_garden(garden_id)
    data = json_object(request.get_json(silent=True))
    title = (data.get('title') or '').strip()
    if not title:
        return jsonify({'success': False, 'error': 'title is required'}), 400
    due_date = parse_iso_date(data.get('due_date'))
    if data.get('due_date') and due_date is None:
        return jsonify({'success': False, 'error': 'due_date is not a valid date'}), 400

    task_id, error = create_garden_task(garden_id, title, due_date, data.get('notes'))
    if error:
        return jsonify({'success': False, 'error': error}), 400
    return jsonify({'success': True, 'task_id': task_id}), 201
