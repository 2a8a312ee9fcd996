"""
routes/export.py — Excel export routes.

Provides:
- GET /export/schedule/<garden_id> — Download the planting schedule + conflict report
"""

from flask import Blueprint, jsonify, send_file

from utils.export import generate_schedule_excel

export_bp = Blueprint('export', __name__, url_prefix='/export')


@export_bp.route('/schedule/<int:garden_id>')
def export_schedule(garden_id):
    """Export a garden's plantings and conflicts as Excel."""
    buffer, filename = generate_schedule_excel(garden_id)
    if not buffer:
        return jsonify({'success': False, 'error': 'No plantings to export for this garden.'}), 404

    return send_file(
        buffer,
        as_attachment=True,
        download_name=filename,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
