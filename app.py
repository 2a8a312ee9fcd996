"""
app.py — Flask entry point for the garden planner.

Initializes the Flask app, applies configuration, installs the data-store
retry policy, calls init_db() and seed_defaults() on startup, and registers
all route blueprints.

Run: python app.py → localhost:5000
"""

import logging
import os
from flask import Flask
from flask_wtf.csrf import CSRFProtect

from database import init_db, seed_defaults, set_retry_policy, get_db_path
from routes.garden import garden_bp
from routes.plantings import plantings_bp
from routes.conflicts import conflicts_bp
from routes.export import export_bp
from utils.retry import RetryPolicy


DEFAULT_CONFIG = {
    'SEARCH_HORIZON_DAYS': 90,
    'SEARCH_STEP_DAYS': 7,
    'RETRY_MAX_ATTEMPTS': 3,
    'RETRY_BASE_DELAY': 0.05,
    'RETRY_JITTER': 0.05,
}


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.secret_key = os.environ.get('GARDEN_SECRET_KEY', 'garden-planner-local-secret-key')
    app.config['WTF_CSRF_CHECK_DEFAULT'] = True
    app.config.update(DEFAULT_CONFIG)

    if test_config:
        app.config.update(test_config)

    app.config['DATABASE'] = get_db_path()

    CSRFProtect(app)

    if not app.debug and not app.testing:
        logging.basicConfig(level=logging.INFO,
                            format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    set_retry_policy(RetryPolicy(
        max_attempts=app.config['RETRY_MAX_ATTEMPTS'],
        base_delay=app.config['RETRY_BASE_DELAY'],
        jitter=app.config['RETRY_JITTER'],
    ))

    # Initialize database and seed defaults
    with app.app_context():
        init_db()
        seed_defaults()
    app.logger.info("Garden database ready at %s", app.config['DATABASE'])

    # Register blueprints
    app.register_blueprint(garden_bp)
    app.register_blueprint(plantings_bp)
    app.register_blueprint(conflicts_bp)
    app.register_blueprint(export_bp)

    return app


if __name__ == '__main__':
    app = create_app()
    # Debug mode: enabled by default for development (auto-reload on file changes)
    # Set FLASK_DEBUG=0 to disable for production
    debug = os.environ.get('FLASK_DEBUG', '1') != '0'
    app.run(host='localhost', port=5000, debug=debug)
