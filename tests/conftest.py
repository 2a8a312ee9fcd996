"""
tests/conftest.py — Shared fixtures: an isolated garden database per test.
"""

import os
import tempfile

import pytest


@pytest.fixture
def garden_db(monkeypatch):
    """Temporary database with the default garden (id 1)."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    monkeypatch.setenv('GARDEN_DB_PATH', db_path)

    import database
    database.init_db()
    database.seed_defaults()

    yield database

    os.close(db_fd)
    for path in (db_path, db_path + '-wal', db_path + '-shm'):
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except PermissionError:
            pass  # Windows may hold the file
