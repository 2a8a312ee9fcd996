"""
database.py — SQLite schema creation, default data, and data-store operations.

Collections: gardens, beds, seeds, plantings, garden_tasks.
Reads return dataclasses from models.py; writes return (value, None) on
success and (None, error_message) on failure.
Uses WAL mode for concurrent read performance. Every connection round-trip
runs under the configured RetryPolicy (locked/busy errors are retried).
"""

import json
import logging
import os
import sqlite3

from models import Garden, Bed, Seed, Planting, GardenTask, PLANNED_FIELDS, ACTUAL_FIELDS
from occupancy import to_date
from utils.retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

_retry_policy = RetryPolicy()

# Columns a planting patch may touch
PLANTING_COLUMNS = (
    'seed_id', 'garden_bed_id', 'start_segment', 'segments_used', 'method',
    'color', 'status', 'notes',
) + tuple(PLANNED_FIELDS.values()) + tuple(ACTUAL_FIELDS.values())

DATE_COLUMNS = set(PLANNED_FIELDS.values()) | set(ACTUAL_FIELDS.values()) | {'due_date'}

MONTH_COLUMNS = ('presow_months', 'greenhouse_months', 'ground_months', 'harvest_months')


def get_db_path():
    """Get the garden database path from environment or default."""
    default_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'garden_planner.db')
    return os.environ.get('GARDEN_DB_PATH', default_path)


def set_retry_policy(policy):
    """Install the retry policy used for every data-store call."""
    global _retry_policy
    _retry_policy = policy


def get_retry_policy():
    return _retry_policy


def get_db():
    """Get a database connection with WAL mode and foreign keys enabled."""
    db_path = get_db_path()
    os.makedirs(os.path.dirname(db_path), exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def _run(work, commit=False):
    """Run work(conn) on a fresh connection under the retry policy."""
    def attempt():
        conn = get_db()
        try:
            result = work(conn)
            if commit:
                conn.commit()
            return result
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
    return call_with_retry(attempt, _retry_policy)


def init_db():
    """Create all tables and indexes if they don't exist."""
    def work(conn):
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS gardens (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS beds (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                garden_id INTEGER NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                width_cm INTEGER NOT NULL DEFAULT 0,
                length_cm INTEGER NOT NULL DEFAULT 0,
                segments INTEGER NOT NULL DEFAULT 1 CHECK (segments >= 1),
                is_greenhouse BOOLEAN NOT NULL DEFAULT 0,
                sort_order INTEGER NOT NULL DEFAULT 0
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS seeds (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                garden_id INTEGER NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                sowing_type TEXT NOT NULL DEFAULT 'direct'
                    CHECK (sowing_type IN ('direct','presow','both')),
                presow_duration_weeks INTEGER,
                grow_duration_weeks INTEGER,
                harvest_duration_weeks INTEGER,
                presow_months TEXT DEFAULT '[]',
                greenhouse_months TEXT DEFAULT '[]',
                ground_months TEXT DEFAULT '[]',
                harvest_months TEXT DEFAULT '[]',
                greenhouse_compatible BOOLEAN NOT NULL DEFAULT 0,
                default_color TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS plantings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                garden_id INTEGER NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
                seed_id INTEGER NOT NULL REFERENCES seeds(id),
                garden_bed_id INTEGER NOT NULL REFERENCES beds(id),
                start_segment INTEGER NOT NULL DEFAULT 0 CHECK (start_segment >= 0),
                segments_used INTEGER NOT NULL DEFAULT 1 CHECK (segments_used >= 1),
                method TEXT NOT NULL DEFAULT 'direct' CHECK (method IN ('direct','presow')),
                planned_presow_date TEXT,
                planned_date TEXT,
                planned_harvest_start TEXT,
                planned_harvest_end TEXT,
                actual_presow_date TEXT,
                actual_ground_date TEXT,
                actual_harvest_start TEXT,
                actual_harvest_end TEXT,
                color TEXT,
                status TEXT NOT NULL DEFAULT 'planned',
                notes TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_plantings_garden_bed
            ON plantings(garden_id, garden_bed_id)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS garden_tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                garden_id INTEGER NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
                title TEXT NOT NULL,
                due_date TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                notes TEXT
            )
        """)

    _run(work, commit=True)


def seed_defaults():
    """Create a default garden if none exists. Idempotent — skips if data exists."""
    def work(conn):
        existing = conn.execute("SELECT COUNT(*) FROM gardens").fetchone()[0]
        if existing == 0:
            conn.execute("INSERT INTO gardens (name) VALUES ('Moestuin')")

    _run(work, commit=True)


# ========================================
# Row conversion
# ========================================

def _months(value):
    if not value:
        return []
    try:
        return [int(m) for m in json.loads(value)]
    except (TypeError, ValueError):
        return []


def _db_value(column, value):
    """Python value → sqlite value for a column."""
    if column in DATE_COLUMNS:
        d = to_date(value)
        return d.isoformat() if d else None
    if column in MONTH_COLUMNS:
        return json.dumps(sorted(set(value or [])))
    if isinstance(value, bool):
        return int(value)
    return value


def row_to_bed(row):
    return Bed(
        id=row['id'], garden_id=row['garden_id'], name=row['name'],
        width_cm=row['width_cm'], length_cm=row['length_cm'],
        segments=row['segments'], is_greenhouse=bool(row['is_greenhouse']),
        sort_order=row['sort_order'],
    )


def row_to_seed(row):
    return Seed(
        id=row['id'], garden_id=row['garden_id'], name=row['name'],
        sowing_type=row['sowing_type'],
        presow_duration_weeks=row['presow_duration_weeks'],
        grow_duration_weeks=row['grow_duration_weeks'],
        harvest_duration_weeks=row['harvest_duration_weeks'],
        presow_months=_months(row['presow_months']),
        greenhouse_months=_months(row['greenhouse_months']),
        ground_months=_months(row['ground_months']),
        harvest_months=_months(row['harvest_months']),
        greenhouse_compatible=bool(row['greenhouse_compatible']),
        default_color=row['default_color'],
    )


def row_to_planting(row):
    values = {col: row[col] for col in PLANTING_COLUMNS}
    for col in DATE_COLUMNS & set(values):
        values[col] = to_date(values[col])
    return Planting(id=row['id'], garden_id=row['garden_id'], **values)


def row_to_task(row):
    return GardenTask(
        id=row['id'], garden_id=row['garden_id'], title=row['title'],
        due_date=to_date(row['due_date']), status=row['status'], notes=row['notes'],
    )


# ========================================
# Gardens
# ========================================

def get_gardens():
    """Retrieve all gardens."""
    rows = _run(lambda conn: conn.execute("SELECT * FROM gardens ORDER BY id").fetchall())
    return [Garden(id=r['id'], name=r['name'], created_at=r['created_at']) for r in rows]


def get_garden(garden_id):
    """Retrieve a single garden by ID."""
    row = _run(lambda conn: conn.execute(
        "SELECT * FROM gardens WHERE id = ?", (garden_id,)).fetchone())
    if not row:
        return None
    return Garden(id=row['id'], name=row['name'], created_at=row['created_at'])


def create_garden(name):
    """Create a garden. Returns (garden_id, None) or (None, error)."""
    try:
        garden_id = _run(lambda conn: conn.execute(
            "INSERT INTO gardens (name) VALUES (?)", (name,)).lastrowid, commit=True)
        return garden_id, None
    except sqlite3.Error as e:
        logger.warning("create_garden failed: %s", e)
        return None, f"Could not create garden: {e}"


# ========================================
# Beds
# ========================================

def list_beds(garden_id):
    """Retrieve the beds of a garden in display order."""
    rows = _run(lambda conn: conn.execute(
        "SELECT * FROM beds WHERE garden_id = ? ORDER BY sort_order, id", (garden_id,)).fetchall())
    return [row_to_bed(r) for r in rows]


def get_bed(bed_id):
    row = _run(lambda conn: conn.execute("SELECT * FROM beds WHERE id = ?", (bed_id,)).fetchone())
    return row_to_bed(row) if row else None


def create_bed(garden_id, name, segments=1, width_cm=0, length_cm=0,
               is_greenhouse=False, sort_order=0):
    """Create a bed. Returns (bed_id, None) or (None, error)."""
    if segments is None or segments < 1:
        return None, "A bed needs at least 1 segment."
    try:
        bed_id = _run(lambda conn: conn.execute(
            """INSERT INTO beds (garden_id, name, width_cm, length_cm, segments, is_greenhouse, sort_order)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (garden_id, name, width_cm, length_cm, segments, int(bool(is_greenhouse)), sort_order)
        ).lastrowid, commit=True)
        return bed_id, None
    except sqlite3.Error as e:
        logger.warning("create_bed failed: %s", e)
        return None, f"Could not create bed: {e}"


# ========================================
# Seeds
# ========================================

def list_seeds(garden_id):
    rows = _run(lambda conn: conn.execute(
        "SELECT * FROM seeds WHERE garden_id = ? ORDER BY name", (garden_id,)).fetchall())
    return [row_to_seed(r) for r in rows]


def get_seed(seed_id):
    row = _run(lambda conn: conn.execute("SELECT * FROM seeds WHERE id = ?", (seed_id,)).fetchone())
    return row_to_seed(row) if row else None


def create_seed(garden_id, name, **fields):
    """
    Create a seed.

    Args:
        garden_id: Owning garden.
        name: Seed name.
        **fields: Any of the seeds table columns (durations, months, flags).

    Returns:
        (seed_id, None) on success, or (None, error_message) on failure.
    """
    allowed = {
        'sowing_type', 'presow_duration_weeks', 'grow_duration_weeks', 'harvest_duration_weeks',
        'greenhouse_compatible', 'default_color',
    } | set(MONTH_COLUMNS)
    unknown = set(fields) - allowed
    if unknown:
        return None, f"Unknown seed fields: {', '.join(sorted(unknown))}"

    columns = ['garden_id', 'name'] + list(fields)
    values = [garden_id, name] + [_db_value(c, fields[c]) for c in fields]
    placeholders = ', '.join('?' for _ in columns)
    try:
        seed_id = _run(lambda conn: conn.execute(
            f"INSERT INTO seeds ({', '.join(columns)}) VALUES ({placeholders})", values
        ).lastrowid, commit=True)
        return seed_id, None
    except sqlite3.Error as e:
        logger.warning("create_seed failed: %s", e)
        return None, f"Could not create seed: {e}"


# ========================================
# Plantings
# ========================================

def list_plantings(garden_id):
    """Retrieve all plantings of a garden."""
    rows = _run(lambda conn: conn.execute(
        "SELECT * FROM plantings WHERE garden_id = ? ORDER BY id", (garden_id,)).fetchall())
    return [row_to_planting(r) for r in rows]


def get_planting(planting_id):
    row = _run(lambda conn: conn.execute(
        "SELECT * FROM plantings WHERE id = ?", (planting_id,)).fetchone())
    return row_to_planting(row) if row else None


def create_planting(garden_id, values):
    """
    Insert a planting.

    Args:
        garden_id: Owning garden.
        values: dict of planting columns (see PLANTING_COLUMNS).

    Returns:
        (Planting, None) on success, or (None, error_message) on failure.
    """
    unknown = set(values) - set(PLANTING_COLUMNS)
    if unknown:
        return None, f"Unknown planting fields: {', '.join(sorted(unknown))}"

    columns = ['garden_id'] + list(values)
    params = [garden_id] + [_db_value(c, values[c]) for c in values]
    placeholders = ', '.join('?' for _ in columns)

    def work(conn):
        planting_id = conn.execute(
            f"INSERT INTO plantings ({', '.join(columns)}) VALUES ({placeholders})", params
        ).lastrowid
        return conn.execute("SELECT * FROM plantings WHERE id = ?", (planting_id,)).fetchone()

    try:
        row = _run(work, commit=True)
        return row_to_planting(row), None
    except sqlite3.Error as e:
        logger.warning("create_planting failed: %s", e)
        return None, f"Could not create planting: {e}"


def update_planting(planting_id, patch):
    """
    Partial update of a single planting.

    Only columns in PLANTING_COLUMNS may be patched. An empty patch returns
    the current record unchanged.

    Returns:
        (Planting, None) on success, or (None, error_message) on failure.
    """
    unknown = set(patch) - set(PLANTING_COLUMNS)
    if unknown:
        return None, f"Unknown planting fields: {', '.join(sorted(unknown))}"

    assignments = ', '.join(f"{c} = ?" for c in patch)
    params = [_db_value(c, patch[c]) for c in patch] + [planting_id]

    def work(conn):
        if patch:
            conn.execute(
                f"UPDATE plantings SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                params
            )
        return conn.execute("SELECT * FROM plantings WHERE id = ?", (planting_id,)).fetchone()

    try:
        row = _run(work, commit=True)
    except sqlite3.Error as e:
        logger.warning("update_planting %s failed: %s", planting_id, e)
        return None, f"Could not update planting: {e}"
    if not row:
        return None, f"Planting {planting_id} not found."
    return row_to_planting(row), None


def delete_planting(planting_id):
    """Delete a planting. Returns (True, None) or (False, error)."""
    try:
        deleted = _run(lambda conn: conn.execute(
            "DELETE FROM plantings WHERE id = ?", (planting_id,)).rowcount, commit=True)
    except sqlite3.Error as e:
        logger.warning("delete_planting %s failed: %s", planting_id, e)
        return False, f"Could not delete planting: {e}"
    if not deleted:
        return False, f"Planting {planting_id} not found."
    return True, None


# ========================================
# Garden tasks
# ========================================

def list_garden_tasks(garden_id):
    rows = _run(lambda conn: conn.execute(
        "SELECT * FROM garden_tasks WHERE garden_id = ? ORDER BY due_date, id", (garden_id,)).fetchall())
    return [row_to_task(r) for r in rows]


def create_garden_task(garden_id, title, due_date=None, notes=None):
    """Create a garden task. Returns (task_id, None) or (None, error)."""
    try:
        task_id = _run(lambda conn: conn.execute(
            "INSERT INTO garden_tasks (garden_id, title, due_date, notes) VALUES (?, ?, ?, ?)",
            (garden_id, title, _db_value('due_date', due_date), notes)
        ).lastrowid, commit=True)
        return task_id, None
    except sqlite3.Error as e:
        logger.warning("create_garden_task failed: %s", e)
        return None, f"Could not create task: {e}"
