"""
Database layer for the LifeWeeks backend.
Resolves the SQLite path for local and Railway deployments and owns the schema.
"""

import os
import sqlite3
import logging
from pathlib import Path
from typing import Dict, Any

logger = logging.getLogger(__name__)

RAILWAY_DATA_DIR = "/app/data"
DEFAULT_DATABASE_FILE = "lifeweeks.db"


def is_railway_environment():
    """Check if running on Railway - determines storage strategy"""
    return bool(os.getenv("RAILWAY_ENVIRONMENT") or os.getenv("RAILWAY_PROJECT_ID") or os.getenv("RAILWAY_DEPLOYMENT_ID"))


def get_database_path() -> str:
    """Get appropriate database path for environment"""
    explicit_path = os.getenv("DATABASE_PATH")
    if explicit_path:
        return explicit_path
    if is_railway_environment():
        return f"{RAILWAY_DATA_DIR}/{DEFAULT_DATABASE_FILE}"
    return DEFAULT_DATABASE_FILE


def ensure_data_directory():
    """Ensure the directory holding the database file exists"""
    parent = Path(get_database_path()).parent
    if str(parent) not in ("", "."):
        parent.mkdir(parents=True, exist_ok=True)


def get_storage_info() -> Dict[str, Any]:
    """Get storage configuration info"""
    return {
        "platform": "Railway" if is_railway_environment() else "Local",
        "storage": "Persistent Volume" if is_railway_environment() else "Local File",
        "path": get_database_path(),
        "persistent": is_railway_environment(),
    }


def get_db_connection() -> sqlite3.Connection:
    """Get SQLite database connection with persistent path"""
    ensure_data_directory()
    db_path = get_database_path()

    try:
        conn = sqlite3.connect(db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        conn.execute("PRAGMA foreign_keys = ON")
        return conn
    except Exception as e:
        logger.error(f"Database connection failed at {db_path}: {e}")
        raise


def init_database() -> bool:
    """Create all tables and indexes if they do not exist yet"""
    db_path = get_database_path()
    logger.info(f"🔧 Initializing database at: {db_path}")

    try:
        conn = get_db_connection()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT UNIQUE NOT NULL,
                birthdate TEXT NOT NULL,
                timezone TEXT DEFAULT 'UTC',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                token TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                expires_at TIMESTAMP NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS personal_events (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                date TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                category TEXT NOT NULL,
                sentiment TEXT NOT NULL DEFAULT 'neutral',
                narrative TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS historical_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                date TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                category TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(date, title)
            )
        """)

        create_indexes(cursor)

        conn.commit()
        cursor.close()
        conn.close()

        logger.info("✅ Database initialized successfully")
        return True

    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        return False


def create_indexes(cursor):
    """Create database indexes for the timeline queries"""
    try:
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_personal_events_user_id ON personal_events(user_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_personal_events_user_date ON personal_events(user_id, date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_sessions_expires_at ON sessions(expires_at)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_historical_events_date ON historical_events(date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_historical_events_category ON historical_events(category)")
    except Exception as e:
        logger.warning(f"⚠️ Some indexes may already exist or failed to create: {e}")


def get_table_counts() -> Dict[str, int]:
    """Row counts for every application table"""
    conn = get_db_connection()
    cursor = conn.cursor()
    try:
        counts = {}
        for table in ("users", "sessions", "personal_events", "historical_events"):
            cursor.execute(f"SELECT COUNT(*) FROM {table}")
            counts[table] = cursor.fetchone()[0]
        return counts
    finally:
        cursor.close()
        conn.close()
