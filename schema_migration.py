#!/usr/bin/env python3
"""
Schema Migration Script for LifeWeeks databases
Brings databases created by older releases up to date by adding the columns
introduced since (narratives, user timezones, update timestamps).
"""

import sqlite3
import logging
import os
import sys
from typing import Dict, Any, List

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Columns every table must have, with the definition used when adding them.
# ALTER TABLE cannot add a column with a non-constant default, so timestamps
# are added bare and backfilled afterwards.
REQUIRED_COLUMNS = {
    "users": {
        "id": "TEXT",
        "email": "TEXT",
        "birthdate": "TEXT",
        "timezone": "TEXT DEFAULT 'UTC'",
        "created_at": "TIMESTAMP",
        "updated_at": "TIMESTAMP",
    },
    "personal_events": {
        "id": "TEXT",
        "user_id": "TEXT",
        "date": "TEXT",
        "title": "TEXT",
        "description": "TEXT",
        "category": "TEXT",
        "sentiment": "TEXT DEFAULT 'neutral'",
        "narrative": "TEXT",
        "created_at": "TIMESTAMP",
        "updated_at": "TIMESTAMP",
    },
}

BACKFILL_STATEMENTS = [
    "UPDATE users SET updated_at = COALESCE(updated_at, created_at, CURRENT_TIMESTAMP) WHERE updated_at IS NULL",
    "UPDATE users SET timezone = 'UTC' WHERE timezone IS NULL OR timezone = ''",
    "UPDATE personal_events SET updated_at = COALESCE(updated_at, created_at, CURRENT_TIMESTAMP) WHERE updated_at IS NULL",
    "UPDATE personal_events SET sentiment = 'neutral' WHERE sentiment IS NULL OR sentiment = ''",
]


def get_existing_columns(cursor, table_name: str) -> List[str]:
    cursor.execute(f"PRAGMA table_info({table_name})")
    return [row[1] for row in cursor.fetchall()]


def check_database_schema(db_path: str) -> Dict[str, Any]:
    """Check the current database schema and identify missing columns"""
    try:
        conn = sqlite3.connect(db_path, timeout=30.0)
        cursor = conn.cursor()

        cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in cursor.fetchall()}

        absent_tables = [name for name in REQUIRED_COLUMNS if name not in tables]
        if absent_tables:
            conn.close()
            return {"exists": False, "error": f"missing tables: {', '.join(absent_tables)}"}

        missing_columns = {}
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = set(get_existing_columns(cursor, table_name))
            missing = [column for column in required if column not in existing]
            if missing:
                missing_columns[table_name] = missing

        cursor.execute("SELECT COUNT(*) FROM personal_events")
        total_events = cursor.fetchone()[0]

        cursor.execute("SELECT COUNT(*) FROM users")
        total_users = cursor.fetchone()[0]

        conn.close()

        return {
            "exists": True,
            "missing_columns": missing_columns,
            "total_events": total_events,
            "total_users": total_users,
            "needs_migration": bool(missing_columns),
        }

    except Exception as e:
        logger.error(f"Failed to check database schema: {e}")
        return {"exists": False, "error": str(e)}


def fix_database_schema(db_path: str) -> Dict[str, Any]:
    """Fix database schema by adding missing columns and backfilling their values"""
    try:
        logger.info(f"🔧 Starting database schema fix for: {db_path}")

        conn = sqlite3.connect(db_path, timeout=30.0)
        cursor = conn.cursor()

        columns_added = 0
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = set(get_existing_columns(cursor, table_name))
            for column_name, column_def in required.items():
                if column_name in existing:
                    continue
                try:
                    cursor.execute(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {column_def}")
                    logger.info(f"✅ Added column: {table_name}.{column_name}")
                    columns_added += 1
                except sqlite3.OperationalError as e:
                    logger.warning(f"⚠️ Could not add column {table_name}.{column_name}: {e}")

        rows_backfilled = 0
        for statement in BACKFILL_STATEMENTS:
            try:
                cursor.execute(statement)
                rows_backfilled += cursor.rowcount
            except sqlite3.OperationalError as e:
                logger.warning(f"Backfill failed: {e}")

        essential_indexes = [
            "CREATE INDEX IF NOT EXISTS idx_personal_events_user_id ON personal_events(user_id)",
            "CREATE INDEX IF NOT EXISTS idx_personal_events_user_date ON personal_events(user_id, date)",
        ]
        for index_sql in essential_indexes:
            try:
                cursor.execute(index_sql)
            except sqlite3.OperationalError as e:
                logger.warning(f"Could not create index: {e}")

        conn.commit()
        conn.close()

        logger.info(f"✅ Schema migration completed: {columns_added} columns added, {rows_backfilled} rows backfilled")

        return {
            "success": True,
            "columns_added": columns_added,
            "rows_backfilled": rows_backfilled,
        }

    except Exception as e:
        logger.error(f"❌ Schema migration failed: {e}")
        return {
            "success": False,
            "error": str(e),
            "columns_added": 0,
            "rows_backfilled": 0,
        }


def migrate_if_needed(db_path: str) -> Dict[str, Any]:
    """Check the schema and fix it only when columns are missing"""
    schema_info = check_database_schema(db_path)
    if not schema_info.get("exists", False):
        return {"success": False, "error": schema_info.get("error", "Unknown error"), "columns_added": 0}
    if not schema_info["needs_migration"]:
        return {"success": True, "columns_added": 0, "rows_backfilled": 0}
    return fix_database_schema(db_path)


def main():
    """Main function for command-line usage"""
    if len(sys.argv) < 2:
        print("Usage: python schema_migration.py <database_path>")
        sys.exit(1)

    db_path = sys.argv[1]

    if not os.path.exists(db_path):
        logger.error(f"Database file does not exist: {db_path}")
        sys.exit(1)

    logger.info("🔍 Checking current database schema...")
    schema_info = check_database_schema(db_path)

    if not schema_info.get("exists", False):
        logger.error(f"Database check failed: {schema_info.get('error', 'Unknown error')}")
        sys.exit(1)

    logger.info("📊 Database status:")
    logger.info(f"  - Users: {schema_info['total_users']}")
    logger.info(f"  - Personal events: {schema_info['total_events']}")
    logger.info(f"  - Missing columns: {schema_info['missing_columns']}")
    logger.info(f"  - Needs migration: {schema_info['needs_migration']}")

    if not schema_info['needs_migration']:
        logger.info("✅ Database schema is already up to date!")
        return

    logger.info("🚀 Starting database schema migration...")
    result = fix_database_schema(db_path)

    if result['success']:
        logger.info("🎉 Database migration completed successfully!")
        logger.info(f"  - Columns added: {result['columns_added']}")
        logger.info(f"  - Rows backfilled: {result['rows_backfilled']}")
    else:
        logger.error(f"💥 Migration failed: {result['error']}")
        sys.exit(1)


if __name__ == "__main__":
    main()
