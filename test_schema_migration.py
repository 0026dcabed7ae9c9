#!/usr/bin/env python3
"""
Test the schema migration against a database created before narratives,
timezones and update timestamps existed.
"""

import os
import sqlite3
import tempfile
import logging

from schema_migration import check_database_schema, fix_database_schema, migrate_if_needed

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_legacy_database(db_path):
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    cursor.execute("""
        CREATE TABLE users (
            id TEXT PRIMARY KEY,
            email TEXT UNIQUE NOT NULL,
            birthdate TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    cursor.execute("""
        CREATE TABLE personal_events (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            date TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            category TEXT NOT NULL,
            sentiment TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    cursor.execute("INSERT INTO users (id, email, birthdate) VALUES ('u1', 'alex@example.com', '1990-06-15')")
    cursor.execute("""
        INSERT INTO personal_events (id, user_id, date, title, description, category, sentiment)
        VALUES ('e1', 'u1', '2020-01-01', 'Old event', 'Before narratives', 'Personal', NULL)
    """)
    conn.commit()
    conn.close()


class TestSchemaMigration:

    def setup_method(self):
        with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as tmp_file:
            self.db_path = tmp_file.name
        create_legacy_database(self.db_path)
        logger.info(f"🧪 Created legacy database: {self.db_path}")

    def teardown_method(self):
        if os.path.exists(self.db_path):
            os.unlink(self.db_path)

    def test_detects_missing_columns(self):
        schema_info = check_database_schema(self.db_path)

        assert schema_info["exists"]
        assert schema_info["needs_migration"]
        assert schema_info["missing_columns"]["users"] == ["timezone", "updated_at"]
        assert schema_info["missing_columns"]["personal_events"] == ["narrative", "updated_at"]
        assert schema_info["total_events"] == 1

    def test_fix_adds_columns_and_backfills(self):
        result = fix_database_schema(self.db_path)

        assert result["success"]
        assert result["columns_added"] == 4
        assert not check_database_schema(self.db_path)["needs_migration"]

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        user = conn.execute("SELECT timezone, updated_at FROM users WHERE id = 'u1'").fetchone()
        event = conn.execute("SELECT sentiment, narrative, updated_at FROM personal_events WHERE id = 'e1'").fetchone()
        conn.close()

        assert user["timezone"] == "UTC"
        assert user["updated_at"] is not None
        assert event["sentiment"] == "neutral"
        assert event["narrative"] is None
        assert event["updated_at"] is not None

    def test_migrate_if_needed_is_idempotent(self):
        assert migrate_if_needed(self.db_path)["columns_added"] == 4
        second = migrate_if_needed(self.db_path)
        assert second["success"]
        assert second["columns_added"] == 0

    def test_missing_tables_reported(self):
        with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as tmp_file:
            empty_path = tmp_file.name
        try:
            schema_info = check_database_schema(empty_path)
            assert not schema_info["exists"]
            assert "personal_events" in schema_info["error"]
        finally:
            os.unlink(empty_path)
