"""
User profiles and cookie sessions.
Sessions are opaque random tokens stored in SQLite with an expiry.
"""

import os
import uuid
import sqlite3
import secrets
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

import pytz

from database import get_db_connection

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "lifeweeks_session"
DEFAULT_SESSION_TTL_DAYS = 30


class DuplicateUserError(Exception):
    """Raised when a profile already exists for an email address"""


def validate_timezone(timezone_str: str) -> bool:
    """Validate timezone string"""
    if not timezone_str:
        return False
    try:
        pytz.timezone(timezone_str)
        return True
    except pytz.UnknownTimeZoneError:
        return False


def get_session_ttl() -> timedelta:
    try:
        days = int(os.getenv("SESSION_TTL_DAYS", DEFAULT_SESSION_TTL_DAYS))
    except ValueError:
        logger.warning("Invalid SESSION_TTL_DAYS, using default")
        days = DEFAULT_SESSION_TTL_DAYS
    return timedelta(days=days)


class SessionManager:
    """Creates users and maps session tokens to them"""

    def create_user(self, email: str, birthdate: str, timezone_name: str = "UTC") -> Dict[str, Any]:
        if not validate_timezone(timezone_name):
            raise ValueError(f"Unknown timezone: {timezone_name}")

        user_id = str(uuid.uuid4())
        conn = get_db_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO users (id, email, birthdate, timezone)
                VALUES (?, ?, ?, ?)
            """, (user_id, email.strip().lower(), birthdate, timezone_name))
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise DuplicateUserError(f"A profile already exists for {email}")
        finally:
            cursor.close()
            conn.close()

        logger.info(f"👤 Created user {user_id}")
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("""
                SELECT id, email, birthdate, timezone, created_at, updated_at
                FROM users WHERE id = ?
            """, (user_id,))
            row = cursor.fetchone()
            return dict(row) if row else None
        finally:
            cursor.close()
            conn.close()

    def update_user(self, user_id: str, birthdate: str = None, timezone_name: str = None) -> Optional[Dict[str, Any]]:
        updates = []
        params = []

        if birthdate is not None:
            updates.append("birthdate = ?")
            params.append(birthdate)

        if timezone_name is not None:
            if not validate_timezone(timezone_name):
                raise ValueError(f"Unknown timezone: {timezone_name}")
            updates.append("timezone = ?")
            params.append(timezone_name)

        if updates:
            updates.append("updated_at = CURRENT_TIMESTAMP")
            params.append(user_id)
            conn = get_db_connection()
            cursor = conn.cursor()
            try:
                cursor.execute(f"UPDATE users SET {', '.join(updates)} WHERE id = ?", params)
                conn.commit()
            finally:
                cursor.close()
                conn.close()

        return self.get_user(user_id)

    def create_session(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        expires_at = datetime.utcnow() + get_session_ttl()

        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("DELETE FROM sessions WHERE expires_at <= ?", (datetime.utcnow().isoformat(),))
            if cursor.rowcount > 0:
                logger.info(f"🧹 Purged {cursor.rowcount} expired sessions")
            cursor.execute("""
                INSERT INTO sessions (token, user_id, expires_at)
                VALUES (?, ?, ?)
            """, (token, user_id, expires_at.isoformat()))
            conn.commit()
        finally:
            cursor.close()
            conn.close()

        return token

    def resolve_session(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """User for a session token; unknown or expired tokens yield None"""
        if not token:
            return None

        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("""
                SELECT s.expires_at, u.id, u.email, u.birthdate, u.timezone, u.created_at, u.updated_at
                FROM sessions s
                JOIN users u ON u.id = s.user_id
                WHERE s.token = ?
            """, (token,))
            row = cursor.fetchone()

            if not row:
                return None

            if datetime.fromisoformat(row["expires_at"]) <= datetime.utcnow():
                cursor.execute("DELETE FROM sessions WHERE token = ?", (token,))
                conn.commit()
                logger.info(f"Expired session removed for user {row['id']}")
                return None

            user = dict(row)
            user.pop("expires_at")
            return user
        finally:
            cursor.close()
            conn.close()

    def revoke_session(self, token: str) -> bool:
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("DELETE FROM sessions WHERE token = ?", (token,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            cursor.close()
            conn.close()
