"""
Personal event storage.
Every query is scoped by user_id so a user can only see and modify their own events.
"""

import uuid
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple

from database import get_db_connection
from life_timeline import sentiment_breakdown

logger = logging.getLogger(__name__)

EVENT_COLUMNS = "id, user_id, date, title, description, category, sentiment, narrative, created_at, updated_at"
SORT_COLUMNS = {
    "date": "date ASC, created_at ASC",
    "category": "category ASC, date ASC",
    "sentiment": "sentiment ASC, date ASC",
}
UPDATABLE_FIELDS = ("date", "title", "description", "category", "sentiment")


def escape_like(term: str) -> str:
    """Make % and _ match literally inside a LIKE pattern"""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class EventFilter:
    """Filters from the advanced filter panel"""
    categories: List[str] = field(default_factory=list)
    sentiments: List[str] = field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    search: Optional[str] = None
    sort_by: str = "date"
    limit: Optional[int] = None
    offset: int = 0


class EventQueryBuilder:
    """Utility class for building filtered event queries"""

    @staticmethod
    def build_where_clause(user_id: str, event_filter: EventFilter) -> Tuple[str, list]:
        conditions = ["user_id = ?"]
        params: list = [user_id]

        if event_filter.categories:
            placeholders = ", ".join("?" for _ in event_filter.categories)
            conditions.append(f"category IN ({placeholders})")
            params.extend(event_filter.categories)

        if event_filter.sentiments:
            placeholders = ", ".join("?" for _ in event_filter.sentiments)
            conditions.append(f"sentiment IN ({placeholders})")
            params.extend(event_filter.sentiments)

        if event_filter.start_date:
            conditions.append("date >= ?")
            params.append(event_filter.start_date)

        if event_filter.end_date:
            conditions.append("date <= ?")
            params.append(event_filter.end_date)

        if event_filter.search:
            conditions.append("(LOWER(title) LIKE ? ESCAPE '\\' OR LOWER(description) LIKE ? ESCAPE '\\')")
            term = f"%{escape_like(event_filter.search.lower())}%"
            params.extend([term, term])

        return " AND ".join(conditions), params

    @staticmethod
    def build_query(user_id: str, event_filter: EventFilter) -> Tuple[str, list]:
        where_clause, params = EventQueryBuilder.build_where_clause(user_id, event_filter)
        order_by = SORT_COLUMNS.get(event_filter.sort_by, SORT_COLUMNS["date"])
        query = f"SELECT {EVENT_COLUMNS} FROM personal_events WHERE {where_clause} ORDER BY {order_by}"

        if event_filter.limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([event_filter.limit, event_filter.offset])
        elif event_filter.offset > 0:
            query += " LIMIT -1 OFFSET ?"
            params.append(event_filter.offset)

        return query, params


class EventManager:
    """Provides full CRUD operations for personal events"""

    def create_event(self, user_id: str, payload: Dict[str, Any], sentiment: str) -> Dict[str, Any]:
        event_id = str(uuid.uuid4())
        conn = get_db_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO personal_events (id, user_id, date, title, description, category, sentiment)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (event_id, user_id, payload["date"], payload["title"], payload["description"],
                  payload["category"], sentiment))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        return self.get_event(event_id, user_id)

    def create_events(self, user_id: str, events: List[Dict[str, Any]]) -> int:
        """Insert several events with preset sentiments in one transaction"""
        conn = get_db_connection()
        cursor = conn.cursor()

        try:
            cursor.executemany("""
                INSERT INTO personal_events (id, user_id, date, title, description, category, sentiment)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                (str(uuid.uuid4()), user_id, e["date"], e["title"], e["description"], e["category"], e["sentiment"])
                for e in events
            ])
            conn.commit()
            return len(events)
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def get_event(self, event_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(f"SELECT {EVENT_COLUMNS} FROM personal_events WHERE id = ? AND user_id = ?",
                           (event_id, user_id))
            row = cursor.fetchone()
            return dict(row) if row else None
        finally:
            cursor.close()
            conn.close()

    def get_events_by_ids(self, event_ids: List[str], user_id: str) -> List[Dict[str, Any]]:
        if not event_ids:
            return []
        placeholders = ", ".join("?" for _ in event_ids)
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(f"""
                SELECT {EVENT_COLUMNS} FROM personal_events
                WHERE user_id = ? AND id IN ({placeholders})
                ORDER BY date ASC
            """, [user_id, *event_ids])
            return [dict(row) for row in cursor.fetchall()]
        finally:
            cursor.close()
            conn.close()

    def list_events(self, user_id: str, event_filter: EventFilter = None) -> List[Dict[str, Any]]:
        query, params = EventQueryBuilder.build_query(user_id, event_filter or EventFilter())
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]
        finally:
            cursor.close()
            conn.close()

    def update_event(self, event_id: str, user_id: str, changes: Dict[str, Any]) -> bool:
        """Apply the given field changes; False when the event is not the user's"""
        conn = get_db_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT id FROM personal_events WHERE id = ? AND user_id = ?", (event_id, user_id))
            if not cursor.fetchone():
                return False

            updates = []
            params = []
            for column in UPDATABLE_FIELDS:
                if changes.get(column) is not None:
                    updates.append(f"{column} = ?")
                    params.append(changes[column])

            updates.append("updated_at = CURRENT_TIMESTAMP")
            params.extend([event_id, user_id])
            cursor.execute(f"""
                UPDATE personal_events SET {', '.join(updates)}
                WHERE id = ? AND user_id = ?
            """, params)

            conn.commit()
            return True

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def delete_event(self, event_id: str, user_id: str) -> bool:
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("DELETE FROM personal_events WHERE id = ? AND user_id = ?", (event_id, user_id))
            affected_rows = cursor.rowcount
            conn.commit()
            return affected_rows > 0
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def store_narrative(self, event_id: str, user_id: str, narrative: str) -> bool:
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("""
                UPDATE personal_events SET narrative = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND user_id = ?
            """, (narrative, event_id, user_id))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            cursor.close()
            conn.close()

    def user_has_events(self, user_id: str) -> bool:
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT 1 FROM personal_events WHERE user_id = ? LIMIT 1", (user_id,))
            return cursor.fetchone() is not None
        finally:
            cursor.close()
            conn.close()

    def count_events(self, user_id: str) -> int:
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT COUNT(*) FROM personal_events WHERE user_id = ?", (user_id,))
            return cursor.fetchone()[0]
        finally:
            cursor.close()
            conn.close()

    def sentiment_breakdown(self, user_id: str) -> Dict[str, int]:
        conn = get_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT sentiment FROM personal_events WHERE user_id = ?", (user_id,))
            return sentiment_breakdown([dict(row) for row in cursor.fetchall()])
        finally:
            cursor.close()
            conn.close()
