#!/usr/bin/env python3
"""
Tests for user sessions, personal event storage and sample data seeding
against a temporary SQLite database.
"""

from datetime import datetime, timedelta

import pytest

from database import get_db_connection
from event_store import EventManager, EventFilter, EventQueryBuilder
from user_sessions import SessionManager, DuplicateUserError
from sample_data import (
    SAMPLE_EVENTS, HISTORICAL_EVENTS_DATA, seed_sample_events,
    populate_historical_events, get_historical_events_count
)


def event_payload(**overrides):
    payload = {"title": "Trip", "description": "Went somewhere", "date": "2020-01-01", "category": "Travel"}
    payload.update(overrides)
    return payload


class TestSessionManager:

    @pytest.fixture(autouse=True)
    def _database(self, temp_db):
        self.sessions = SessionManager()

    def test_create_user_normalises_email(self):
        user = self.sessions.create_user("  Alex@Example.COM ", "1990-06-15", "Europe/London")
        assert user["email"] == "alex@example.com"
        assert user["timezone"] == "Europe/London"

    def test_duplicate_email_rejected(self):
        self.sessions.create_user("alex@example.com", "1990-06-15")
        with pytest.raises(DuplicateUserError):
            self.sessions.create_user("ALEX@example.com", "1991-01-01")

    def test_invalid_timezone_rejected(self):
        with pytest.raises(ValueError):
            self.sessions.create_user("alex@example.com", "1990-06-15", "Mars/Olympus")

    def test_session_round_trip_and_revoke(self):
        user = self.sessions.create_user("alex@example.com", "1990-06-15")
        token = self.sessions.create_session(user["id"])

        assert self.sessions.resolve_session(token)["id"] == user["id"]
        assert self.sessions.resolve_session("not-a-token") is None
        assert self.sessions.resolve_session(None) is None

        assert self.sessions.revoke_session(token)
        assert self.sessions.resolve_session(token) is None

    def test_expired_session_is_deleted(self):
        user = self.sessions.create_user("alex@example.com", "1990-06-15")
        token = self.sessions.create_session(user["id"])

        conn = get_db_connection()
        conn.execute("UPDATE sessions SET expires_at = ? WHERE token = ?",
                     ((datetime.utcnow() - timedelta(minutes=1)).isoformat(), token))
        conn.commit()
        conn.close()

        assert self.sessions.resolve_session(token) is None
        conn = get_db_connection()
        remaining = conn.execute("SELECT COUNT(*) FROM sessions").fetchone()[0]
        conn.close()
        assert remaining == 0

    def test_new_session_purges_expired_rows(self):
        user = self.sessions.create_user("alex@example.com", "1990-06-15")
        stale = self.sessions.create_session(user["id"])

        conn = get_db_connection()
        conn.execute("UPDATE sessions SET expires_at = ? WHERE token = ?",
                     ((datetime.utcnow() - timedelta(days=1)).isoformat(), stale))
        conn.commit()
        conn.close()

        fresh = self.sessions.create_session(user["id"])

        conn = get_db_connection()
        tokens = [row["token"] for row in conn.execute("SELECT token FROM sessions")]
        conn.close()
        assert tokens == [fresh]

    def test_update_user(self):
        user = self.sessions.create_user("alex@example.com", "1990-06-15")
        updated = self.sessions.update_user(user["id"], birthdate="1991-02-03", timezone_name="Asia/Tokyo")
        assert updated["birthdate"] == "1991-02-03"
        assert updated["timezone"] == "Asia/Tokyo"


class TestEventManager:

    @pytest.fixture(autouse=True)
    def _database(self, temp_db):
        sessions = SessionManager()
        self.user_id = sessions.create_user("alex@example.com", "1990-06-15")["id"]
        self.other_id = sessions.create_user("sam@example.com", "1985-01-01")["id"]
        self.manager = EventManager()

    def test_create_and_get(self):
        event = self.manager.create_event(self.user_id, event_payload(), "positive")

        assert event["user_id"] == self.user_id
        assert event["sentiment"] == "positive"
        assert event["narrative"] is None
        assert self.manager.get_event(event["id"], self.user_id) == event

    def test_events_scoped_to_owner(self):
        event = self.manager.create_event(self.user_id, event_payload(), "neutral")

        assert self.manager.get_event(event["id"], self.other_id) is None
        assert self.manager.list_events(self.other_id) == []
        assert not self.manager.update_event(event["id"], self.other_id, {"title": "Hijacked"})
        assert not self.manager.delete_event(event["id"], self.other_id)
        assert self.manager.get_events_by_ids([event["id"]], self.other_id) == []
        assert self.manager.get_event(event["id"], self.user_id)["title"] == "Trip"

    def test_update_and_delete(self):
        event = self.manager.create_event(self.user_id, event_payload(), "neutral")

        assert self.manager.update_event(event["id"], self.user_id, {"title": "Road trip", "sentiment": "positive"})
        updated = self.manager.get_event(event["id"], self.user_id)
        assert updated["title"] == "Road trip"
        assert updated["sentiment"] == "positive"
        assert updated["description"] == "Went somewhere"

        assert self.manager.delete_event(event["id"], self.user_id)
        assert self.manager.get_event(event["id"], self.user_id) is None

    def test_filters(self):
        self.manager.create_event(self.user_id, event_payload(title="Japan", date="2021-10-01"), "positive")
        self.manager.create_event(self.user_id, event_payload(title="Promotion", category="Career",
                                                              date="2021-03-10"), "positive")
        self.manager.create_event(self.user_id, event_payload(title="Cancelled flight", date="2022-07-15",
                                                              description="Strike ruined it"), "negative")

        def titles(**kwargs):
            return [e["title"] for e in self.manager.list_events(self.user_id, EventFilter(**kwargs))]

        assert titles() == ["Promotion", "Japan", "Cancelled flight"]
        assert titles(categories=["Travel"]) == ["Japan", "Cancelled flight"]
        assert titles(sentiments=["negative"]) == ["Cancelled flight"]
        assert titles(start_date="2021-03-10", end_date="2021-10-01") == ["Promotion", "Japan"]
        assert titles(search="STRIKE") == ["Cancelled flight"]
        assert titles(sort_by="category") == ["Promotion", "Japan", "Cancelled flight"]
        assert titles(sort_by="sentiment") == ["Cancelled flight", "Promotion", "Japan"]
        assert titles(limit=1, offset=1) == ["Japan"]
        assert titles(offset=2) == ["Cancelled flight"]

    def test_search_wildcards_match_literally(self):
        self.manager.create_event(self.user_id, event_payload(title="Moved house"), "neutral")
        self.manager.create_event(self.user_id, event_payload(title="Got 100% on exam"), "positive")
        self.manager.create_event(self.user_id, event_payload(title="snake_case rename", description="C:\\temp"), "neutral")

        def titles(term):
            return [e["title"] for e in self.manager.list_events(self.user_id, EventFilter(search=term))]

        assert titles("%") == ["Got 100% on exam"]
        assert titles("_") == ["snake_case rename"]
        assert titles("\\") == ["snake_case rename"]

    def test_query_builder_always_scopes_user(self):
        where, params = EventQueryBuilder.build_where_clause("u1", EventFilter(categories=["Career", "Travel"]))
        assert where.startswith("user_id = ?")
        assert params == ["u1", "Career", "Travel"]

    def test_narrative_and_counts(self):
        event = self.manager.create_event(self.user_id, event_payload(), "negative")

        assert self.manager.store_narrative(event["id"], self.user_id, "A story")
        assert self.manager.get_event(event["id"], self.user_id)["narrative"] == "A story"
        assert not self.manager.store_narrative(event["id"], self.other_id, "Not mine")

        assert self.manager.user_has_events(self.user_id)
        assert not self.manager.user_has_events(self.other_id)
        assert self.manager.count_events(self.user_id) == 1
        assert self.manager.sentiment_breakdown(self.user_id) == {"positive": 0, "negative": 1, "neutral": 0}


class TestSampleData:

    @pytest.fixture(autouse=True)
    def _database(self, temp_db):
        self.user_id = SessionManager().create_user("alex@example.com", "1990-06-15")["id"]
        self.manager = EventManager()

    def test_seed_once(self):
        result = seed_sample_events(self.user_id, self.manager)
        assert result["seeded"]
        assert result["events_created"] == len(SAMPLE_EVENTS) == 21
        assert self.manager.count_events(self.user_id) == 21

        again = seed_sample_events(self.user_id, self.manager)
        assert again == {"message": "User already has events", "seeded": False, "events_created": 0}
        assert self.manager.count_events(self.user_id) == 21

    def test_populate_historical_only_when_empty(self):
        assert get_historical_events_count() == 0

        result = populate_historical_events()
        assert result["success"]
        assert result["count"] == len(HISTORICAL_EVENTS_DATA) == 36

        again = populate_historical_events()
        assert again["success"]
        assert again["count"] == 0
        assert get_historical_events_count() == 36
