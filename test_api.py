"""
API Tests

HTTP routes exercised through TestClient with offline AI and Wikipedia services.
Run with: pytest test_api.py -v
"""

import inspect
from unittest.mock import Mock

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from main import app, get_ai_services, get_current_user
from user_sessions import SESSION_COOKIE_NAME
from conftest import register

EVENT = {"title": "Got promoted", "description": "Promoted to senior engineer, so happy and proud",
         "date": "2021-03-10", "category": "Career"}

PROTECTED_ROUTES = [
    ("get", "/api/me"),
    ("put", "/api/me"),
    ("post", "/api/logout"),
    ("get", "/api/events"),
    ("post", "/api/events"),
    ("get", "/api/events/some-id"),
    ("put", "/api/events/some-id"),
    ("delete", "/api/events/some-id"),
    ("post", "/api/sentiment"),
    ("get", "/api/timeline"),
    ("get", "/api/timeline/weeks/1"),
    ("get", "/api/chapters"),
    ("get", "/api/anniversaries"),
    ("get", "/api/insights"),
    ("get", "/api/historical-events"),
    ("post", "/api/narrate"),
    ("post", "/api/generate-art"),
    ("get", "/api/populate-historical"),
    ("post", "/api/populate-historical"),
    ("get", "/api/seed-data"),
    ("post", "/api/seed-data"),
]


# -----------------------------------------------------------------------------
# Service surface
# -----------------------------------------------------------------------------


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_detailed_health_reports_configuration(client, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    data = client.get("/health/detailed").json()

    assert data["status"] == "healthy"
    assert data["configuration"]["openai_configured"] is False
    assert data["stats"]["users"] == 0


def test_root_lists_endpoints(client):
    assert "/api/timeline" in client.get("/").json()["endpoints"]


def test_api_handlers_run_in_threadpool():
    handlers = [route.endpoint for route in app.routes
                if isinstance(route, APIRoute) and route.path.startswith("/api/")]

    assert len(handlers) == len(PROTECTED_ROUTES) + 1
    assert not [handler.__name__ for handler in handlers if inspect.iscoroutinefunction(handler)]
    assert not inspect.iscoroutinefunction(get_current_user)


# -----------------------------------------------------------------------------
# Sessions
# -----------------------------------------------------------------------------


@pytest.mark.parametrize("method,path", PROTECTED_ROUTES)
def test_routes_require_session(client, method, path):
    response = getattr(client, method)(path)
    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


def test_unknown_session_token_rejected(client):
    client.cookies.set(SESSION_COOKIE_NAME, "forged")
    assert client.get("/api/me").status_code == 401


class TestUsers:

    def test_register_sets_cookie(self, client):
        response = client.post("/api/users", json={"email": "alex@example.com", "birthdate": "1990-06-15"})

        assert response.status_code == 201
        assert SESSION_COOKIE_NAME in response.cookies
        assert "httponly" in response.headers["set-cookie"].lower()
        me = client.get("/api/me").json()
        assert me["user"]["email"] == "alex@example.com"
        assert me["user"]["timezone"] == "UTC"

    def test_duplicate_email_conflict(self, client):
        register(client)
        response = client.post("/api/users", json={"email": "alex@example.com", "birthdate": "1990-06-15"})
        assert response.status_code == 409

    @pytest.mark.parametrize("payload", [
        {"email": "not-an-email", "birthdate": "1990-06-15"},
        {"email": "alex@example.com", "birthdate": "15/06/1990"},
        {"email": "alex@example.com", "birthdate": "2999-01-01"},
        {"email": "alex@example.com", "birthdate": "1990-06-15", "timezone": "Mars/Olympus"},
    ])
    def test_invalid_profile_rejected(self, client, payload):
        assert client.post("/api/users", json=payload).status_code == 422

    def test_update_profile(self, auth_client):
        response = auth_client.put("/api/me", json={"timezone": "Asia/Tokyo"})
        assert response.status_code == 200
        assert response.json()["user"]["timezone"] == "Asia/Tokyo"

    def test_update_rejects_future_birthdate(self, auth_client):
        response = auth_client.put("/api/me", json={"birthdate": "2999-01-01"})

        assert response.status_code == 422
        assert "Birthdate cannot be in the future" in response.text
        assert auth_client.get("/api/me").json()["user"]["birthdate"] == "1990-06-15"
        assert auth_client.get("/api/chapters").json()["current_age"] >= 35

    def test_logout_revokes_session(self, auth_client):
        token = auth_client.cookies.get(SESSION_COOKIE_NAME)
        assert auth_client.post("/api/logout").status_code == 200

        auth_client.cookies.set(SESSION_COOKIE_NAME, token)
        assert auth_client.get("/api/me").status_code == 401


# -----------------------------------------------------------------------------
# Personal events
# -----------------------------------------------------------------------------


class TestEvents:

    def test_create_classifies_sentiment(self, auth_client):
        response = auth_client.post("/api/events", json=EVENT)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "success"
        assert data["event"]["sentiment"] == "positive"
        assert data["sentiment_method"] == "keyword"

    @pytest.mark.parametrize("override,message", [
        ({"title": "   "}, "Title is required"),
        ({"description": ""}, "Description is required"),
        ({"date": "2021-13-45"}, "Invalid date format"),
        ({"date": "March 3rd"}, "Invalid date format"),
    ])
    def test_validation_messages(self, auth_client, override, message):
        response = auth_client.post("/api/events", json={**EVENT, **override})
        assert response.status_code == 422
        assert message in response.text

    def test_unknown_category_rejected(self, auth_client):
        assert auth_client.post("/api/events", json={**EVENT, "category": "Hobbies"}).status_code == 422

    def test_list_with_filters(self, auth_client):
        auth_client.post("/api/events", json=EVENT)
        auth_client.post("/api/events", json={**EVENT, "title": "Flight cancelled", "category": "Travel",
                                              "description": "Terrible, frustrating strike", "date": "2022-07-15"})

        assert auth_client.get("/api/events").json()["count"] == 2
        travel = auth_client.get("/api/events", params={"categories": "Travel"}).json()
        assert [e["title"] for e in travel["events"]] == ["Flight cancelled"]
        negative = auth_client.get("/api/events", params={"sentiments": "negative,neutral"}).json()
        assert [e["title"] for e in negative["events"]] == ["Flight cancelled"]
        ranged = auth_client.get("/api/events", params={"start_date": "2022-01-01"}).json()
        assert ranged["count"] == 1

    def test_search_treats_wildcards_literally(self, auth_client):
        auth_client.post("/api/events", json={**EVENT, "title": "Moved house", "description": "New place"})
        auth_client.post("/api/events", json={**EVENT, "title": "Got 100% on exam", "description": "Top score"})

        def titles(term):
            return [e["title"] for e in auth_client.get("/api/events", params={"search": term}).json()["events"]]

        assert titles("_") == []
        assert titles("%") == ["Got 100% on exam"]
        assert auth_client.get("/api/timeline", params={"search": "_"}).json()["returned_weeks"] == 0
        assert auth_client.get("/api/timeline", params={"search": "%"}).json()["returned_weeks"] == 1

    def test_list_rejects_bad_parameters(self, auth_client):
        assert auth_client.get("/api/events", params={"sort_by": "title"}).status_code == 400
        assert auth_client.get("/api/events", params={"start_date": "yesterday"}).status_code == 400

    def test_update_reclassifies_when_description_changes(self, auth_client):
        event_id = auth_client.post("/api/events", json=EVENT).json()["event"]["id"]

        response = auth_client.put(f"/api/events/{event_id}", json={"title": "Promotion"})
        assert response.json()["event"]["sentiment"] == "positive"

        response = auth_client.put(f"/api/events/{event_id}", json={"description": "It was a terrible, awful week"})
        event = response.json()["event"]
        assert event["title"] == "Promotion"
        assert event["sentiment"] == "negative"

    def test_other_users_events_are_invisible(self, auth_client):
        event_id = auth_client.post("/api/events", json=EVENT).json()["event"]["id"]

        other = TestClient(app)
        register(other, email="sam@example.com")
        assert other.get(f"/api/events/{event_id}").status_code == 404
        assert other.put(f"/api/events/{event_id}", json={"title": "Mine now"}).status_code == 404
        assert other.delete(f"/api/events/{event_id}").status_code == 404
        assert other.get("/api/events").json()["count"] == 0

        assert auth_client.get(f"/api/events/{event_id}").json()["event"]["title"] == "Got promoted"

    def test_delete(self, auth_client):
        event_id = auth_client.post("/api/events", json=EVENT).json()["event"]["id"]
        assert auth_client.delete(f"/api/events/{event_id}").status_code == 200
        assert auth_client.get(f"/api/events/{event_id}").status_code == 404
        assert auth_client.delete(f"/api/events/{event_id}").status_code == 404

    def test_sentiment_endpoint(self, auth_client):
        data = auth_client.post("/api/sentiment", json={"text": "Failed my exam"}).json()
        assert data["sentiment"] == "negative"
        assert data["method"] == "keyword"
        assert auth_client.post("/api/sentiment", json={"text": "  "}).status_code == 422


# -----------------------------------------------------------------------------
# Timeline views
# -----------------------------------------------------------------------------


class TestTimeline:

    def test_grid_and_summary(self, auth_client):
        auth_client.post("/api/events", json=EVENT)
        data = auth_client.get("/api/timeline", params={"only_with_events": True}).json()

        assert data["summary"]["weeks_lived"] > 52 * 30
        assert data["summary"]["weeks_with_events"] == 1
        assert data["returned_weeks"] == 1
        week = data["weeks"][0]
        assert week["mood"] == "positive"
        assert week["personal_events"][0]["title"] == "Got promoted"

    def test_search_and_min_weeks(self, auth_client):
        auth_client.post("/api/events", json=EVENT)
        assert auth_client.get("/api/timeline", params={"search": "promoted"}).json()["returned_weeks"] == 1
        assert auth_client.get("/api/timeline", params={"search": "paris"}).json()["returned_weeks"] == 0

        padded = auth_client.get("/api/timeline", params={"min_weeks": 5000}).json()
        assert padded["returned_weeks"] == 5000

    def test_single_week_includes_history(self, client, mock_wikipedia):
        register(client, birthdate="2001-09-08")
        data = client.get("/api/timeline/weeks/1", params={"wikipedia": True}).json()

        assert data["week"]["start_date"] == "2001-09-08"
        assert [e["title"] for e in data["historical_events"]] == ["9/11 Terrorist Attacks"]
        mock_wikipedia.get_events_for_date_range.assert_called_once()

    def test_chapters_anniversaries_insights(self, auth_client):
        auth_client.post("/api/events", json=EVENT)

        chapters = auth_client.get("/api/chapters").json()
        assert chapters["chapters"][0]["name"] == "Early Childhood"
        assert chapters["current_age"] >= 35

        anniversaries = auth_client.get("/api/anniversaries", params={"window_days": 366}).json()
        assert len(anniversaries["anniversaries"]) == 1

        insights = auth_client.get("/api/insights").json()
        assert insights["total_events"] == 1
        assert insights["sentiment_breakdown"]["positive"] == 1
        assert len(insights["monthly_trends"]) == 12


# -----------------------------------------------------------------------------
# Historical context and AI
# -----------------------------------------------------------------------------


class TestHistoricalAndAI:

    def test_historical_events_accepts_camel_case(self, auth_client):
        data = auth_client.get("/api/historical-events",
                               params={"startDate": "2001-09-01", "endDate": "2001-09-30"}).json()
        assert data["source"] == "local"
        assert data["events"][0]["title"] == "9/11 Terrorist Attacks"

    def test_historical_events_accepts_iso_timestamps(self, auth_client):
        data = auth_client.get("/api/historical-events", params={
            "startDate": "2001-09-01T00:00:00.000Z",
            "endDate": "2001-09-30T23:59:59.999Z",
        }).json()
        assert data["events"][0]["title"] == "9/11 Terrorist Attacks"
        assert auth_client.get("/api/historical-events", params={"startDate": "2001-02-30T00:00:00Z"}).status_code == 400

    def test_historical_events_validation(self, auth_client):
        assert auth_client.get("/api/historical-events", params={"start_date": "bad"}).status_code == 400
        assert auth_client.get("/api/historical-events", params={"limit": 0}).status_code == 422

    def test_narrate_requires_personal_text(self, auth_client):
        assert auth_client.post("/api/narrate", json={"historical_event_text": "Moon landing"}).status_code == 400

    def test_narrate_with_historical_text(self, auth_client):
        data = auth_client.post("/api/narrate", json={
            "personalEventText": "Started my first job",
            "historicalEventText": "Moon landing",
        }).json()

        assert data["generated"] is True
        assert "Started my first job" in data["narrative"]
        assert data["historical_context"] == "Moon landing"

    def test_narrate_uses_week_history_and_stores(self, auth_client):
        event_id = auth_client.post("/api/events", json=EVENT).json()["event"]["id"]
        data = auth_client.post("/api/narrate", json={
            "personal_event_text": "Moved to a new city",
            "week_date": "2008-09-12",
            "event_id": event_id,
        }).json()

        assert data["historical_context"].startswith("Financial Crisis:")
        assert data["stored"] is True
        stored = auth_client.get(f"/api/events/{event_id}").json()["event"]["narrative"]
        assert stored == data["narrative"]

    def test_narrate_accepts_iso_week_date(self, auth_client):
        response = auth_client.post("/api/narrate", json={
            "personalEventText": "Moved to a new city",
            "weekDate": "2008-09-12T00:00:00.000Z",
        })

        assert response.status_code == 200
        assert response.json()["historical_context"].startswith("Financial Crisis:")

    def test_narrate_falls_back_to_reflection(self, auth_client):
        data = auth_client.post("/api/narrate", json={
            "personal_event_text": "Adopted a dog",
            "week_date": "1950-01-01",
        }).json()
        assert data["historical_context"] is None
        assert "Adopted a dog" in data["narrative"]

    def test_generate_art_from_ids(self, auth_client):
        event_id = auth_client.post("/api/events", json=EVENT).json()["event"]["id"]
        data = auth_client.post("/api/generate-art", json={"chapterName": "Early Career", "eventIds": [event_id]}).json()

        assert "Early Career" in data["prompt"]
        assert data["image_url"] is None

    def test_generate_art_with_image(self, auth_client):
        ai = Mock()
        ai.generate_art_prompt.return_value = "Golden spirals"
        ai.generate_art_image.return_value = "https://img/1.png"
        app.dependency_overrides[get_ai_services] = lambda: ai

        data = auth_client.post("/api/generate-art", json={"events": [{"title": "Trip"}]}).json()
        assert data["prompt"] == "Golden spirals"
        assert data["image_url"] == "https://img/1.png"

    def test_generate_art_requires_events(self, auth_client):
        assert auth_client.post("/api/generate-art", json={"chapter_name": "Empty"}).status_code == 400


# -----------------------------------------------------------------------------
# Sample data
# -----------------------------------------------------------------------------


class TestSampleData:

    def test_seed_status_and_seeding(self, auth_client):
        status = auth_client.get("/api/seed-data").json()
        assert status["can_seed"] is True
        assert status["sentiment_breakdown"] == {"positive": 0, "negative": 0, "neutral": 0}

        seeded = auth_client.post("/api/seed-data").json()
        assert seeded["seeded"] is True
        assert seeded["events_created"] == 21

        again = auth_client.post("/api/seed-data").json()
        assert again["seeded"] is False
        assert again["message"] == "User already has events"

        status = auth_client.get("/api/seed-data").json()
        assert status["event_count"] == 21
        assert status["can_seed"] is False

    def test_populate_historical(self, auth_client):
        assert auth_client.get("/api/populate-historical").json()["has_events"] is False
        assert auth_client.post("/api/populate-historical").json()["count"] == 36
        assert auth_client.post("/api/populate-historical").json()["count"] == 0
        assert auth_client.get("/api/populate-historical").json()["count"] == 36
