"""
Shared fixtures: a throwaway SQLite database per test and a TestClient whose
external services (OpenAI, Wikipedia) are replaced with offline stand-ins.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from database import init_database
from ai_services import AIServices
from historical_events import HistoricalEventsService, WikipediaService
from main import app, get_ai_services, get_historical_service


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point DATABASE_PATH at a fresh file and create the schema"""
    db_path = tmp_path / "lifeweeks_test.db"
    monkeypatch.setenv("DATABASE_PATH", str(db_path))
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    assert init_database()
    return str(db_path)


@pytest.fixture
def mock_wikipedia():
    """Wikipedia client that never touches the network and finds nothing"""
    wikipedia = Mock(spec=WikipediaService)
    wikipedia.get_on_this_day.return_value = []
    wikipedia.get_events_for_date_range.return_value = []
    return wikipedia


@pytest.fixture
def ai_services():
    """AI services without a client, so every call takes the offline fallback"""
    return AIServices(client=None)


@pytest.fixture
def historical_service(mock_wikipedia):
    return HistoricalEventsService(wikipedia=mock_wikipedia)


@pytest.fixture
def client(temp_db, ai_services, historical_service):
    app.dependency_overrides[get_ai_services] = lambda: ai_services
    app.dependency_overrides[get_historical_service] = lambda: historical_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email="alex@example.com", birthdate="1990-06-15", timezone="UTC"):
    response = client.post("/api/users", json={"email": email, "birthdate": birthdate, "timezone": timezone})
    assert response.status_code == 201, response.text
    return response.json()["user"]


@pytest.fixture
def auth_client(client):
    """TestClient holding a session cookie for a freshly registered user"""
    register(client)
    return client
