"""
Shared pytest fixtures for the ChangeDesk test suite.

Provides:
    - app: Flask application (session-scoped)
    - session: Per-test fresh schema + seeded users (autouse)
    - client: Flask test client (function-scoped)
    - coordinator / store: the app's AppCoordinator and RecordStore
    - fake_summarizer: deterministic summarizer installed on the lifecycle
    - admin_client / alice_client: test clients already logged in
"""

import pytest

from changedesk import create_app
from changedesk.models import db as _db
from changedesk.models.user import Viewer
from changedesk.services.department_registry import DepartmentRegistry

ADMIN = Viewer(id="admin", role="admin", name="Admin")
ALICE = Viewer(id="asmith", role="user", name="Alice Smith")
BOB = Viewer(id="bjohnson", role="user", name="Bob Johnson")


class FakeSummarizer:
    """Records calls; returns a fixed summary."""

    def __init__(self, text="Fake summary."):
        self.text = text
        self.calls = []

    def __call__(self, description, reason, impact, system):
        self.calls.append({
            "description": description, "reason": reason,
            "impact": impact, "system": system,
        })
        return self.text


def request_payload(**overrides):
    """A complete change-request body; override any field."""
    data = {
        "title": "Upgrade ERP kernel",
        "system": "SAP ERP",
        "requester": "Alice Smith",
        "department": "Engineering",
        "description": "Apply kernel patch 7.93",
        "reason": "Security advisory",
        "impact": "Two hours downtime",
        "priority": "High",
        "implementationDate": "2026-11-01",
    }
    data.update(overrides)
    return data


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture()
def coordinator(app):
    return app.extensions["changedesk"]


@pytest.fixture()
def store(coordinator):
    return coordinator.store


@pytest.fixture()
def fake_summarizer(coordinator):
    return coordinator.lifecycle.summarizer


@pytest.fixture(autouse=True)
def session(app):
    """Per-test: recreate the schema, seed users, reset in-memory state."""
    coordinator = app.extensions["changedesk"]
    original_summarizer = coordinator.lifecycle.summarizer
    with app.app_context():
        _db.drop_all()
        coordinator.store.initialize(force=True)
        coordinator.identity.seed_initial_users()
        coordinator.departments = DepartmentRegistry()
        coordinator.lifecycle.summarizer = FakeSummarizer()
        yield
        _db.session.rollback()
        _db.session.remove()
    coordinator.lifecycle.summarizer = original_summarizer


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


def login(client, user_id, password):
    res = client.post("/api/v1/auth/login", json={"id": user_id, "password": password})
    assert res.status_code == 200, res.get_json()
    return client


@pytest.fixture()
def admin_client(app):
    return login(app.test_client(), "admin", "adminpassword")


@pytest.fixture()
def alice_client(app):
    return login(app.test_client(), "asmith", "password123")


@pytest.fixture()
def bob_client(app):
    return login(app.test_client(), "bjohnson", "password123")


@pytest.fixture()
def payload():
    """Factory for complete change-request bodies: payload(priority="Low")."""
    return request_payload


@pytest.fixture()
def admin():
    return ADMIN


@pytest.fixture()
def alice():
    return ALICE


@pytest.fixture()
def bob():
    return BOB
