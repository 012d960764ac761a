"""Tests for session authentication endpoints."""
import pytest
from werkzeug.security import generate_password_hash

from app.pressroom import create_app
from app.pressroom.db import session_scope
from app.pressroom.models import AuditEvent, Base, User


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("LOGIN_RATE_LIMIT", "3")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add_all([
            User(email="alice@example.com", name="Alice", password_hash=generate_password_hash("alice-pw-1"), is_active=True),
            User(email="gone@example.com", name="Gone", password_hash=generate_password_hash("gone-pw-1"), is_active=False),
        ])

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _actions(app):
    with session_scope(app) as s:
        return [e.action for e in s.query(AuditEvent).order_by(AuditEvent.id.asc()).all()]


def test_register_creates_user_with_normalized_email(app, client):
    r = client.post("/auth/register", json={"email": "  Carol@Example.COM ", "password": "carol-pw-1", "name": "Carol"})
    assert r.status_code == 201, r.json
    assert r.json["user"]["email"] == "carol@example.com"
    assert r.json["user"]["name"] == "Carol"
    assert r.json["user"]["role"] == "user"

    with session_scope(app) as s:
        u = s.query(User).filter(User.email == "carol@example.com").one()
        assert u.password_hash != "carol-pw-1"
    assert "auth.register" in _actions(app)


def test_register_rejects_duplicate_email(client):
    r = client.post("/auth/register", json={"email": "ALICE@example.com", "password": "whatever-1"})
    assert r.status_code == 409
    assert r.json["error"] == "Email already registered"


@pytest.mark.parametrize(
    "body",
    [
        {"email": "not-an-email", "password": "long-enough"},
        {"email": "dave@example.com", "password": "short"},
        {"password": "long-enough"},
    ],
)
def test_register_validation(client, body):
    r = client.post("/auth/register", json=body)
    assert r.status_code == 400
    assert "error" in r.json


def test_login_sets_session_and_returns_csrf_token(app, client):
    r = client.post("/auth/login", json={"email": "alice@example.com", "password": "alice-pw-1"})
    assert r.status_code == 200, r.json
    assert r.json["user"]["email"] == "alice@example.com"
    assert r.json["csrf_token"]

    r = client.get("/auth/session")
    assert r.json["user"]["name"] == "Alice"
    assert "auth.login" in _actions(app)


def test_login_accepts_form_posts(client):
    r = client.post("/auth/login", data={"email": "alice@example.com", "password": "alice-pw-1"})
    assert r.status_code == 200


def test_login_rejects_bad_password(app, client):
    r = client.post("/auth/login", json={"email": "alice@example.com", "password": "wrong"})
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials"
    assert client.get("/auth/session").json["user"] is None
    assert "auth.login_failed" in _actions(app)


def test_login_rejects_inactive_user(client):
    r = client.post("/auth/login", json={"email": "gone@example.com", "password": "gone-pw-1"})
    assert r.status_code == 401


def test_login_requires_both_fields(client):
    r = client.post("/auth/login", json={"email": "alice@example.com"})
    assert r.status_code == 400


def test_login_rate_limited_after_repeated_failures(client):
    for _ in range(3):
        r = client.post("/auth/login", json={"email": "alice@example.com", "password": "wrong"})
        assert r.status_code == 401
    r = client.post("/auth/login", json={"email": "alice@example.com", "password": "alice-pw-1"})
    assert r.status_code == 429


def test_logout_clears_session(app, client):
    client.post("/auth/login", json={"email": "alice@example.com", "password": "alice-pw-1"})
    r = client.post("/auth/logout")
    assert r.status_code == 200
    assert client.get("/auth/session").json["user"] is None
    assert "auth.logout" in _actions(app)


def test_session_for_deactivated_user_resolves_to_nobody(app, client):
    client.post("/auth/login", json={"email": "alice@example.com", "password": "alice-pw-1"})

    with session_scope(app) as s:
        s.query(User).filter(User.email == "alice@example.com").one().is_active = False

    r = client.get("/auth/session")
    assert r.json["user"] is None
    with client.session_transaction() as sess:
        assert "user_id" not in sess
