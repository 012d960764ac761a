"""Tests for scripts/release.py against a throwaway SQLite file."""
import pytest
from sqlalchemy.orm import Session

from app.pressroom.db import missing_tables
from app.pressroom.models import User
from scripts import release
from scripts._db_utils import create_script_engine


@pytest.fixture()
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path/'release.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("ADMIN_EMAIL", "Editor@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "editor-pw-1")
    return url


def _admins(db_url):
    engine = create_script_engine(db_url)
    try:
        with Session(engine) as s:
            return [(u.email, u.role, u.password_hash) for u in s.query(User).all()]
    finally:
        engine.dispose()


def test_release_migrates_and_seeds_admin(db_url):
    release.run_release()

    engine = create_script_engine(db_url)
    try:
        assert missing_tables(engine) == []
    finally:
        engine.dispose()

    [(email, role, _)] = _admins(db_url)
    assert email == "editor@example.com"
    assert role == "admin"


def test_release_is_idempotent(db_url, monkeypatch):
    release.run_release()
    first = _admins(db_url)

    monkeypatch.setenv("ADMIN_PASSWORD", "a-different-pw")
    release.run_release()
    assert _admins(db_url) == first


def test_release_without_seed_leaves_users_empty(db_url):
    release.run_release(seed=False)
    assert _admins(db_url) == []


def test_release_requires_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        release.run_release()


def test_release_refuses_sqlite_in_production(db_url, monkeypatch):
    monkeypatch.setenv("ENV", "production")
    with pytest.raises(RuntimeError):
        release.run_release()


def test_cli_exits_nonzero_on_failure(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(SystemExit) as exc:
        release.main(["--no-seed"])
    assert exc.value.code == 1


def test_gunicorn_argv_uses_port_and_workers(monkeypatch):
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("WEB_CONCURRENCY", "4")
    argv = release.gunicorn_argv()
    assert argv[:2] == ["gunicorn", "app.wsgi:app"]
    assert argv[argv.index("--bind") + 1] == "0.0.0.0:9000"
    assert argv[argv.index("--workers") + 1] == "4"


def test_gunicorn_argv_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("WEB_CONCURRENCY", raising=False)
    argv = release.gunicorn_argv()
    assert "0.0.0.0:8080" in argv
    assert argv[argv.index("--workers") + 1] == "2"


@pytest.mark.parametrize("port,workers", [("0", "2"), ("70000", "2"), ("http", "2"), ("8080", "0"), ("8080", "many")])
def test_gunicorn_argv_rejects_bad_values(port, workers):
    with pytest.raises(ValueError):
        release.gunicorn_argv(port, workers)


def test_serve_does_not_exec_when_release_fails(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    calls = []
    monkeypatch.setattr(release.os, "execvp", lambda *a: calls.append(a))
    with pytest.raises(SystemExit):
        release.main(["--serve"])
    assert calls == []


def test_serve_execs_gunicorn_after_release(db_url, monkeypatch):
    monkeypatch.setenv("PORT", "8181")
    calls = []
    monkeypatch.setattr(release.os, "execvp", lambda *a: calls.append(a))
    release.main(["--serve", "--no-seed"])
    [(prog, argv)] = calls
    assert prog == "gunicorn"
    assert "0.0.0.0:8181" in argv
