"""
Release and serve Pressroom.

    python scripts/release.py            # migrate, verify schema, seed admin
    python scripts/release.py --no-seed  # migrate and verify only
    python scripts/release.py --serve    # release, then exec gunicorn on app.wsgi:app

Serving reads PORT (default 8080) and WEB_CONCURRENCY (default 2).
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scripts._db_utils import create_script_engine  # noqa: E402
from app.pressroom.config import normalize_database_url  # noqa: E402
from app.pressroom.db import missing_tables  # noqa: E402

WSGI_TARGET = "app.wsgi:app"


def _release_database_url() -> str:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required for a release.")
    db_url = normalize_database_url(db_url)
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to release against sqlite in production.")
    return db_url


def migrate(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    # Keep the caller's logging setup; alembic.ini would otherwise replace it.
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")


def verify_schema(db_url: str) -> None:
    engine = create_script_engine(db_url)
    try:
        missing = missing_tables(engine)
    finally:
        engine.dispose()
    if missing:
        raise RuntimeError(f"Schema incomplete after migrations; missing tables: {', '.join(missing)}")


def run_release(*, seed: bool = True) -> str:
    """Migrate to head, check the schema, optionally seed the admin. Returns the database URL used."""
    db_url = _release_database_url()
    print(f"Migrating {db_url.split('@')[-1]} ...", flush=True)
    migrate(db_url)
    verify_schema(db_url)
    print("Schema OK (users, posts, audit_events).", flush=True)

    if seed:
        from scripts import init_db

        init_db.seed_only(database_url=db_url)
    return db_url


def gunicorn_argv(port: str | None = None, workers: str | None = None) -> list[str]:
    port = (port if port is not None else os.environ.get("PORT", "")).strip() or "8080"
    workers = (workers if workers is not None else os.environ.get("WEB_CONCURRENCY", "")).strip() or "2"
    if not port.isdigit() or not 1 <= int(port) <= 65535:
        raise ValueError(f"Invalid PORT {port!r}; expected an integer 1-65535.")
    if not workers.isdigit() or int(workers) < 1:
        raise ValueError(f"Invalid WEB_CONCURRENCY {workers!r}; expected a positive integer.")
    return [
        "gunicorn",
        WSGI_TARGET,
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Migrate, seed and optionally serve Pressroom.")
    parser.add_argument("--no-seed", action="store_true", help="skip the admin seed")
    parser.add_argument("--serve", action="store_true", help="exec gunicorn after a successful release")
    args = parser.parse_args(argv)

    try:
        argv_gunicorn = gunicorn_argv() if args.serve else None
        run_release(seed=not args.no_seed)
    except (RuntimeError, ValueError) as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    if argv_gunicorn:
        # gunicorn replaces this process and receives signals directly
        os.execvp(argv_gunicorn[0], argv_gunicorn)


if __name__ == "__main__":
    main()
