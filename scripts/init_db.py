"""
Seed the admin account (idempotent).

Usage:
  python scripts/init_db.py
"""
import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scripts._db_utils import database_url_from_env, script_session  # noqa: E402
from app.pressroom.models import User  # noqa: E402


def seed_only(*, database_url: str | None = None) -> None:
    """
    Create the admin user if missing.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@pressroom.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrator").strip()

    db_url = database_url or database_url_from_env()

    with script_session(db_url) as s:
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                name=admin_name,
                role="admin",
                password_hash=generate_password_hash(admin_password),
                is_active=True,
            )
            s.add(user)
        elif user.role != "admin":
            user.role = "admin"

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
