from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request, session
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from app.pressroom.audit import record_event
from app.pressroom.db import db_session
from app.pressroom.errors import BadRequest, Conflict, TooManyRequests, Unauthenticated
from app.pressroom.models import User
from app.pressroom.security import ensure_csrf_token

bp = Blueprint("auth", __name__)

PASSWORD_MIN_LENGTH = 8


@dataclass(frozen=True)
class Identity:
    """The authenticated principal of one request."""

    user_id: int
    email: str
    name: str | None = None
    role: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(user_id=user.id, email=normalize_email(user.email), name=user.name, role=user.role)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def user_to_dict(user: User | Identity) -> dict:
    if isinstance(user, Identity):
        return {"id": user.user_id, "email": user.email, "name": user.name, "role": user.role}
    return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}


def resolve_identity(s: Session | None = None) -> Identity | None:
    """
    Resolve the signed session cookie into an Identity.
    A stale cookie (unknown or inactive user) is cleared and resolves to None.
    """
    user_id = session.get("user_id")
    if not user_id:
        return None

    try:
        s = s or db_session()
        user = s.get(User, int(user_id))
        if not user or not user.is_active:
            session.pop("user_id", None)
            return None
        return Identity.from_user(user)
    except Exception as e:
        current_app.logger.error(
            "resolve_identity DB error (clearing session, request_id=%s): %s", getattr(g, "request_id", None), e
        )
        session.pop("user_id", None)
        return None


# ---------- Login rate limiting ----------
def _login_attempts() -> dict[str, list[datetime]]:
    return current_app.extensions.setdefault("login_attempts", defaultdict(list))


def _check_rate_limit(ip: str) -> bool:
    window = int(current_app.config.get("LOGIN_RATE_WINDOW", 300))
    limit = int(current_app.config.get("LOGIN_RATE_LIMIT", 5))
    attempts = _login_attempts()
    cutoff = datetime.utcnow() - timedelta(seconds=window)
    attempts[ip] = [t for t in attempts[ip] if t > cutoff]
    return len(attempts[ip]) >= limit


def _record_attempt(ip: str) -> None:
    _login_attempts()[ip].append(datetime.utcnow())


def _payload() -> dict:
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise BadRequest("Request body must be a JSON object")
        return data
    return request.form.to_dict()


# ---------- Routes ----------
@bp.post("/register")
def register():
    data = _payload()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""
    name = (data.get("name") or "").strip() or None

    if not email or "@" not in email:
        raise BadRequest("A valid email is required")
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        raise BadRequest(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")

    s = db_session()
    if s.query(User).filter(User.email == email).one_or_none():
        raise Conflict("Email already registered")

    user = User(email=email, name=name, role="user", password_hash=generate_password_hash(password), is_active=True)
    s.add(user)
    try:
        s.flush()
        record_event(s, actor=Identity.from_user(user), action="auth.register", entity_type="User", entity_id=str(user.id))
        s.commit()
    except IntegrityError:
        s.rollback()
        raise Conflict("Email already registered")

    current_app.logger.info("Registered user id=%s", user.id)
    return jsonify({"user": user_to_dict(user)}), 201


@bp.post("/login")
def login():
    data = _payload()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""
    ip = request.remote_addr or "unknown"

    if not email or not password:
        raise BadRequest("Email and password are required")

    if _check_rate_limit(ip):
        raise TooManyRequests("Too many login attempts. Please wait and try again.")

    _record_attempt(ip)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, str(password)):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        raise Unauthenticated("Invalid credentials")

    identity = Identity.from_user(user)
    session["user_id"] = user.id
    # Fresh token per sign-in.
    session.pop("csrf_token", None)
    token = ensure_csrf_token()
    _login_attempts()[ip].clear()
    record_event(s, actor=identity, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    return jsonify({"user": user_to_dict(identity), "csrf_token": token})


@bp.post("/logout")
def logout():
    s = db_session()
    identity = resolve_identity(s)
    if identity:
        record_event(s, actor=identity, action="auth.logout", entity_type="User", entity_id=str(identity.user_id))
        s.commit()
    session.pop("user_id", None)
    session.pop("csrf_token", None)
    return jsonify({"message": "Signed out"})


@bp.get("/session")
def current_session():
    identity = resolve_identity()
    return jsonify({
        "user": user_to_dict(identity) if identity else None,
        "csrf_token": ensure_csrf_token(),
    })
