"""
Post request handlers.

Each handler runs one request to completion and stops at the first failure:
identity -> load -> authorize -> validate -> mutate -> respond. The caller
resolves the identity and passes it in; nothing here reads the session.
Business failures raise the ``app.pressroom.errors`` taxonomy; store failures
roll back and surface as an opaque ``InternalError``.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from app.pressroom.audit import record_event
from app.pressroom.errors import BadRequest, Forbidden, InternalError, NotFound, Unauthenticated
from app.pressroom.modules.posts import store
from app.pressroom.modules.posts.models import TITLE_MAX_LENGTH
from app.pressroom.policy import DELETE, DENY_UNAUTHENTICATED, READ, UPDATE, Decision, authorize

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.pressroom.auth import Identity
    from app.pressroom.modules.posts.models import Post

logger = logging.getLogger(__name__)

VALID_STATUSES = ("all", "published", "draft")


@contextmanager
def _store_call(s: "Session", failure_message: str) -> Generator[None, None, None]:
    try:
        yield
    except SQLAlchemyError as e:
        s.rollback()
        raise InternalError(failure_message) from e


def coerce_flag(value: Any) -> bool:
    """Truthiness as the browser client computes ``Boolean(value)``."""
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (list, dict)):
        return True
    return bool(value)


def validate_post_payload(payload: Any) -> dict:
    """Validate a create/update body. Returns the normalized fields."""
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")

    title = payload.get("title")
    if title is None:
        raise BadRequest("Title is required")
    if not isinstance(title, str):
        raise BadRequest("Title must be a string")
    title = title.strip()
    if not title:
        raise BadRequest("Title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise BadRequest(f"Title must be at most {TITLE_MAX_LENGTH} characters")

    content = payload.get("content")
    if not content:
        content = ""
    elif not isinstance(content, str):
        raise BadRequest("Content must be a string")

    # Full overwrite: an omitted flag means unpublished.
    published = coerce_flag(payload.get("published"))

    return {"title": title, "content": content, "published": published}


def serialize_post(post: "Post") -> dict:
    author = post.author
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "published": bool(post.published),
        "author_id": post.author_id,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "updated_at": post.updated_at.isoformat() if post.updated_at else None,
        "author": {
            "name": author.name if author else None,
            "email": author.email if author else None,
        },
    }


def _enforce(decision: Decision, forbidden_message: str) -> None:
    if decision:
        return
    if decision.reason == DENY_UNAUTHENTICATED:
        raise Unauthenticated()
    raise Forbidden(forbidden_message)


def _require_identity(identity: "Identity | None") -> "Identity":
    if identity is None:
        raise Unauthenticated()
    return identity


def _load_post(s: "Session", post_id: str, failure_message: str) -> "Post":
    with _store_call(s, failure_message):
        post = store.find_post(s, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


# ---------- Handlers ----------
def read_post(s: "Session", identity: "Identity | None", post_id: str) -> dict:
    post = _load_post(s, post_id, "Failed to fetch post")
    _enforce(authorize(identity, post, READ), "You cannot view this post")
    with _store_call(s, "Failed to fetch post"):
        return serialize_post(post)


def update_post(s: "Session", identity: "Identity | None", post_id: str, payload: Any) -> dict:
    identity = _require_identity(identity)
    post = _load_post(s, post_id, "Failed to update post")
    _enforce(authorize(identity, post, UPDATE), "You can only edit your own posts")
    fields = validate_post_payload(payload)

    with _store_call(s, "Failed to update post"):
        before = {"title": post.title, "published": post.published}
        store.rewrite_post(s, post, **fields)
        record_event(
            s,
            actor=identity,
            action="post.update",
            entity_type="Post",
            entity_id=post.id,
            metadata={"before": before, "after": {"title": post.title, "published": post.published}},
        )
        result = serialize_post(post)
        s.commit()

    logger.info("post.update id=%s user_id=%s", post.id, identity.user_id)
    return result


def delete_post(s: "Session", identity: "Identity | None", post_id: str) -> dict:
    identity = _require_identity(identity)
    post = _load_post(s, post_id, "Failed to delete post")
    _enforce(authorize(identity, post, DELETE), "You can only delete your own posts")

    with _store_call(s, "Failed to delete post"):
        title = post.title
        store.remove_post(s, post)
        record_event(
            s,
            actor=identity,
            action="post.delete",
            entity_type="Post",
            entity_id=post_id,
            metadata={"title": title},
        )
        s.commit()

    logger.info("post.delete id=%s user_id=%s", post_id, identity.user_id)
    return {"message": "Post deleted successfully"}


def create_post(s: "Session", identity: "Identity | None", payload: Any) -> dict:
    identity = _require_identity(identity)
    fields = validate_post_payload(payload)

    with _store_call(s, "Failed to create post"):
        post = store.insert_post(s, author_id=identity.user_id, **fields)
        record_event(
            s,
            actor=identity,
            action="post.create",
            entity_type="Post",
            entity_id=post.id,
            metadata={"title": post.title, "published": post.published},
        )
        result = serialize_post(post)
        s.commit()

    logger.info("post.create id=%s user_id=%s", result["id"], identity.user_id)
    return result


def list_posts(
    s: "Session",
    identity: "Identity | None",
    *,
    search: str = "",
    status: str = "all",
    mine: bool = False,
) -> list[dict]:
    status = (status or "all").strip().lower()
    if status not in VALID_STATUSES:
        raise BadRequest(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")

    author_id = None
    if mine:
        author_id = _require_identity(identity).user_id

    published = None
    if status == "published":
        published = True
    elif status == "draft":
        published = False

    with _store_call(s, "Failed to fetch posts"):
        posts = store.query_posts(s, search=(search or "").strip(), published=published, author_id=author_id)
        return [serialize_post(p) for p in posts]
