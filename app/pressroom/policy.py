"""
Post authorization gate.

``authorize`` is a pure decision over (identity, post, operation). It never
touches the database; callers load the post first and map a denial onto
``Unauthenticated`` or ``Forbidden`` via ``Decision.reason``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.pressroom.auth import Identity
    from app.pressroom.modules.posts.models import Post


READ = "read"
UPDATE = "update"
DELETE = "delete"
OPERATIONS = frozenset({READ, UPDATE, DELETE})

DENY_UNAUTHENTICATED = "unauthenticated"
DENY_NOT_OWNER = "not owner"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def is_owner(identity: Identity | None, post: Post) -> bool:
    if identity is None:
        return False
    # Compare normalized owner ids, not email strings.
    return post.author_id is not None and int(identity.user_id) == int(post.author_id)


def authorize(identity: Identity | None, post: Post, operation: str) -> Decision:
    if operation not in OPERATIONS:
        raise ValueError(f"Unknown operation: {operation!r}")
    if operation == READ:
        return ALLOW
    if identity is None:
        return Decision(False, DENY_UNAUTHENTICATED)
    if not is_owner(identity, post):
        return Decision(False, DENY_NOT_OWNER)
    return ALLOW
