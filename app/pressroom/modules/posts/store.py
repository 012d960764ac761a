from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.pressroom.modules.posts.models import Post


def find_post(s: Session, post_id: str) -> Post | None:
    return s.get(Post, post_id)


def insert_post(s: Session, *, author_id: int, title: str, content: str, published: bool) -> Post:
    now = datetime.utcnow()
    post = Post(
        author_id=author_id,
        title=title,
        content=content,
        published=published,
        created_at=now,
        updated_at=now,
    )
    s.add(post)
    s.flush()
    return post


def rewrite_post(s: Session, post: Post, *, title: str, content: str, published: bool) -> Post:
    post.title = title
    post.content = content
    post.published = published
    post.updated_at = datetime.utcnow()
    s.flush()
    return post


def remove_post(s: Session, post: Post) -> None:
    s.delete(post)
    s.flush()


def _like_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in ``term`` matched literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def query_posts(
    s: Session,
    *,
    search: str = "",
    published: bool | None = None,
    author_id: int | None = None,
) -> list[Post]:
    q = s.query(Post)

    if search:
        like = _like_pattern(search)
        q = q.filter(or_(Post.title.ilike(like, escape="\\"), Post.content.ilike(like, escape="\\")))

    if published is not None:
        q = q.filter(Post.published == published)

    if author_id is not None:
        q = q.filter(Post.author_id == author_id)

    return q.order_by(Post.created_at.desc(), Post.id.asc()).all()
