from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.pressroom.auth import resolve_identity
from app.pressroom.db import db_session
from app.pressroom.modules.posts import service

bp = Blueprint("posts", __name__)


# ---------- Collection ----------
@bp.get("/posts")
def posts_list():
    s = db_session()
    identity = resolve_identity(s)
    mine = (request.args.get("mine") or "").strip().lower() in ("1", "true", "yes")
    posts = service.list_posts(
        s,
        identity,
        search=request.args.get("q") or "",
        status=request.args.get("status") or "all",
        mine=mine,
    )
    return jsonify({"posts": posts}), 200


@bp.post("/posts")
def posts_create():
    s = db_session()
    identity = resolve_identity(s)
    post = service.create_post(s, identity, request.get_json(silent=True))
    return jsonify({"post": post}), 201


# ---------- Single post ----------
@bp.get("/posts/<post_id>")
def post_detail(post_id: str):
    s = db_session()
    identity = resolve_identity(s)
    post = service.read_post(s, identity, post_id)
    return jsonify({"post": post}), 200


@bp.put("/posts/<post_id>")
def post_update(post_id: str):
    s = db_session()
    identity = resolve_identity(s)
    payload = request.get_json(silent=True)
    post = service.update_post(s, identity, post_id, payload)
    return jsonify({"post": post}), 200


@bp.delete("/posts/<post_id>")
def post_delete(post_id: str):
    s = db_session()
    identity = resolve_identity(s)
    result = service.delete_post(s, identity, post_id)
    return jsonify(result), 200
