"""
Error taxonomy for API handlers.

Handlers raise these; ``register_error_handlers`` turns them into
``{"error": message}`` JSON responses with the matching status code.
"""
from __future__ import annotations

import logging

from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class PressroomError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(PressroomError):
    status_code = 400
    default_message = "Bad request"


class Unauthenticated(PressroomError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(PressroomError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(PressroomError):
    status_code = 404
    default_message = "Not found"


class Conflict(PressroomError):
    status_code = 409
    default_message = "Conflict"


class TooManyRequests(PressroomError):
    status_code = 429
    default_message = "Too many requests"


class InternalError(PressroomError):
    """Opaque failure; the cause is logged, never returned to the caller."""

    status_code = 500


def error_response(err: PressroomError):
    return jsonify({"error": err.message}), err.status_code


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(PressroomError)
    def _pressroom_error(e: PressroomError):  # type: ignore[no-redef]
        if isinstance(e, InternalError):
            app.logger.error(
                "Internal error (request_id=%s): %s",
                getattr(g, "request_id", None),
                e.message,
                exc_info=e.__cause__ or e,
            )
        return error_response(e)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):  # type: ignore[no-redef]
        # Routing-level failures (unknown URL, wrong method, body too large).
        return jsonify({"error": e.description or e.name}), e.code or 500

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": InternalError.default_message}), 500
