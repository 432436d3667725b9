"""Request helpers shared by the API namespaces."""

from flask import request

from app.domain.exceptions import UnauthorizedError


def current_user_id() -> int:
    """The acting user, as asserted by the upstream auth layer."""
    raw = request.headers.get("X-User-Id", "")
    if not raw.isdigit() or int(raw) <= 0:
        raise UnauthorizedError()
    return int(raw)


def json_body() -> dict:
    return request.get_json(silent=True) or {}
