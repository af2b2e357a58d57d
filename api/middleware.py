"""Current-user middleware using ContextVar.

Authentication happens upstream at the identity provider's gateway, which
forwards the verified user id in the X-User-ID request header. The id is
stored in a ContextVar so downstream code can call get_current_user_id()
without explicit parameter passing; routes use require_user() to reject
anonymous requests.
"""

from contextvars import ContextVar

from fastapi import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

USER_HEADER = "X-User-ID"

# ---------------------------------------------------------------------------
# Context variable holding the request user
# ---------------------------------------------------------------------------

_current_user: ContextVar[str | None] = ContextVar("current_user", default=None)


def get_current_user_id() -> str | None:
    """Return the authenticated user id for the current request, if any."""
    return _current_user.get()


def require_user() -> str:
    """FastAPI dependency: the caller's user id, or 401."""
    user_id = get_current_user_id()
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class CurrentUserMiddleware(BaseHTTPMiddleware):
    """Extract the opaque user id from the identity header."""

    async def dispatch(self, request: Request, call_next) -> Response:
        user_id = request.headers.get(USER_HEADER, "").strip() or None
        token = _current_user.set(user_id)
        try:
            response = await call_next(request)
            return response
        finally:
            _current_user.reset(token)
