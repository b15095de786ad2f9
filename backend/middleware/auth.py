"""
Fake auth middleware for local development.

Tags every request with an actor name (X-Actor header, default "system") so
routes that change configuration can record who did it. No real
authentication happens here.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

DEFAULT_ACTOR = "system"


class FakeAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request.state.actor = request.headers.get("x-actor") or DEFAULT_ACTOR
        return await call_next(request)
