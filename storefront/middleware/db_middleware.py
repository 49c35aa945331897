# storefront/middleware/db_middleware.py

from starlette.types import ASGIApp, Receive, Scope, Send
from storefront.utils.database import AsyncSessionLocal


class DBSessionMiddleware:
    """
    Opens one AsyncSession per HTTP request and exposes it as request.state.db.
    Requests never share a session; the session is closed once the response is sent.
    """

    def __init__(self, app: ASGIApp, session_factory=AsyncSessionLocal):
        self.app = app
        self.session_factory = session_factory

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        state["db"] = self.session_factory()
        try:
            await self.app(scope, receive, send)
        finally:
            await state["db"].close()
