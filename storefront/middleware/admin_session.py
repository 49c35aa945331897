# storefront/middleware/admin_session.py

from starlette.requests import Request
from starlette.responses import RedirectResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from storefront.utils.auth import authenticate_request, log_auth_failure
from storefront.utils.errors import AuthenticationFailure
from storefront.utils.tokens import TokenCodec


class AdminSessionMiddleware:
    """
    Guards admin pages: any path under `prefix`, except `login_path`, needs a
    valid admin session cookie. Without one the browser is redirected to the
    login page. API routes live outside the prefix and carry their own check.
    """

    def __init__(
        self,
        app: ASGIApp,
        codec: TokenCodec,
        prefix: str = "/admin",
        login_path: str = "/admin/login",
        cookie_name: str = "admin-session",
    ):
        self.app = app
        self.codec = codec
        self.prefix = prefix.rstrip("/")
        self.login_path = login_path
        self.cookie_name = cookie_name

    def is_protected(self, path: str) -> bool:
        if path.rstrip("/") == self.login_path:
            return False
        return path == self.prefix or path.startswith(self.prefix + "/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http" or not self.is_protected(scope["path"]):
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        try:
            authenticate_request(request, self.codec, self.cookie_name)
        except AuthenticationFailure as e:
            await log_auth_failure(request, "session_guard", e)
            response = RedirectResponse(url=self.login_path)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
