# storefront/utils/auth.py

"""
Admin authentication shared by the page guard and the API wrapper.

Both call authenticate_request(); they differ only in how a failure is
answered: the page guard redirects to the login page, with_admin_auth
returns a JSON 401.
"""

from functools import wraps

from fastapi import Request, status
from fastapi.responses import JSONResponse

from storefront.config import settings
from storefront.schemas.auth import AdminClaims
from storefront.utils.errors import AuthenticationFailure, MissingToken
from storefront.utils.tokens import TokenCodec

UNAUTHORIZED_BODY = {"error": "Authentication required"}


def authenticate_request(request: Request, codec: TokenCodec, cookie_name: str = None) -> AdminClaims:
    """
    Reads the session cookie and verifies it.
    Raises an AuthenticationFailure subclass describing why the request is not authenticated.
    """
    token = request.cookies.get(cookie_name or settings.SESSION_COOKIE_NAME)
    if not token:
        raise MissingToken()
    return codec.verify(token)


async def log_auth_failure(request: Request, target: str, error: AuthenticationFailure):
    log = getattr(request.app.state, "log", None)
    if log:
        await log.log_warning(target, "Admin authentication failed", {
            "path": request.url.path,
            "reason": error.reason,
        })


def _find_request(args, kwargs) -> Request:
    request = kwargs.get("request")
    if isinstance(request, Request):
        return request
    for arg in args:
        if isinstance(arg, Request):
            return arg
    raise TypeError("Handlers wrapped with with_admin_auth must accept a `request: Request` parameter")


def with_admin_auth(handler):
    """
    Decorator for admin API handlers.

    The session is checked on every call, independently of the page guard,
    before the handler runs. A failed check answers 401 with a generic body.
    On success the verified claims are available as request.state.admin.
    """
    @wraps(handler)
    async def guarded(*args, **kwargs):
        request = _find_request(args, kwargs)
        try:
            claims = authenticate_request(request, request.app.state.token_codec)
        except AuthenticationFailure as e:
            await log_auth_failure(request, "auth", e)
            return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=UNAUTHORIZED_BODY)

        request.state.admin = claims
        return await handler(*args, **kwargs)

    return guarded
