# storefront/routes/auth.py

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from storefront.config import settings
from storefront.schemas.auth import LoginRequest
from storefront.utils.auth import authenticate_request
from storefront.utils.errors import AuthenticationFailure, ConfigurationMissing
from storefront.utils.security import verify_admin_credentials

router = APIRouter()


def set_session_cookie(response: JSONResponse, token: str, max_age: int):
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


# ────────────── LOGIN ──────────────
@router.post(
    "/login",
    summary="Admin login",
    responses={
        200: {
            "description": "Session cookie set",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "user": {"id": "admin-admin", "username": "admin"},
                        "expiresAt": 1760832000,
                    }
                }
            },
        },
        400: {"description": "Username and password are required"},
        401: {"description": "Invalid credentials"},
        500: {"description": "Admin credentials are not configured"},
    },
)
async def login(request: Request):
    """
    Checks the admin login and password and sets the `admin-session` cookie.

    **Input (JSON):** `username`, `password`
    """
    log = request.app.state.log
    try:
        payload = LoginRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        payload = LoginRequest()

    if not payload.username or not payload.password:
        return JSONResponse(status_code=400, content={"error": "Username and password are required"})

    try:
        user = verify_admin_credentials(payload.username, payload.password)
    except ConfigurationMissing as e:
        await log.log_error("auth", "Admin login is not configured", {"missing": e.names})
        return JSONResponse(status_code=500, content={"error": "Admin login is not configured"})

    if user is None:
        await log.log_warning("auth", "Failed login attempt", {"username": payload.username})
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Invalid credentials"})

    codec = request.app.state.token_codec
    token = codec.issue(user.id, user.username)
    claims = codec.verify(token)

    response = JSONResponse(content={
        "success": True,
        "user": user.model_dump(),
        "expiresAt": claims.exp,
    })
    set_session_cookie(response, token, max_age=int(codec.ttl.total_seconds()))

    await log.log_info("auth", "Admin logged in", {"username": user.username})
    return response


# ────────────── LOGOUT ──────────────
@router.post("/logout", summary="Admin logout")
async def logout(request: Request):
    response = JSONResponse(content={"success": True})
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    await request.app.state.log.log_info("auth", "Admin logged out")
    return response


# ────────────── VERIFY ──────────────
@router.get(
    "/verify",
    summary="Check the current admin session",
    responses={200: {"description": "`authenticated` tells whether the session cookie is valid"}},
)
async def verify(request: Request):
    try:
        claims = authenticate_request(request, request.app.state.token_codec)
    except AuthenticationFailure as e:
        await request.app.state.log.log_info("auth", "Session check failed", {"reason": e.reason})
        return {"success": False, "authenticated": False}

    return {
        "success": True,
        "authenticated": True,
        "user": {"id": claims.sub, "username": claims.username},
        "expiresAt": claims.exp,
    }
