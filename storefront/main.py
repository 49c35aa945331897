# storefront/main.py

from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
from dotenv import load_dotenv
from contextlib import asynccontextmanager

from storefront.config import settings
from storefront.utils.log import Log
from storefront.utils.database import init_db
from storefront.utils.tokens import TokenCodec
from storefront.middleware.db_middleware import DBSessionMiddleware
from storefront.middleware.admin_session import AdminSessionMiddleware

import os
import multiprocessing

# --- environment ---
load_dotenv()

# --- sync logger for early startup ---
boot_log = Log(settings.LOG_DIR, settings.LOG_PRINT)
if os.environ.get("RUN_MAIN") == "true" or multiprocessing.current_process().name == "MainProcess":
    boot_log.log_info_sync(target="startup", message="main.py imported")

# --- signing secret resolved once, shared by the page guard and the API wrapper ---
token_codec = TokenCodec(
    settings.AUTH_SECRET_KEY,
    ttl=timedelta(minutes=settings.AUTH_TOKEN_EXPIRE_MINUTES),
)


# ────────────── Lifespan ──────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    boot_log.log_info_sync(target="startup", message="lifespan: startup")

    await init_db()
    boot_log.log_info_sync(target="startup", message="Database initialised")

    app.state.log = Log(settings.LOG_DIR, settings.LOG_PRINT)
    await app.state.log.log_info(target="startup", message="Async Log initialised")

    yield

    # shutdown
    gateway = getattr(app.state, "gateway", None)
    if gateway is not None:
        await gateway.close()
        app.state.gateway = None
    await app.state.log.log_info(target="shutdown", message="Application stopping")
    await app.state.log.shutdown()
    boot_log.log_info_sync(target="shutdown", message="Log closed")


# ────────────── FastAPI application ──────────────
app = FastAPI(title="Storefront Payments & Admin API", lifespan=lifespan)
app.state.token_codec = token_codec
app.state.gateway = None

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# request.state.db
app.add_middleware(DBSessionMiddleware)

# admin pages need a valid session cookie
app.add_middleware(
    AdminSessionMiddleware,
    codec=token_codec,
    prefix=settings.ADMIN_PREFIX,
    login_path=settings.ADMIN_LOGIN_PATH,
    cookie_name=settings.SESSION_COOKIE_NAME,
)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    log = getattr(request.app.state, "log", None)
    if log:
        await log.log_error("app", f"Unhandled error: {exc!r}", {"path": request.url.path})
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/api/health")
def health():
    return {"status": "ok"}


# ────────────── Routers ──────────────
from storefront.routes import auth, order, payment, admin, pages  # noqa: E402

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(order.router, prefix="/api/orders", tags=["orders"])
app.include_router(payment.router, prefix="/api/payments", tags=["payments"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(pages.router, prefix=settings.ADMIN_PREFIX, include_in_schema=False)

# ────────────── uvicorn ──────────────
if __name__ == "__main__":
    boot_log.log_info_sync(target="startup", message="Starting uvicorn")
    uvicorn.run(
        "storefront.main:app",
        host="127.0.0.1",
        port=8000,
        log_level="info",
        reload=True
    )
