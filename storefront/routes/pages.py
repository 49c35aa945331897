# storefront/routes/pages.py
# Placeholder admin pages; the real UI is served elsewhere.

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

PAGE = "<!doctype html><html><head><title>{title}</title></head><body><h1>{title}</h1></body></html>"


@router.get("/login", response_class=HTMLResponse, include_in_schema=False)
async def login_page():
    return PAGE.format(title="Admin login")


@router.get("", response_class=HTMLResponse, include_in_schema=False)
async def dashboard_page():
    return PAGE.format(title="Admin dashboard")


@router.get("/orders", response_class=HTMLResponse, include_in_schema=False)
async def orders_page():
    return PAGE.format(title="Orders")
