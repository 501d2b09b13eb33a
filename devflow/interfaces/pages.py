"""
Page routes.

The route guard middleware has already redirected unauthenticated or
under-privileged requests by the time these run. Each page answers with the
static content a renderer needs; data comes from the ``/api`` routes.
"""

from fastapi import APIRouter, Request

from devflow.application.services.navigation import PLACEHOLDER_PAGES, sidebar_for
from devflow.core.exceptions import EntityNotFoundException
from devflow.infrastructure.storage import USER_KEY, read_stored_user

router = APIRouter(tags=["Pages"])


def _sidebar(request: Request):
    user = read_stored_user(request.cookies.get(USER_KEY))
    return sidebar_for(user.role if user else None)


@router.get("/login")
def login_page():
    return {
        "page": "login",
        "title": "DEMS",
        "description": "Enter your username and PIN to sign in",
        "footer": "DevFlow Employee Management System",
    }


@router.get("/dashboard")
def dashboard_page(request: Request):
    sidebar = _sidebar(request)
    return {"page": "dashboard", "title": sidebar.header_title, "sidebar": sidebar}


@router.get("/users")
def users_page(request: Request):
    return {"page": "users", "title": "Employees", "sidebar": _sidebar(request)}


@router.get("/messages")
def messages_page(request: Request):
    return {"page": "messages", "title": "Messages", "sidebar": _sidebar(request)}


@router.get("/quickcreate")
def quickcreate_page(request: Request):
    return {
        "page": "quickcreate",
        "title": "Quick Create",
        "description": "Use this form to send an email to your client. "
        "You can format your message using the rich text editor.",
        "sidebar": _sidebar(request),
    }


@router.get("/{slug}")
def placeholder_page(slug: str, request: Request):
    page = PLACEHOLDER_PAGES.get(f"/{slug}")
    if page is None:
        raise EntityNotFoundException(f"Page /{slug} not found")
    return {
        "page": slug,
        "title": page.title,
        "description": page.description,
        "coming_soon": True,
        "sidebar": _sidebar(request),
    }
