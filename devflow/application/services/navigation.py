"""
Navigation shell: sidebar menus, placeholder pages and the route guard.

Menus are static per role. The guard only looks at the authenticated flag
and, for admin pages, at the stored user's role.
"""

from typing import Optional

from pydantic import BaseModel

from devflow.domain.roles import Role, meets, route_minimum

LOGIN_PATH = "/login"
HOME_PATH = "/dashboard"
ADMIN_ONLY_NOTICE = "Only admins can access this page"

PROTECTED_PREFIXES = (
    "/dashboard",
    "/users",
    "/messages",
    "/quickcreate",
    "/tasks",
    "/calendar",
    "/data-library",
    "/reports",
    "/documentation",
    "/settings",
    "/help",
    "/search",
    "/analytics",
)


class NavItem(BaseModel):
    title: str
    url: str
    icon: str


class Sidebar(BaseModel):
    portal_title: str
    header_title: str
    quick_create_url: str
    main: list[NavItem]
    documents: list[NavItem]
    secondary: list[NavItem]


class PlaceholderPage(BaseModel):
    path: str
    title: str
    description: str


ADMIN_MENU = [
    NavItem(title="Dashboard", url="/dashboard", icon="dashboard"),
    NavItem(title="Users", url="/users", icon="users"),
    NavItem(title="Analytics", url="/analytics", icon="chart-bar"),
    NavItem(title="Tasks", url="/tasks", icon="list-check"),
    NavItem(title="Calendar", url="/calendar", icon="calendar-event"),
]

EMPLOYEE_MENU = [
    NavItem(title="Dashboard", url="/dashboard", icon="dashboard"),
    NavItem(title="Tasks", url="/tasks", icon="list-check"),
    NavItem(title="Calendar", url="/calendar", icon="calendar-event"),
]

DOCUMENT_LINKS = [
    NavItem(title="Data Library", url="/data-library", icon="database"),
    NavItem(title="Reports", url="/reports", icon="report"),
    NavItem(title="Documentation", url="/documentation", icon="file-word"),
]

SECONDARY_LINKS = [
    NavItem(title="Settings", url="/settings", icon="settings"),
    NavItem(title="Get Help", url="/help", icon="help"),
    NavItem(title="Search", url="/search", icon="search"),
]

_SOON = "will be available after your training has been completed. Here you'll be able to"

PLACEHOLDER_PAGES = {
    page.path: page
    for page in [
        PlaceholderPage(
            path="/analytics",
            title="Analytics",
            description=f"The analytics feature {_SOON} view comprehensive business metrics, "
            "performance data, and generate reports.",
        ),
        PlaceholderPage(
            path="/calendar",
            title="Calendar",
            description=f"The calendar feature {_SOON} view and manage your schedule, meetings, "
            "and important dates.",
        ),
        PlaceholderPage(
            path="/data-library",
            title="Data Library",
            description=f"The data library {_SOON} access and manage company data, resources, "
            "and analytics.",
        ),
        PlaceholderPage(
            path="/documentation",
            title="Documentation",
            description=f"The documentation feature {_SOON} access company documentation, guides, "
            "and resources.",
        ),
        PlaceholderPage(
            path="/help",
            title="Help Center",
            description=f"The help center {_SOON} access support resources and get assistance "
            "with the platform.",
        ),
        PlaceholderPage(
            path="/reports",
            title="Reports",
            description=f"The reports feature {_SOON} view and generate various reports for "
            "business analysis.",
        ),
        PlaceholderPage(
            path="/search",
            title="Search",
            description=f"The search feature {_SOON} search for content across the entire platform.",
        ),
        PlaceholderPage(
            path="/settings",
            title="Settings",
            description=f"The settings feature {_SOON} manage your account settings and preferences.",
        ),
        PlaceholderPage(
            path="/tasks",
            title="Tasks Management",
            description=f"The task management feature {_SOON} view, manage, and track all your "
            "assigned tasks.",
        ),
    ]
}


def sidebar_for(role: Optional[Role]) -> Sidebar:
    is_admin = role is Role.ADMIN
    return Sidebar(
        portal_title="Admin Portal" if is_admin else "Employee Portal",
        header_title="My Sales Dashboard" if role is Role.SALES else "Admin Dashboard",
        quick_create_url="/quickcreate",
        main=ADMIN_MENU if is_admin else EMPLOYEE_MENU,
        documents=DOCUMENT_LINKS,
        secondary=SECONDARY_LINKS,
    )


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_protected_path(path: str) -> bool:
    return any(_matches(path, prefix) for prefix in PROTECTED_PREFIXES)


def is_guarded_path(path: str) -> bool:
    return path == LOGIN_PATH or is_protected_path(path)


class GuardDecision(BaseModel):
    model_config = {"frozen": True}

    redirect_to: Optional[str] = None
    notice: Optional[str] = None


def guard_route(path: str, authenticated: bool, role: Optional[Role] = None) -> GuardDecision:
    """Decide whether a page request proceeds or is redirected."""
    if path == LOGIN_PATH:
        return GuardDecision(redirect_to=HOME_PATH) if authenticated else GuardDecision()

    if not is_protected_path(path):
        return GuardDecision()

    if not authenticated:
        return GuardDecision(redirect_to=LOGIN_PATH)

    minimum = route_minimum(path)
    if minimum is not None and not meets(role, minimum):
        return GuardDecision(redirect_to=HOME_PATH, notice=ADMIN_ONLY_NOTICE)

    return GuardDecision()
