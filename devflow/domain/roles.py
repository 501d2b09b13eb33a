"""Roles and the permission policy shared by every portal view.

Roles are ranked: sales and engineer share the employee rank, admin sits
above them. Routes and actions name the minimum role they need.
"""

from enum import Enum
from typing import Optional


class Role(str, Enum):
    ADMIN = "admin"
    SALES = "sales"
    ENGINEER = "engineer"

    @property
    def rank(self) -> int:
        return 2 if self is Role.ADMIN else 1

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class Action(str, Enum):
    VIEW_PIPELINE = "view_pipeline"
    CREATE_PROJECT = "create_project"
    EDIT_PROJECT = "edit_project"
    DELETE_PROJECT = "delete_project"
    ASSIGN_SALES_REP = "assign_sales_rep"
    MANAGE_USERS = "manage_users"
    READ_INBOX = "read_inbox"
    COMPOSE_EMAIL = "compose_email"


ROUTE_POLICY: dict[str, Role] = {
    "/users": Role.ADMIN,
    "/messages": Role.ADMIN,
}

ACTION_POLICY: dict[Action, Role] = {
    Action.VIEW_PIPELINE: Role.SALES,
    Action.CREATE_PROJECT: Role.SALES,
    Action.EDIT_PROJECT: Role.ADMIN,
    Action.DELETE_PROJECT: Role.ADMIN,
    Action.ASSIGN_SALES_REP: Role.ADMIN,
    Action.MANAGE_USERS: Role.ADMIN,
    Action.READ_INBOX: Role.ADMIN,
    Action.COMPOSE_EMAIL: Role.SALES,
}


def meets(role: Optional[Role], minimum: Role) -> bool:
    return role is not None and role.rank >= minimum.rank


def route_minimum(path: str) -> Optional[Role]:
    """Minimum role for a page path, matching the path and its sub-paths."""
    for prefix, minimum in ROUTE_POLICY.items():
        if path == prefix or path.startswith(prefix + "/"):
            return minimum
    return None


class Permissions:
    """Actions a role may perform, evaluated once when a view is built."""

    def __init__(self, role: Optional[Role]):
        self.role = role
        self._allowed = frozenset(
            action for action, minimum in ACTION_POLICY.items() if meets(role, minimum)
        )

    def can(self, action: Action) -> bool:
        return action in self._allowed

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_sales(self) -> bool:
        return self.role is Role.SALES

    def __repr__(self):
        return f"<Permissions {self.role} {sorted(a.value for a in self._allowed)}>"
