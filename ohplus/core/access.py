"""Hardcoded department roles and permission lookups.

Every role lists the modules it can touch and the actions allowed on each
one. A user holding several roles gets the union of what those roles grant.
"""

from typing import Iterable

ALL_ACTIONS = ["create", "read", "update", "delete"]


def _perm(module: str, actions: list[str] | None = None) -> dict:
    return {"module": module, "actions": list(actions or ALL_ACTIONS)}


HARDCODED_ROLES: dict[str, dict] = {
    "admin": {
        "id": "admin",
        "name": "Administrator",
        "description": "Full access to all system features and settings",
        "permissions": [
            _perm("User Management"),
            _perm("Access Management"),
            _perm("System Settings"),
            _perm("Sales"),
            _perm("Logistics"),
            _perm("CMS"),
            _perm("Subscriptions"),
            _perm("Analytics", ["read"]),
        ],
    },
    "sales": {
        "id": "sales",
        "name": "Sales Team",
        "description": "Access to sales-related features and client management",
        "permissions": [
            _perm("Clients"),
            _perm("Proposals"),
            _perm("Quotations"),
            _perm("Cost Estimates"),
            _perm("Job Orders"),
            _perm("Bookings"),
            _perm("Products"),
            _perm("Project Campaigns"),
            _perm("Sales Chat", ["create", "read", "update"]),
            _perm("Sales Dashboard", ["read"]),
            _perm("Sales Planner", ["create", "read", "update"]),
        ],
    },
    "logistics": {
        "id": "logistics",
        "name": "Logistics Team",
        "description": "Access to logistics operations and site management",
        "permissions": [
            _perm("Sites"),
            _perm("Service Assignments"),
            _perm("Service Reports"),
            _perm("Bulletin Board"),
            _perm("Alerts"),
            _perm("Logistics Dashboard", ["read"]),
            _perm("Logistics Planner", ["create", "read", "update"]),
            _perm("Weather Forecast", ["read"]),
        ],
    },
    "cms": {
        "id": "cms",
        "name": "Content Management",
        "description": "Access to content management and media features",
        "permissions": [
            _perm("Content"),
            _perm("Media Management"),
            _perm("Campaign Planning"),
            _perm("Site Content"),
            _perm("CMS Dashboard", ["read"]),
            _perm("Content Planner", ["create", "read", "update"]),
            _perm("Orders", ["read", "update"]),
        ],
    },
    "it": {
        "id": "it",
        "name": "IT Team",
        "description": "Access to IT inventory and stock alerts",
        "permissions": [
            _perm("IT Inventory"),
            _perm("Alerts", ["read", "update"]),
            _perm("IT Dashboard", ["read"]),
        ],
    },
    "finance": {
        "id": "finance",
        "name": "Finance Team",
        "description": "Access to finance records and reports",
        "permissions": [
            _perm("Finance"),
            _perm("Reports", ["read"]),
        ],
    },
    "treasury": {
        "id": "treasury",
        "name": "Treasury Team",
        "description": "Access to treasury and collectibles",
        "permissions": [
            _perm("Treasury"),
            _perm("Collectibles"),
        ],
    },
    "accounting": {
        "id": "accounting",
        "name": "Accounting Team",
        "description": "Access to accounting and sales records",
        "permissions": [
            _perm("Accounting"),
            _perm("Sales Records", ["read", "update"]),
        ],
    },
    "business": {
        "id": "business",
        "name": "Business Development",
        "description": "Access to business dashboards and site inventory",
        "permissions": [
            _perm("Business Dashboard", ["read"]),
            _perm("Inventory", ["read"]),
        ],
    },
}


def get_all_roles() -> list[dict]:
    return list(HARDCODED_ROLES.values())


def get_role_by_id(role_id: str) -> dict | None:
    return HARDCODED_ROLES.get((role_id or "").lower())


def get_role_permissions(role_id: str) -> list[dict]:
    role = get_role_by_id(role_id)
    return role["permissions"] if role else []


def has_permission(user_roles: Iterable[str], module: str, action: str) -> bool:
    for role_id in user_roles or []:
        for permission in get_role_permissions(role_id):
            if permission["module"] == module and action in permission["actions"]:
                return True
    return False


def has_module_access(user_roles: Iterable[str], module: str) -> bool:
    for role_id in user_roles or []:
        if any(p["module"] == module for p in get_role_permissions(role_id)):
            return True
    return False


def get_user_accessible_modules(user_roles: Iterable[str]) -> list[str]:
    modules: set[str] = set()
    for role_id in user_roles or []:
        modules.update(p["module"] for p in get_role_permissions(role_id))
    return sorted(modules)
