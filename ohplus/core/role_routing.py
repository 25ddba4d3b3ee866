from typing import Iterable

DEFAULT_DASHBOARD = "/admin/dashboard"

ROLE_DASHBOARDS = {
    "admin": "/admin/dashboard",
    "sales": "/sales/dashboard",
    "logistics": "/logistics/dashboard",
    "cms": "/cms/dashboard",
    "it": "/it/dashboard",
    "finance": "/finance/dashboard",
    "treasury": "/treasury/dashboard",
    "accounting": "/accounting/dashboard",
    "business": "/business/inventory",
}

DEPARTMENT_PREFIXES = (
    "sales",
    "logistics",
    "cms",
    "it",
    "finance",
    "treasury",
    "accounting",
    "business",
)


def get_role_dashboard(role: str | None) -> str:
    return ROLE_DASHBOARDS.get((role or "").strip().lower(), DEFAULT_DASHBOARD)


def _normalize(roles: Iterable[str]) -> set[str]:
    return {str(role).strip().lower() for role in roles or [] if role}


def can_access_admin(roles: Iterable[str]) -> bool:
    return "admin" in _normalize(roles)


def can_access_route(roles: Iterable[str], path: str) -> bool:
    normalized = _normalize(roles)
    segment = path.strip("/").split("/", 1)[0].lower()
    if segment == "admin":
        return "admin" in normalized
    if segment in DEPARTMENT_PREFIXES:
        return "admin" in normalized or segment in normalized
    return True
