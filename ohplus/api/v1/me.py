from fastapi import APIRouter, Depends, Query

from ohplus.core.access import get_all_roles, get_user_accessible_modules
from ohplus.core.role_routing import can_access_admin, can_access_route, get_role_dashboard
from ohplus.core.security import get_current_user
from ohplus.db.firestore import get_db
from ohplus.services import access_management

router = APIRouter(tags=["User"])


def _primary_role(user: dict) -> str | None:
    roles = user.get("roles") or []
    if user.get("role"):
        return str(user["role"]).lower()
    return roles[0] if roles else None


@router.get("/me")
def get_me(
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    roles = current_user.get("roles") or []
    firestore_roles = access_management.get_user_roles(db, current_user["uid"])
    return {
        "user": current_user,
        "roles": roles,
        "firestoreRoles": firestore_roles,
        "modules": get_user_accessible_modules(roles),
        "dashboard": get_role_dashboard(_primary_role(current_user)),
        "isAdmin": can_access_admin(roles),
    }


@router.get("/me/access")
def check_access(
    path: str = Query(..., min_length=1),
    current_user: dict = Depends(get_current_user),
):
    roles = current_user.get("roles") or []
    allowed = can_access_route(roles, path)
    return {
        "path": path,
        "allowed": allowed,
        "redirect": None if allowed else get_role_dashboard(_primary_role(current_user)),
    }


@router.get("/roles/hardcoded")
def list_hardcoded_roles(current_user: dict = Depends(get_current_user)):
    return {"roles": get_all_roles()}
