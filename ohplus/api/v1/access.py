from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ohplus.core.security import require_permission
from ohplus.db.firestore import get_db
from ohplus.services import access_management

router = APIRouter(tags=["Access Management"])


class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    module: str = Field(..., min_length=1)
    action: str


class PermissionUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    module: str | None = None
    action: str | None = None


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    isAdmin: bool = False
    permissions: list[str] = []


class RoleUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    isAdmin: bool | None = None
    permissions: list[str] | None = None


class RoleAssignment(BaseModel):
    roleId: str = Field(..., min_length=1)


@router.get("/access/permissions")
def list_permissions(
    current_user: dict = Depends(require_permission("Access Management", "read")),
    db=Depends(get_db),
):
    return {"permissions": access_management.list_permissions(db)}


@router.post("/access/permissions", status_code=status.HTTP_201_CREATED)
def create_permission(
    payload: PermissionCreate,
    current_user: dict = Depends(require_permission("Access Management", "create")),
    db=Depends(get_db),
):
    return access_management.create_permission(
        db, payload.name, payload.description, payload.module, payload.action
    )


@router.patch("/access/permissions/{permission_id}")
def update_permission(
    permission_id: str,
    payload: PermissionUpdate,
    current_user: dict = Depends(require_permission("Access Management", "update")),
    db=Depends(get_db),
):
    return access_management.update_permission(db, permission_id, payload.model_dump(exclude_unset=True))


@router.delete("/access/permissions/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_permission(
    permission_id: str,
    current_user: dict = Depends(require_permission("Access Management", "delete")),
    db=Depends(get_db),
):
    access_management.delete_permission(db, permission_id)


@router.get("/access/roles")
def list_roles(
    current_user: dict = Depends(require_permission("Access Management", "read")),
    db=Depends(get_db),
):
    return {"roles": access_management.list_roles(db)}


@router.post("/access/roles", status_code=status.HTTP_201_CREATED)
def create_role(
    payload: RoleCreate,
    current_user: dict = Depends(require_permission("Access Management", "create")),
    db=Depends(get_db),
):
    return access_management.create_role(
        db, payload.name, payload.description, payload.permissions, payload.isAdmin
    )


@router.get("/access/roles/{role_id}")
def get_role(
    role_id: str,
    current_user: dict = Depends(require_permission("Access Management", "read")),
    db=Depends(get_db),
):
    return access_management.get_role(db, role_id)


@router.patch("/access/roles/{role_id}")
def update_role(
    role_id: str,
    payload: RoleUpdate,
    current_user: dict = Depends(require_permission("Access Management", "update")),
    db=Depends(get_db),
):
    return access_management.update_role(db, role_id, payload.model_dump(exclude_unset=True))


@router.delete("/access/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    role_id: str,
    current_user: dict = Depends(require_permission("Access Management", "delete")),
    db=Depends(get_db),
):
    access_management.delete_role(db, role_id)


@router.get("/access/users")
def list_users(
    current_user: dict = Depends(require_permission("User Management", "read")),
    db=Depends(get_db),
):
    return {"users": access_management.list_users(db, current_user.get("license_key") or "")}


@router.get("/access/users/{user_id}/roles")
def get_user_roles(
    user_id: str,
    current_user: dict = Depends(require_permission("Access Management", "read")),
    db=Depends(get_db),
):
    return {"roles": access_management.get_user_roles(db, user_id)}


@router.get("/access/users/{user_id}/permissions")
def get_user_permissions(
    user_id: str,
    current_user: dict = Depends(require_permission("Access Management", "read")),
    db=Depends(get_db),
):
    return {"permissions": access_management.get_user_permissions(db, user_id)}


@router.post("/access/users/{user_id}/roles", status_code=status.HTTP_201_CREATED)
def assign_role(
    user_id: str,
    payload: RoleAssignment,
    current_user: dict = Depends(require_permission("Access Management", "update")),
    db=Depends(get_db),
):
    return access_management.assign_role(db, user_id, payload.roleId)


@router.delete("/access/users/{user_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_role(
    user_id: str,
    role_id: str,
    current_user: dict = Depends(require_permission("Access Management", "update")),
    db=Depends(get_db),
):
    access_management.revoke_role(db, user_id, role_id)
