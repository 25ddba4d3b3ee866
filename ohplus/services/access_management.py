import logging

from ohplus.core.errors import InvalidInputError, NotFoundError
from ohplus.db import collections
from ohplus.db.firestore import (
    create_document,
    get_document,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)

logger = logging.getLogger("ohplus.access")

PERMISSION_ACTIONS = ("view", "create", "edit", "delete")

# Firestore permission actions use the UI vocabulary.
ACTION_ALIASES = {"view": "read", "edit": "update", "create": "create", "delete": "delete"}


def _check_action(action: str) -> None:
    if action not in PERMISSION_ACTIONS:
        raise InvalidInputError(f"Invalid action: {action}")


def create_permission(db, name: str, description: str, module: str, action: str) -> dict:
    _check_action(action)
    stamp = utcnow()
    data = {
        "name": name,
        "description": description,
        "module": module,
        "action": action,
        "createdAt": stamp,
        "updatedAt": stamp,
    }
    return create_document(db, collections.PERMISSIONS, data)


def list_permissions(db) -> list[dict]:
    return stream_dicts(db.collection(collections.PERMISSIONS))


def update_permission(db, permission_id: str, changes: dict) -> dict:
    require_document(db, collections.PERMISSIONS, permission_id, "Permission")
    if "action" in changes:
        _check_action(changes["action"])
    changes = {**changes, "updatedAt": utcnow()}
    update_document(db, collections.PERMISSIONS, permission_id, changes)
    return get_document(db, collections.PERMISSIONS, permission_id)


def delete_permission(db, permission_id: str) -> None:
    require_document(db, collections.PERMISSIONS, permission_id, "Permission")
    db.collection(collections.PERMISSIONS).document(permission_id).delete()


def create_role(
    db,
    name: str,
    description: str = "",
    permissions: list[str] | None = None,
    is_admin: bool = False,
) -> dict:
    stamp = utcnow()
    data = {
        "name": name,
        "description": description,
        "permissions": list(permissions or []),
        "isAdmin": is_admin,
        "createdAt": stamp,
        "updatedAt": stamp,
    }
    return create_document(db, collections.ROLES, data)


def list_roles(db) -> list[dict]:
    return stream_dicts(db.collection(collections.ROLES))


def get_role(db, role_id: str) -> dict:
    return require_document(db, collections.ROLES, role_id, "Role")


def update_role(db, role_id: str, changes: dict) -> dict:
    get_role(db, role_id)
    changes = {**changes, "updatedAt": utcnow()}
    update_document(db, collections.ROLES, role_id, changes)
    return get_document(db, collections.ROLES, role_id)


def delete_role(db, role_id: str) -> None:
    get_role(db, role_id)
    query = where(db.collection(collections.USER_ROLES), "roleId", "==", role_id)
    for snapshot in query.stream():
        snapshot.reference.delete()
    db.collection(collections.ROLES).document(role_id).delete()


def _user_role_links(db, user_id: str, role_id: str | None = None) -> list:
    query = where(db.collection(collections.USER_ROLES), "userId", "==", user_id)
    if role_id:
        query = where(query, "roleId", "==", role_id)
    return list(query.stream())


def assign_role(db, user_id: str, role_id: str) -> dict:
    get_role(db, role_id)
    existing = _user_role_links(db, user_id, role_id)
    if existing:
        link = existing[0]
        return {**(link.to_dict() or {}), "id": link.id}
    data = {"userId": user_id, "roleId": role_id, "assignedAt": utcnow()}
    return create_document(db, collections.USER_ROLES, data)


def revoke_role(db, user_id: str, role_id: str) -> None:
    links = _user_role_links(db, user_id, role_id)
    if not links:
        raise NotFoundError("Role assignment not found")
    for link in links:
        link.reference.delete()


def get_user_roles(db, user_id: str) -> list[dict]:
    roles = []
    for link in _user_role_links(db, user_id):
        role = get_document(db, collections.ROLES, (link.to_dict() or {}).get("roleId"))
        if role:
            roles.append(role)
    return roles


def _permissions_for_roles(db, roles: list[dict]) -> list[dict]:
    if any(role.get("isAdmin") for role in roles):
        return list_permissions(db)
    permission_ids: list[str] = []
    for role in roles:
        for permission_id in role.get("permissions") or []:
            if permission_id not in permission_ids:
                permission_ids.append(permission_id)
    permissions = []
    for permission_id in permission_ids:
        permission = get_document(db, collections.PERMISSIONS, permission_id)
        if permission:
            permissions.append(permission)
        else:
            logger.warning("role references missing permission id=%s", permission_id)
    return permissions


def get_user_permissions(db, user_id: str) -> list[dict]:
    return _permissions_for_roles(db, get_user_roles(db, user_id))


def user_has_permission(db, user_id: str, module: str, action: str) -> bool:
    roles = get_user_roles(db, user_id)
    if any(role.get("isAdmin") for role in roles):
        return True
    for permission in _permissions_for_roles(db, roles):
        if permission.get("module") != module:
            continue
        if ACTION_ALIASES.get(permission.get("action"), permission.get("action")) == action:
            return True
    return False


def list_users(db, license_key: str) -> list[dict]:
    query = where(db.collection(collections.USERS), "license_key", "==", license_key)
    users = stream_dicts(query)
    for user in users:
        user.pop("password", None)
    return users
