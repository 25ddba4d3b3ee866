import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request, status
from firebase_admin import auth
from jose import JWTError, jwt
from passlib.context import CryptContext

from ohplus.core.access import has_permission
from ohplus.core.config import settings
from ohplus.core.firebase import get_firebase_app
from ohplus.db import collections
from ohplus.db.firestore import get_db, get_document
from ohplus.services import access_management

logger = logging.getLogger("ohplus.auth")

code_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits


def _extract_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("authorization", "")
    if not auth_header.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    return auth_header.split(" ", 1)[1].strip()


def user_role_ids(user: dict) -> list[str]:
    roles = [str(role).lower() for role in user.get("roles") or [] if role]
    legacy = user.get("role")
    if legacy and str(legacy).lower() not in roles:
        roles.append(str(legacy).lower())
    return roles


def get_current_user(request: Request, db=Depends(get_db)) -> dict:
    token = _extract_bearer_token(request)
    try:
        get_firebase_app()
        decoded = auth.verify_id_token(token)
    except Exception:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    uid = decoded.get("uid")
    user = get_document(db, collections.USERS, uid)
    if not user:
        logger.warning("authenticated uid=%s has no user profile", uid)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User profile not found")
    user["uid"] = uid
    user["roles"] = user_role_ids(user)
    user.pop("password", None)
    return user


def require_permission(module: str, action: str):
    def _dependency(
        user: dict = Depends(get_current_user),
        db=Depends(get_db),
    ) -> dict:
        roles = user.get("roles") or []
        if "admin" in roles or has_permission(roles, module, action):
            return user
        if access_management.user_has_permission(db, user["uid"], module, action):
            return user
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permission denied")

    return _dependency


def require_roles(*roles: str):
    wanted = {role.lower() for role in roles}

    def _dependency(user: dict = Depends(get_current_user)) -> dict:
        held = set(user.get("roles") or [])
        if "admin" in held or held & wanted:
            return user
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permission denied")

    return _dependency


def generate_access_code(length: int = 8) -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(length))


def hash_access_code(code: str) -> str:
    return code_context.hash(code.strip().upper())


def verify_access_code(code: str | None, hashed: str | None) -> bool:
    if not code or not hashed:
        return False
    try:
        return code_context.verify(code.strip().upper(), hashed)
    except ValueError:
        return False


def create_view_token(doc_id: str, kind: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=settings.VIEW_TOKEN_EXPIRE_HOURS)
    )
    to_encode: dict[str, Any] = {"sub": doc_id, "kind": kind, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_view_token(token: str | None, doc_id: str, kind: str) -> None:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid view token",
    )
    if not token:
        raise credentials_exception
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_exception
    if payload.get("sub") != doc_id or payload.get("kind") != kind:
        raise credentials_exception


def display_name(user: dict) -> str:
    full_name = f"{user.get('first_name', '')} {user.get('last_name', '')}".strip()
    return full_name or user.get("displayName") or user.get("email") or ""
