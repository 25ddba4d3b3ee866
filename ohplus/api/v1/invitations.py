from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ohplus.core.security import require_permission
from ohplus.db.firestore import get_db
from ohplus.services import invitation_codes

router = APIRouter(tags=["Invitations"])


class InvitationCreate(BaseModel):
    description: str = ""
    maxUses: int = Field(1, ge=1)
    expiresAt: datetime | None = None
    role: str | None = None


class InvitationSend(BaseModel):
    recipients: list[str] = Field(..., min_length=1)
    message: str = ""


class CodeIn(BaseModel):
    code: str = Field(..., min_length=1)


@router.get("/invitation-codes")
def list_codes(
    current_user: dict = Depends(require_permission("User Management", "read")),
    db=Depends(get_db),
):
    return {"codes": invitation_codes.list_codes(db, current_user.get("company_id"))}


@router.post("/invitation-codes", status_code=status.HTTP_201_CREATED)
def create_code(
    payload: InvitationCreate,
    current_user: dict = Depends(require_permission("User Management", "create")),
    db=Depends(get_db),
):
    return invitation_codes.create_code(
        db,
        current_user.get("company_id"),
        current_user["uid"],
        payload.description,
        payload.maxUses,
        payload.expiresAt,
        payload.role,
    )


@router.delete("/invitation-codes/{code_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_code(
    code_id: str,
    current_user: dict = Depends(require_permission("User Management", "delete")),
    db=Depends(get_db),
):
    invitation_codes.delete_code(db, code_id)


@router.post("/invitation-codes/{code_id}/send")
def send_invitation(
    code_id: str,
    payload: InvitationSend,
    current_user: dict = Depends(require_permission("User Management", "create")),
    db=Depends(get_db),
):
    return invitation_codes.send_invitation(
        db, code_id, payload.recipients, current_user, payload.message
    )


@router.post("/invitation-codes/validate")
def validate_code(payload: CodeIn, db=Depends(get_db)):
    return invitation_codes.validate_code(db, payload.code)


@router.post("/invitation-codes/redeem")
def redeem_code(payload: CodeIn, db=Depends(get_db)):
    return invitation_codes.use_code(db, payload.code)
