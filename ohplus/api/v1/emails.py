import base64
import binascii

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ohplus.core.errors import InvalidInputError
from ohplus.core.security import get_current_user
from ohplus.db.firestore import get_db
from ohplus.services import emails

router = APIRouter(tags=["Emails"])


class AttachmentIn(BaseModel):
    filename: str = Field(..., min_length=1)
    content: str
    content_type: str = "application/pdf"


class EmailSend(BaseModel):
    to: list[str] = Field(..., min_length=1)
    cc: list[str] | None = None
    subject: str = Field(..., min_length=1)
    body: str = ""
    email_type: str = "general"
    attachments: list[AttachmentIn] = []
    proposalId: str | None = None
    costEstimateId: str | None = None
    quotationId: str | None = None


def _decode_attachment(attachment: AttachmentIn) -> emails.EmailAttachment:
    try:
        content = base64.b64decode(attachment.content, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidInputError(f"Attachment {attachment.filename} is not valid base64")
    return emails.EmailAttachment(attachment.filename, content, attachment.content_type)


@router.post("/send-email")
def send_email(
    payload: EmailSend,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    related = {
        key: value
        for key, value in (
            ("proposalId", payload.proposalId),
            ("costEstimateId", payload.costEstimateId),
            ("quotationId", payload.quotationId),
        )
        if value
    }
    result = emails.send_email(
        db,
        to=payload.to,
        cc=payload.cc,
        subject=payload.subject,
        body=payload.body,
        email_type=payload.email_type,
        user_id=current_user["uid"],
        attachments=[_decode_attachment(a) for a in payload.attachments],
        related=related,
    )
    return {"success": True, **result}


@router.get("/emails")
def list_emails(
    email_type: str | None = Query(None, alias="type"),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return {"emails": emails.list_emails(db, current_user["uid"], email_type)}


@router.get("/emails/{email_id}")
def get_email(
    email_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return emails.get_email(db, email_id)
