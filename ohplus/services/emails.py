import base64
import logging
import os
from dataclasses import dataclass

import resend

from ohplus.core.config import settings
from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    drop_none,
    now_ms,
    require_document,
    stream_dicts,
    utcnow,
    where,
)

logger = logging.getLogger("ohplus.email")

EMAIL_TYPES = ("CE", "quotation", "report", "proposals", "invitation", "general")


class EmailError(RuntimeError):
    pass


@dataclass
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


def text_to_html(body: str) -> str:
    return (body or "").replace("\r\n", "\n").replace("\n", "<br>")


def create_email_record(db, data: dict) -> dict:
    stamp = utcnow()
    record = drop_none({**data, "created": stamp, "updated": stamp})
    return create_document(db, collections.EMAILS, record)


def _record_quietly(db, data: dict) -> str | None:
    try:
        return create_email_record(db, data)["id"]
    except Exception:
        logger.exception("failed to store email record subject=%s", data.get("subject"))
        return None


def send_email(
    db,
    to: list[str],
    subject: str,
    body: str,
    email_type: str = "general",
    user_id: str | None = None,
    cc: list[str] | None = None,
    attachments: list[EmailAttachment] | None = None,
    related: dict | None = None,
) -> dict:
    if email_type not in EMAIL_TYPES:
        raise InvalidInputError(f"Invalid email type: {email_type}")
    recipients = [address.strip() for address in to or [] if address and address.strip()]
    if not recipients:
        raise InvalidInputError("At least one recipient is required")
    if not subject:
        raise InvalidInputError("Subject is required")

    html_body = text_to_html(body)
    record = {
        "from": settings.EMAIL_FROM,
        "to": recipients,
        "cc": cc or None,
        "subject": subject,
        "body": body,
        "email_type": email_type,
        "userId": user_id,
        "attachments": [
            {"fileName": a.filename, "fileSize": len(a.content), "fileType": a.content_type}
            for a in attachments or []
        ]
        or None,
        **(related or {}),
    }

    api_key = os.getenv("RESEND_API_KEY")
    if not api_key:
        logger.info("email demo mode to=%s subject=%s", recipients, subject)
        result = {"messageId": f"demo_{now_ms()}", "mode": "demo"}
    else:
        resend.api_key = api_key
        params = {
            "from": settings.EMAIL_FROM,
            "to": recipients,
            "subject": subject,
            "html": html_body,
        }
        if cc:
            params["cc"] = cc
        if attachments:
            params["attachments"] = [
                {"filename": a.filename, "content": base64.b64encode(a.content).decode()}
                for a in attachments
            ]
        try:
            response = resend.Emails.send(params)
        except Exception as exc:
            logger.exception("resend failed to=%s subject=%s", recipients, subject)
            _record_quietly(db, {**record, "status": "failed", "error": str(exc)})
            raise EmailError("Failed to send email") from exc
        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        result = {"messageId": message_id, "mode": "live"}

    result["emailId"] = _record_quietly(
        db,
        {**record, "status": "sent", "sentAt": utcnow(), "messageId": result["messageId"]},
    )
    return result


def list_emails(db, user_id: str, email_type: str | None = None) -> list[dict]:
    query = where(db.collection(collections.EMAILS), "userId", "==", user_id)
    if email_type:
        query = where(query, "email_type", "==", email_type)
    return stream_dicts(query.order_by("created", direction=DESCENDING))


def get_email(db, email_id: str) -> dict:
    return require_document(db, collections.EMAILS, email_id, "Email")
