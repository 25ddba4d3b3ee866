import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ohplus.core.errors import InvalidInputError, NotFoundError
from ohplus.core.security import require_permission
from ohplus.db.firestore import get_db
from ohplus.services import proposal_templates

logger = logging.getLogger("ohplus.proposal_templates")

router = APIRouter(tags=["Proposal Templates"])


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    content: str = ""
    category: str | None = None
    isDefault: bool = False


class TemplateUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    content: str | None = None
    category: str | None = None
    isDefault: bool | None = None


def _failure(exc: Exception) -> JSONResponse:
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InvalidInputError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        logger.exception("proposal template operation failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to process template"},
        )
    return JSONResponse(status_code=code, content={"success": False, "error": str(exc)})


@router.get("/proposal-templates")
def list_templates(
    current_user: dict = Depends(require_permission("Proposals", "read")),
    db=Depends(get_db),
):
    try:
        templates = proposal_templates.list_templates(db, current_user.get("company_id"))
        return {"success": True, "data": templates}
    except Exception as exc:
        return _failure(exc)


@router.post("/proposal-templates", status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreate,
    current_user: dict = Depends(require_permission("Proposals", "create")),
    db=Depends(get_db),
):
    try:
        template = proposal_templates.create_template(
            db, payload.model_dump(), current_user.get("company_id"), current_user["uid"]
        )
        return {"success": True, "data": template}
    except Exception as exc:
        return _failure(exc)


@router.get("/proposal-templates/{template_id}")
def get_template(
    template_id: str,
    current_user: dict = Depends(require_permission("Proposals", "read")),
    db=Depends(get_db),
):
    try:
        return {"success": True, "data": proposal_templates.get_template(db, template_id)}
    except Exception as exc:
        return _failure(exc)


@router.patch("/proposal-templates/{template_id}")
def update_template(
    template_id: str,
    payload: TemplateUpdate,
    current_user: dict = Depends(require_permission("Proposals", "update")),
    db=Depends(get_db),
):
    try:
        template = proposal_templates.update_template(
            db, template_id, payload.model_dump(exclude_unset=True)
        )
        return {"success": True, "data": template}
    except Exception as exc:
        return _failure(exc)


@router.delete("/proposal-templates/{template_id}")
def delete_template(
    template_id: str,
    current_user: dict = Depends(require_permission("Proposals", "delete")),
    db=Depends(get_db),
):
    try:
        proposal_templates.delete_template(db, template_id)
        return {"success": True, "data": {"id": template_id}}
    except Exception as exc:
        return _failure(exc)
