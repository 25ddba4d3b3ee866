from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Header, status
from pydantic import BaseModel, Field

from ohplus.core.security import decode_view_token, require_permission
from ohplus.db.firestore import get_db
from ohplus.services import cost_estimates, proposals

router = APIRouter(tags=["Proposals"])


class ProposalCreate(BaseModel):
    title: str = Field(..., min_length=1)
    client: dict[str, Any]
    product_ids: list[str] = Field(..., min_length=1)
    notes: str = ""
    customMessage: str = ""
    validUntil: datetime | None = None
    campaignId: str | None = None


class ProposalUpdate(BaseModel):
    title: str | None = None
    client: dict[str, Any] | None = None
    product_ids: list[str] | None = None
    notes: str | None = None
    customMessage: str | None = None
    validUntil: datetime | None = None
    campaignId: str | None = None
    status: str | None = None


class StatusUpdate(BaseModel):
    status: str


class ProposalSend(BaseModel):
    subject: str | None = None
    message: str | None = None
    cc: list[str] | None = None


class PublicOpen(BaseModel):
    password: str = Field(..., min_length=1)


class PublicResponse(BaseModel):
    decision: str


@router.get("/proposals")
def list_proposals(
    mine: bool = False,
    current_user: dict = Depends(require_permission("Proposals", "read")),
    db=Depends(get_db),
):
    user_id = current_user["uid"] if mine else None
    return {"proposals": proposals.list_proposals(db, current_user.get("company_id"), user_id)}


@router.post("/proposals", status_code=status.HTTP_201_CREATED)
def create_proposal(
    payload: ProposalCreate,
    current_user: dict = Depends(require_permission("Proposals", "create")),
    db=Depends(get_db),
):
    return proposals.create_proposal(
        db,
        title=payload.title,
        client=payload.client,
        product_ids=payload.product_ids,
        user_id=current_user["uid"],
        company_id=current_user.get("company_id"),
        notes=payload.notes,
        custom_message=payload.customMessage,
        valid_until=payload.validUntil,
        campaign_id=payload.campaignId,
    )


@router.get("/proposals/{proposal_id}")
def get_proposal(
    proposal_id: str,
    current_user: dict = Depends(require_permission("Proposals", "read")),
    db=Depends(get_db),
):
    return proposals.get_proposal(db, proposal_id)


@router.patch("/proposals/{proposal_id}")
def update_proposal(
    proposal_id: str,
    payload: ProposalUpdate,
    current_user: dict = Depends(require_permission("Proposals", "update")),
    db=Depends(get_db),
):
    return proposals.update_proposal(db, proposal_id, payload.model_dump(exclude_unset=True))


@router.patch("/proposals/{proposal_id}/status")
def update_proposal_status(
    proposal_id: str,
    payload: StatusUpdate,
    current_user: dict = Depends(require_permission("Proposals", "update")),
    db=Depends(get_db),
):
    return proposals.update_status(db, proposal_id, payload.status)


@router.delete("/proposals/{proposal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_proposal(
    proposal_id: str,
    current_user: dict = Depends(require_permission("Proposals", "delete")),
    db=Depends(get_db),
):
    proposals.delete_proposal(db, proposal_id)


@router.post("/proposals/{proposal_id}/send")
def send_proposal(
    proposal_id: str,
    payload: ProposalSend,
    current_user: dict = Depends(require_permission("Proposals", "update")),
    db=Depends(get_db),
):
    return proposals.send_proposal(
        db, proposal_id, current_user, payload.subject, payload.message, payload.cc
    )


@router.get("/proposals/{proposal_id}/cost-estimates")
def list_proposal_cost_estimates(
    proposal_id: str,
    current_user: dict = Depends(require_permission("Cost Estimates", "read")),
    db=Depends(get_db),
):
    return {"costEstimates": cost_estimates.list_by_proposal(db, proposal_id)}


@router.post("/proposals/public/{proposal_id}")
def open_public_proposal(proposal_id: str, payload: PublicOpen, db=Depends(get_db)):
    return proposals.view_public(db, proposal_id, payload.password)


@router.post("/proposals/public/{proposal_id}/respond")
def respond_public_proposal(
    proposal_id: str,
    payload: PublicResponse,
    x_view_token: str | None = Header(None),
    db=Depends(get_db),
):
    decode_view_token(x_view_token, proposal_id, "proposal")
    return proposals.respond_public(db, proposal_id, payload.decision)
