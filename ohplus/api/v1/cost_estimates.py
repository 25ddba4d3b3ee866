from typing import Any

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ohplus.core.security import decode_view_token, require_permission
from ohplus.db.firestore import get_db
from ohplus.services import cost_estimates
from ohplus.services.pdf import render_cost_estimate_pdf

router = APIRouter(tags=["Cost Estimates"])


class CostEstimateCreate(BaseModel):
    proposalId: str = Field(..., min_length=1)
    notes: str = ""
    lineItems: list[dict[str, Any]] | None = None
    send: bool = False


class CostEstimateUpdate(BaseModel):
    title: str | None = None
    notes: str | None = None
    lineItems: list[dict[str, Any]] | None = None


class StatusUpdate(BaseModel):
    status: str
    rejectionReason: str | None = None


class CostEstimateSend(BaseModel):
    cc: list[str] | None = None


class PublicOpen(BaseModel):
    password: str = Field(..., min_length=1)


class PublicResponse(BaseModel):
    decision: str
    reason: str | None = None


@router.get("/cost-estimates")
def list_cost_estimates(
    current_user: dict = Depends(require_permission("Cost Estimates", "read")),
    db=Depends(get_db),
):
    return {"costEstimates": cost_estimates.list_by_company(db, current_user.get("company_id"))}


@router.post("/cost-estimates", status_code=status.HTTP_201_CREATED)
def create_cost_estimate(
    payload: CostEstimateCreate,
    current_user: dict = Depends(require_permission("Cost Estimates", "create")),
    db=Depends(get_db),
):
    return cost_estimates.create_from_proposal(
        db, payload.proposalId, current_user, payload.notes, payload.lineItems, payload.send
    )


@router.get("/cost-estimates/{cost_estimate_id}")
def get_cost_estimate(
    cost_estimate_id: str,
    current_user: dict = Depends(require_permission("Cost Estimates", "read")),
    db=Depends(get_db),
):
    return cost_estimates.get_cost_estimate(db, cost_estimate_id)


@router.patch("/cost-estimates/{cost_estimate_id}")
def update_cost_estimate(
    cost_estimate_id: str,
    payload: CostEstimateUpdate,
    current_user: dict = Depends(require_permission("Cost Estimates", "update")),
    db=Depends(get_db),
):
    return cost_estimates.update_cost_estimate(
        db, cost_estimate_id, payload.model_dump(exclude_unset=True)
    )


@router.patch("/cost-estimates/{cost_estimate_id}/status")
def update_cost_estimate_status(
    cost_estimate_id: str,
    payload: StatusUpdate,
    current_user: dict = Depends(require_permission("Cost Estimates", "update")),
    db=Depends(get_db),
):
    return cost_estimates.update_status(
        db, cost_estimate_id, payload.status, current_user["uid"], payload.rejectionReason
    )


@router.get("/cost-estimates/{cost_estimate_id}/pdf")
def download_cost_estimate_pdf(
    cost_estimate_id: str,
    current_user: dict = Depends(require_permission("Cost Estimates", "read")),
    db=Depends(get_db),
):
    cost_estimate = cost_estimates.get_cost_estimate(db, cost_estimate_id)
    return Response(
        content=render_cost_estimate_pdf(cost_estimate),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="cost-estimate-{cost_estimate_id}.pdf"'},
    )


@router.post("/cost-estimates/{cost_estimate_id}/send")
def send_cost_estimate(
    cost_estimate_id: str,
    payload: CostEstimateSend,
    current_user: dict = Depends(require_permission("Cost Estimates", "update")),
    db=Depends(get_db),
):
    return cost_estimates.send_cost_estimate(db, cost_estimate_id, current_user, payload.cc)


@router.post("/cost-estimates/public/{cost_estimate_id}")
def open_public_cost_estimate(cost_estimate_id: str, payload: PublicOpen, db=Depends(get_db)):
    return cost_estimates.view_public(db, cost_estimate_id, payload.password)


@router.get("/cost-estimates/public/{cost_estimate_id}/pdf")
def download_public_pdf(
    cost_estimate_id: str,
    x_view_token: str | None = Header(None),
    db=Depends(get_db),
):
    decode_view_token(x_view_token, cost_estimate_id, "cost_estimate")
    cost_estimate = cost_estimates.get_cost_estimate(db, cost_estimate_id)
    return Response(content=render_cost_estimate_pdf(cost_estimate), media_type="application/pdf")


@router.post("/cost-estimates/public/{cost_estimate_id}/respond")
def respond_public_cost_estimate(
    cost_estimate_id: str,
    payload: PublicResponse,
    x_view_token: str | None = Header(None),
    db=Depends(get_db),
):
    decode_view_token(x_view_token, cost_estimate_id, "cost_estimate")
    return cost_estimates.respond_public(db, cost_estimate_id, payload.decision, payload.reason)
