from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ohplus.core.security import require_permission
from ohplus.db.firestore import get_db
from ohplus.services import service_assignments
from ohplus.services.pdf import render_service_assignment_pdf

router = APIRouter(tags=["Service Assignments"])


class AssignmentCreate(BaseModel):
    projectSiteId: str = Field(..., min_length=1)
    projectSiteName: str | None = None
    projectSiteLocation: str | None = None
    serviceType: str | None = None
    assignedTo: str | None = None
    jobDescription: str | None = None
    message: str | None = None
    coveredDateStart: str | None = None
    coveredDateEnd: str | None = None
    jobOrderId: str | None = None
    status: str | None = None


class AssignmentUpdate(BaseModel):
    projectSiteName: str | None = None
    projectSiteLocation: str | None = None
    serviceType: str | None = None
    assignedTo: str | None = None
    jobDescription: str | None = None
    message: str | None = None
    coveredDateStart: str | None = None
    coveredDateEnd: str | None = None
    status: str | None = None


@router.get("/service-assignments")
def list_assignments(
    current_user: dict = Depends(require_permission("Service Assignments", "read")),
    db=Depends(get_db),
):
    return {"assignments": service_assignments.list_assignments(db, current_user.get("company_id"))}


@router.post("/service-assignments", status_code=status.HTTP_201_CREATED)
def create_assignment(
    payload: AssignmentCreate,
    current_user: dict = Depends(require_permission("Service Assignments", "create")),
    db=Depends(get_db),
):
    return service_assignments.create_assignment(
        db, payload.model_dump(), current_user["uid"], current_user.get("company_id")
    )


@router.get("/service-assignments/{assignment_id}")
def get_assignment(
    assignment_id: str,
    current_user: dict = Depends(require_permission("Service Assignments", "read")),
    db=Depends(get_db),
):
    return service_assignments.get_assignment(db, assignment_id)


@router.patch("/service-assignments/{assignment_id}")
def update_assignment(
    assignment_id: str,
    payload: AssignmentUpdate,
    current_user: dict = Depends(require_permission("Service Assignments", "update")),
    db=Depends(get_db),
):
    return service_assignments.update_assignment(
        db, assignment_id, payload.model_dump(exclude_unset=True)
    )


@router.get("/service-assignments/{assignment_id}/pdf")
def download_assignment_pdf(
    assignment_id: str,
    current_user: dict = Depends(require_permission("Service Assignments", "read")),
    db=Depends(get_db),
):
    assignment = service_assignments.get_assignment(db, assignment_id)
    filename = f"{assignment.get('saNumber') or assignment_id}.pdf"
    return Response(
        content=render_service_assignment_pdf(assignment),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
