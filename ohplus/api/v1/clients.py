from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from ohplus.core.security import display_name, require_permission
from ohplus.db.firestore import get_db
from ohplus.services import clients

router = APIRouter(tags=["Clients"])


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    designation: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zipCode: str | None = None
    industry: str | None = None
    notes: str | None = None
    status: str = "lead"
    companyLogoUrl: str | None = None


class ClientUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    designation: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zipCode: str | None = None
    industry: str | None = None
    notes: str | None = None
    status: str | None = None
    companyLogoUrl: str | None = None


@router.get("/clients")
def list_clients(
    limit: int = Query(20, ge=1, le=100),
    last_id: str | None = None,
    status_filter: str | None = Query(None, alias="status"),
    mine: bool = False,
    q: str | None = None,
    current_user: dict = Depends(require_permission("Clients", "read")),
    db=Depends(get_db),
):
    company_id = current_user.get("company_id")
    uploaded_by = current_user["uid"] if mine else None
    if q:
        items = clients.search_clients(db, q, company_id, status_filter, uploaded_by)
        return {"items": items[:limit], "lastId": None, "hasMore": len(items) > limit, "total": len(items)}
    page = clients.list_clients(db, company_id, limit, last_id, status_filter, uploaded_by)
    page["total"] = clients.count_clients(db, company_id, status_filter, uploaded_by)
    return page


@router.post("/clients", status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreate,
    current_user: dict = Depends(require_permission("Clients", "create")),
    db=Depends(get_db),
):
    data = payload.model_dump()
    data.update(
        {
            "company_id": current_user.get("company_id"),
            "uploadedBy": current_user["uid"],
            "uploadedByName": display_name(current_user),
        }
    )
    return clients.create_client(db, data)


@router.get("/clients/by-email")
def get_client_by_email(
    email: str = Query(..., min_length=3),
    current_user: dict = Depends(require_permission("Clients", "read")),
    db=Depends(get_db),
):
    return {"client": clients.get_client_by_email(db, email, current_user.get("company_id"))}


@router.get("/clients/{client_id}")
def get_client(
    client_id: str,
    current_user: dict = Depends(require_permission("Clients", "read")),
    db=Depends(get_db),
):
    return clients.get_client(db, client_id)


@router.patch("/clients/{client_id}")
def update_client(
    client_id: str,
    payload: ClientUpdate,
    current_user: dict = Depends(require_permission("Clients", "update")),
    db=Depends(get_db),
):
    return clients.update_client(db, client_id, payload.model_dump(exclude_unset=True))


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(
    client_id: str,
    current_user: dict = Depends(require_permission("Clients", "delete")),
    db=Depends(get_db),
):
    clients.delete_client(db, client_id)
