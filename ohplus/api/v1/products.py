from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from ohplus.core.security import require_permission
from ohplus.db.firestore import get_db
from ohplus.services import bookings, products, service_assignments

router = APIRouter(tags=["Products"])


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = 0
    type: str = "RENTAL"
    content_type: str | None = None
    location: str | None = None
    site_code: str | None = None
    media: list[dict[str, Any]] = []
    specs_rental: dict[str, Any] | None = None
    cms: dict[str, Any] | None = None
    categories: list[str] = []
    active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    price: float | None = None
    content_type: str | None = None
    location: str | None = None
    site_code: str | None = None
    media: list[dict[str, Any]] | None = None
    specs_rental: dict[str, Any] | None = None
    cms: dict[str, Any] | None = None
    categories: list[str] | None = None
    active: bool | None = None
    status: str | None = None
    position: int | None = None


def to_response(product: dict) -> dict:
    thumbnail = products.get_thumbnail(product)
    return {
        **product,
        "thumbnail": thumbnail,
        "thumbnailLabel": None if thumbnail else products.NO_IMAGE_LABEL,
        "location": products.get_location(product),
        "contentTypeLabel": products.format_content_type(product.get("content_type")),
    }


@router.get("/products")
def list_products(
    limit: int = Query(16, ge=1, le=100),
    last_id: str | None = None,
    active: bool | None = None,
    q: str | None = None,
    current_user: dict = Depends(require_permission("Products", "read")),
    db=Depends(get_db),
):
    company_id = current_user.get("company_id")
    page = products.list_products(db, company_id, limit, last_id, active, q)
    page["items"] = [to_response(p) for p in page["items"]]
    page["total"] = products.count_products(db, company_id, active, q)
    return page


@router.get("/products/content-type/{content_type}")
def list_by_content_type(
    content_type: str,
    q: str | None = None,
    limit: int = Query(16, ge=1, le=100),
    current_user: dict = Depends(require_permission("Products", "read")),
    db=Depends(get_db),
):
    page = products.list_products_by_content_type(
        db, current_user.get("company_id"), content_type, q, limit
    )
    page["items"] = [to_response(p) for p in page["items"]]
    return page


@router.get("/products/seller/{seller_id}")
def list_by_seller(
    seller_id: str,
    current_user: dict = Depends(require_permission("Products", "read")),
    db=Depends(get_db),
):
    return {"items": [to_response(p) for p in products.list_products_by_seller(db, seller_id)]}


@router.post("/products", status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    current_user: dict = Depends(require_permission("Products", "create")),
    db=Depends(get_db),
):
    data = payload.model_dump(exclude_none=True)
    data.update({"company_id": current_user.get("company_id"), "seller_id": current_user["uid"]})
    return to_response(products.create_product(db, data))


@router.get("/products/{product_id}")
def get_product(
    product_id: str,
    current_user: dict = Depends(require_permission("Products", "read")),
    db=Depends(get_db),
):
    return to_response(products.get_product(db, product_id))


@router.patch("/products/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdate,
    current_user: dict = Depends(require_permission("Products", "update")),
    db=Depends(get_db),
):
    return to_response(products.update_product(db, product_id, payload.model_dump(exclude_unset=True)))


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: str,
    current_user: dict = Depends(require_permission("Products", "delete")),
    db=Depends(get_db),
):
    products.soft_delete_product(db, product_id)


@router.get("/products/{product_id}/bookings")
def list_product_bookings(
    product_id: str,
    current_user: dict = Depends(require_permission("Bookings", "read")),
    db=Depends(get_db),
):
    return {"bookings": bookings.list_product_bookings(db, product_id)}


@router.get("/products/{product_id}/service-assignments")
def list_product_assignments(
    product_id: str,
    active_only: bool = False,
    current_user: dict = Depends(require_permission("Service Assignments", "read")),
    db=Depends(get_db),
):
    if active_only:
        items = service_assignments.list_active_by_site(db, product_id)
    else:
        items = service_assignments.list_by_site(db, product_id)
    return {"assignments": items}
