from fastapi import APIRouter, Depends

from ohplus.core.security import require_permission
from ohplus.db.firestore import get_db
from ohplus.services import dashboard

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard/sales")
def get_sales_dashboard(
    current_user: dict = Depends(require_permission("Sales Dashboard", "read")),
    db=Depends(get_db),
):
    return dashboard.sales_summary(db, current_user.get("company_id"))


@router.get("/dashboard/business")
def get_business_dashboard(
    current_user: dict = Depends(require_permission("Business Dashboard", "read")),
    db=Depends(get_db),
):
    return dashboard.business_summary(db, current_user.get("company_id"))


@router.get("/dashboard/cms/{product_id}")
def get_cms_dashboard(
    product_id: str,
    current_user: dict = Depends(require_permission("CMS Dashboard", "read")),
    db=Depends(get_db),
):
    return dashboard.cms_summary(db, product_id)
