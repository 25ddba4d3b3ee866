from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ohplus.core.security import require_permission, require_roles
from ohplus.db.firestore import get_db
from ohplus.services import inventory, low_stock

router = APIRouter(tags=["IT Inventory"])


class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = "hardware"
    category: str | None = None
    brand: str | None = None
    department: str | None = None
    assignedTo: str | None = None
    stock: int = Field(0, ge=0)
    status: str = "active"
    condition: str | None = None
    serialNumber: str | None = None
    location: str | None = None
    cost: float | None = None
    description: str | None = None


class ItemUpdate(BaseModel):
    name: str | None = None
    type: str | None = None
    category: str | None = None
    brand: str | None = None
    department: str | None = None
    assignedTo: str | None = None
    stock: int | None = Field(None, ge=0)
    status: str | None = None
    condition: str | None = None
    serialNumber: str | None = None
    location: str | None = None
    cost: float | None = None
    description: str | None = None


def _with_stock_status(item: dict) -> dict:
    return {**item, "stockStatus": low_stock.get_stock_status(int(item.get("stock") or 0))}


def _monitor_state(monitor: low_stock.LowStockMonitor) -> dict:
    return {
        "running": monitor.running,
        "threshold": low_stock.STOCK_THRESHOLD,
        "alerts": monitor.current_alerts(),
        "alertsCount": monitor.alerts_count(),
        "criticalCount": monitor.critical_count(),
    }


@router.get("/inventory")
def list_items(
    current_user: dict = Depends(require_permission("IT Inventory", "read")),
    db=Depends(get_db),
):
    items = inventory.list_items(db, current_user.get("company_id"))
    return {"items": [_with_stock_status(item) for item in items]}


@router.post("/inventory", status_code=status.HTTP_201_CREATED)
def create_item(
    payload: ItemCreate,
    current_user: dict = Depends(require_permission("IT Inventory", "create")),
    db=Depends(get_db),
):
    item = inventory.create_item(
        db, payload.model_dump(), current_user.get("company_id"), current_user["uid"]
    )
    return _with_stock_status(item)


@router.get("/inventory/low-stock")
def get_low_stock_alerts(
    current_user: dict = Depends(require_permission("IT Inventory", "read")),
    db=Depends(get_db),
):
    company_id = current_user.get("company_id")
    if not company_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User has no company")
    return _monitor_state(low_stock.start_monitoring(db, company_id))


@router.post("/inventory/low-stock/{item_id}/dismiss")
def dismiss_low_stock_alert(
    item_id: str,
    current_user: dict = Depends(require_permission("IT Inventory", "update")),
):
    monitor = low_stock.get_monitor(current_user.get("company_id") or "")
    if not monitor or not monitor.dismiss(item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
    return _monitor_state(monitor)


@router.post("/inventory/low-stock/clear")
def clear_low_stock_alerts(
    current_user: dict = Depends(require_permission("IT Inventory", "update")),
):
    monitor = low_stock.get_monitor(current_user.get("company_id") or "")
    if not monitor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Monitor not running")
    monitor.clear()
    return _monitor_state(monitor)


@router.delete("/inventory/low-stock", status_code=status.HTTP_204_NO_CONTENT)
def stop_low_stock_monitor(
    current_user: dict = Depends(require_roles("it")),
):
    low_stock.stop_monitoring(current_user.get("company_id") or "")


@router.get("/inventory/{item_id}")
def get_item(
    item_id: str,
    current_user: dict = Depends(require_permission("IT Inventory", "read")),
    db=Depends(get_db),
):
    return _with_stock_status(inventory.get_item(db, item_id))


@router.patch("/inventory/{item_id}")
def update_item(
    item_id: str,
    payload: ItemUpdate,
    current_user: dict = Depends(require_permission("IT Inventory", "update")),
    db=Depends(get_db),
):
    item = inventory.update_item(db, item_id, payload.model_dump(exclude_unset=True))
    return _with_stock_status(item)


@router.delete("/inventory/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: str,
    current_user: dict = Depends(require_permission("IT Inventory", "delete")),
    db=Depends(get_db),
):
    inventory.delete_item(db, item_id)
