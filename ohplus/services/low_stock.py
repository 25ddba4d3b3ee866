"""Low stock monitoring for IT inventory.

A monitor keeps a Firestore listener on the active, non-deleted items of a
company. Every snapshot is turned into a list of alerts for items at or
below ``STOCK_THRESHOLD``; subscribers receive the full list, and items that
newly cross the threshold also raise an I.T. notification. An item only
alerts again after its stock recovers above the threshold.
"""

import logging
import threading
from typing import Callable

from ohplus.db import collections
from ohplus.db.firestore import doc_to_dict, now_ms, stream_dicts, utcnow, where
from ohplus.services import notifications

logger = logging.getLogger("ohplus.low_stock")

STOCK_THRESHOLD = 3

AlertCallback = Callable[[list[dict]], None]


def is_low_stock(stock: int) -> bool:
    return stock <= STOCK_THRESHOLD


def get_stock_status(stock: int) -> str:
    if stock == 0:
        return "critical"
    if stock <= STOCK_THRESHOLD:
        return "low"
    return "normal"


def user_display_name(users: dict[str, dict], uid: str | None) -> str:
    if not uid or uid == "unassigned":
        return "Unassigned"
    user = users.get(uid)
    if not user:
        return "Unknown User"
    full_name = f"{user.get('first_name', '')} {user.get('last_name', '')}".strip()
    return full_name or user.get("email", "")


def build_alert(item: dict, users: dict[str, dict]) -> dict:
    stock = int(item.get("stock") or 0)
    return {
        "id": f"alert_{item['id']}_{now_ms()}",
        "itemId": item["id"],
        "itemName": item.get("name", ""),
        "currentStock": stock,
        "threshold": STOCK_THRESHOLD,
        "category": item.get("category", ""),
        "brand": item.get("brand", ""),
        "department": item.get("department", ""),
        "assignedTo": user_display_name(users, item.get("assignedTo")),
        "alertLevel": "critical" if stock == 0 else "warning",
        "timestamp": utcnow(),
    }


def evaluate_items(items: list[dict], users: dict[str, dict]) -> list[dict]:
    return [build_alert(item, users) for item in items if is_low_stock(int(item.get("stock") or 0))]


def low_stock_query(db, company_id: str):
    query = where(db.collection(collections.IT_INVENTORY), "company_id", "==", company_id)
    query = where(query, "deleted", "==", False)
    query = where(query, "status", "==", "active")
    return query.order_by("stock")


def load_users(db, company_id: str) -> dict[str, dict]:
    query = where(db.collection(collections.USERS), "company_id", "==", company_id)
    users = {}
    for user in stream_dicts(query):
        users[user.get("uid") or user["id"]] = user
    return users


def notify_it_department(db, company_id: str, alert: dict) -> None:
    level = "Out of stock" if alert["alertLevel"] == "critical" else "Low stock"
    notifications.create_notification(
        db,
        notification_type="Low Stock",
        title=f"{level}: {alert['itemName']}",
        description=(
            f"{alert['itemName']} has {alert['currentStock']} left "
            f"(threshold {alert['threshold']})."
        ),
        company_id=company_id,
        department_to="I.T.",
        department_from="I.T.",
        navigate_to=f"/it/inventory/{alert['itemId']}",
    )


class LowStockMonitor:
    def __init__(self, db, company_id: str, notify: bool = True) -> None:
        self.db = db
        self.company_id = company_id
        self.notify = notify
        self.users: dict[str, dict] = {}
        self._watch = None
        self._callbacks: list[AlertCallback] = []
        self._alerts: list[dict] = []
        self._alerted: set[str] = set()
        self._dismissed: set[str] = set()
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._watch is not None

    def start(self) -> None:
        if self._watch is not None:
            self.stop()
        try:
            self.users = load_users(self.db, self.company_id)
        except Exception:
            logger.exception("failed to load users company_id=%s", self.company_id)
            self.users = {}
        self._watch = low_stock_query(self.db, self.company_id).on_snapshot(self._on_snapshot)
        logger.info("low stock monitor started company_id=%s", self.company_id)

    def stop(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None
        with self._lock:
            self._alerts = []
            self._alerted = set()
            self._dismissed = set()

    def _on_snapshot(self, snapshots, changes, read_time) -> None:
        try:
            items = [doc_to_dict(snapshot) for snapshot in snapshots]
            self.refresh(items)
        except Exception:
            logger.exception("low stock snapshot failed company_id=%s", self.company_id)

    def refresh(self, items: list[dict]) -> list[dict]:
        alerts = evaluate_items(items, self.users)
        with self._lock:
            low_ids = {alert["itemId"] for alert in alerts}
            new_alerts = [alert for alert in alerts if alert["itemId"] not in self._alerted]
            self._alerted = low_ids
            self._dismissed &= low_ids
            self._alerts = [alert for alert in alerts if alert["itemId"] not in self._dismissed]
            current = list(self._alerts)
        if self.notify:
            for alert in new_alerts:
                try:
                    notify_it_department(self.db, self.company_id, alert)
                except Exception:
                    logger.exception("failed to notify low stock item_id=%s", alert["itemId"])
        self._notify_callbacks(current)
        return new_alerts

    def on_alerts_changed(self, callback: AlertCallback) -> Callable[[], None]:
        self._callbacks.append(callback)
        callback(self.current_alerts())

        def _unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def _notify_callbacks(self, alerts: list[dict]) -> None:
        for callback in list(self._callbacks):
            try:
                callback(list(alerts))
            except Exception:
                logger.exception("low stock callback failed company_id=%s", self.company_id)

    def current_alerts(self) -> list[dict]:
        with self._lock:
            return list(self._alerts)

    def alerts_count(self) -> int:
        return len(self.current_alerts())

    def critical_count(self) -> int:
        return sum(1 for alert in self.current_alerts() if alert["alertLevel"] == "critical")

    def dismiss(self, item_id: str) -> bool:
        with self._lock:
            if item_id not in self._alerted:
                return False
            self._dismissed.add(item_id)
            self._alerts = [alert for alert in self._alerts if alert["itemId"] != item_id]
            current = list(self._alerts)
        self._notify_callbacks(current)
        return True

    def clear(self) -> None:
        with self._lock:
            self._dismissed |= self._alerted
            self._alerts = []
        self._notify_callbacks([])


_monitors: dict[str, LowStockMonitor] = {}
_registry_lock = threading.Lock()


def start_monitoring(db, company_id: str) -> LowStockMonitor:
    with _registry_lock:
        monitor = _monitors.get(company_id)
        if monitor is None:
            monitor = LowStockMonitor(db, company_id)
            _monitors[company_id] = monitor
        if not monitor.running:
            monitor.start()
        return monitor


def get_monitor(company_id: str) -> LowStockMonitor | None:
    return _monitors.get(company_id)


def stop_monitoring(company_id: str) -> None:
    with _registry_lock:
        monitor = _monitors.pop(company_id, None)
    if monitor:
        monitor.stop()


def stop_all() -> None:
    with _registry_lock:
        monitors = list(_monitors.values())
        _monitors.clear()
    for monitor in monitors:
        monitor.stop()
