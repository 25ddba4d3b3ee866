from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    create_document,
    paginate,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)

PRODUCT_TYPES = ("RENTAL", "MERCHANDISE")
CONTENT_TYPES = ("static", "dynamic")
NO_IMAGE_LABEL = "NO IMAGE"


def format_content_type(content_type: str | None) -> str:
    if not content_type:
        return ""
    return content_type[0].upper() + content_type[1:].lower()


def get_thumbnail(product: dict) -> str | None:
    for media in product.get("media") or []:
        url = media.get("url") if isinstance(media, dict) else None
        if url:
            return url
    return None


def get_location(product: dict) -> str:
    return ((product.get("specs_rental") or {}).get("location")) or product.get("location") or ""


def product_matches(product: dict, term: str) -> bool:
    needle = (term or "").strip().lower()
    if not needle:
        return True
    return any(
        needle in str(value or "").lower()
        for value in (product.get("name"), get_location(product), product.get("description"))
    )


def create_product(db, data: dict) -> dict:
    if not data.get("name"):
        raise InvalidInputError("Product name is required")
    product_type = (data.get("type") or "RENTAL").upper()
    if product_type not in PRODUCT_TYPES:
        raise InvalidInputError(f"Invalid product type: {product_type}")
    content_type = data.get("content_type")
    if content_type and content_type.lower() not in CONTENT_TYPES:
        raise InvalidInputError(f"Invalid content type: {content_type}")
    stamp = utcnow()
    payload = {
        **data,
        "type": product_type,
        "status": data.get("status") or "PENDING",
        "position": data.get("position") or 0,
        "deleted": bool(data.get("deleted", False)),
        "active": bool(data.get("active", True)),
        "media": data.get("media") or [],
        "created": stamp,
        "updated": stamp,
    }
    return create_document(db, collections.PRODUCTS, payload)


def get_product(db, product_id: str) -> dict:
    return require_document(db, collections.PRODUCTS, product_id, "Product")


def update_product(db, product_id: str, changes: dict) -> dict:
    get_product(db, product_id)
    changes = {key: value for key, value in changes.items() if key not in ("id", "created")}
    changes["updated"] = utcnow()
    update_document(db, collections.PRODUCTS, product_id, changes)
    return get_product(db, product_id)


def soft_delete_product(db, product_id: str) -> None:
    get_product(db, product_id)
    stamp = utcnow()
    update_document(
        db,
        collections.PRODUCTS,
        product_id,
        {"deleted": True, "date_deleted": stamp, "updated": stamp},
    )


def _company_query(db, company_id: str, active: bool | None = None):
    query = where(db.collection(collections.PRODUCTS), "company_id", "==", company_id)
    query = where(query, "deleted", "==", False)
    if active is not None:
        query = where(query, "active", "==", active)
    return query


def list_products(
    db,
    company_id: str,
    limit: int = 16,
    last_id: str | None = None,
    active: bool | None = None,
    search: str | None = None,
) -> dict:
    query = _company_query(db, company_id, active).order_by("name")
    if search:
        items = [p for p in stream_dicts(query) if product_matches(p, search)]
        return {"items": items[:limit], "lastId": None, "hasMore": len(items) > limit}
    return paginate(db, collections.PRODUCTS, query, limit, last_id)


def count_products(db, company_id: str, active: bool | None = None, search: str | None = None) -> int:
    products = stream_dicts(_company_query(db, company_id, active))
    return sum(1 for product in products if product_matches(product, search or ""))


def list_products_by_seller(db, seller_id: str) -> list[dict]:
    query = where(db.collection(collections.PRODUCTS), "seller_id", "==", seller_id)
    return [p for p in stream_dicts(query) if p.get("deleted") is not True]


def list_products_by_content_type(
    db,
    company_id: str,
    content_type: str,
    search: str | None = None,
    limit: int = 16,
) -> dict:
    wanted = (content_type or "").strip().lower()
    if wanted not in CONTENT_TYPES:
        raise InvalidInputError(f"Invalid content type: {content_type}")
    products = [
        product
        for product in stream_dicts(_company_query(db, company_id, active=True))
        if str(product.get("content_type") or "").lower() == wanted
        and product_matches(product, search or "")
    ]
    products.sort(key=lambda product: product.get("name") or "")
    return {"items": products[:limit], "total": len(products), "hasMore": len(products) > limit}
