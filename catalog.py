"""
Catalog: product listing queries and seller-scoped mutations.

Listing parameters arrive as raw query-string values and are normalized by
CatalogQuery.from_params; malformed numbers fall back to defaults instead of
failing. Every read path only ever sees products with is_active = True.
"""

import math
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument

from database import collection, create_document, iso, now, to_object_id
from errors import Forbidden, NotFound
from logger import get_logger
from schemas import CATEGORIES, ProductCreate, ProductUpdate

_logger = get_logger(__name__)

DEFAULT_LIMIT = 9
MAX_LIMIT = 50
# skip is sent as a BSON int64
MAX_SKIP = 2 ** 63 - 1
DEFAULT_SORT = "createdAt"

# public sort key -> stored field
SORT_FIELDS = {
    "price": "price",
    "createdAt": "created_at",
    "rating": "rating",
    "title": "title",
}


def _to_int(val) -> Optional[int]:
    try:
        return int(float(val))
    except (TypeError, ValueError, OverflowError):
        return None


def _to_float(val) -> Optional[float]:
    if val is None or (isinstance(val, str) and not val.strip()):
        return None
    try:
        num = float(val)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


@dataclass(frozen=True)
class CatalogQuery:
    search: str = ""
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort_by: str = DEFAULT_SORT
    sort_order: str = "desc"
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_params(
        cls,
        search=None,
        page=None,
        limit=None,
        category=None,
        min_price=None,
        max_price=None,
        sort_by=None,
        sort_order=None,
    ) -> "CatalogQuery":
        page_num = _to_int(page)
        limit_num = _to_int(limit)
        limit_num = min(MAX_LIMIT, max(1, limit_num)) if limit_num is not None else DEFAULT_LIMIT
        page_num = min(max(1, page_num), MAX_SKIP // limit_num + 1) if page_num is not None else 1
        return cls(
            search=(search or "").strip(),
            category=category if category and category != "All" else None,
            min_price=_to_float(min_price),
            max_price=_to_float(max_price),
            sort_by=sort_by if sort_by in SORT_FIELDS else DEFAULT_SORT,
            sort_order="asc" if sort_order == "asc" else "desc",
            page=page_num,
            limit=limit_num,
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def filter(self) -> dict:
        query = {"is_active": True}
        if self.search:
            pattern = {"$regex": re.escape(self.search), "$options": "i"}
            query["$or"] = [
                {"title": pattern},
                {"description": pattern},
                {"tags": pattern},
            ]
        if self.category:
            query["category"] = self.category
        if self.min_price is not None or self.max_price is not None:
            query["price"] = {}
            if self.min_price is not None:
                query["price"]["$gte"] = self.min_price
            if self.max_price is not None:
                query["price"]["$lte"] = self.max_price
        return query

    def sort(self) -> list:
        direction = ASCENDING if self.sort_order == "asc" else DESCENDING
        # _id breaks ties in insertion order
        return [(SORT_FIELDS[self.sort_by], direction), ("_id", ASCENDING)]


def seller_summaries(seller_ids: Iterable) -> dict:
    ids = list({sid for sid in seller_ids if sid is not None})
    if not ids:
        return {}
    docs = collection("user").find({"_id": {"$in": ids}}, {"name": 1, "email": 1})
    return {d["_id"]: {"id": str(d["_id"]), "name": d.get("name"), "email": d.get("email")} for d in docs}


def serialize_product(doc: dict, sellers: Optional[dict] = None) -> dict:
    if sellers is None:
        sellers = seller_summaries([doc.get("seller")])
    seller_id = doc.get("seller")
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "price": doc.get("price"),
        "description": doc.get("description"),
        "image": doc.get("image", ""),
        "category": doc.get("category", "Other"),
        "stock": doc.get("stock", 0),
        "rating": doc.get("rating", 0),
        "numReviews": doc.get("num_reviews", 0),
        "tags": doc.get("tags", []),
        "seller": sellers.get(seller_id, {"id": str(seller_id) if seller_id else None}),
        "isActive": doc.get("is_active", True),
        "createdAt": iso(doc.get("created_at")),
        "updatedAt": iso(doc.get("updated_at")),
    }


def serialize_products(docs: list) -> list:
    sellers = seller_summaries(d.get("seller") for d in docs)
    return [serialize_product(d, sellers) for d in docs]


def query_products(query: CatalogQuery) -> dict:
    products = collection("product")
    criteria = query.filter()
    docs = list(
        products.find(criteria).sort(query.sort()).skip(query.skip).limit(query.limit)
    )
    total = products.count_documents(criteria)
    total_pages = math.ceil(total / query.limit)
    return {
        "products": serialize_products(docs),
        "pagination": {
            "currentPage": query.page,
            "totalPages": total_pages,
            "totalProducts": total,
            "limit": query.limit,
            "hasNextPage": query.page < total_pages,
            "hasPrevPage": query.page > 1,
        },
    }


def categories() -> list:
    return ["All", *CATEGORIES]


def find_active(product_id) -> dict:
    oid = to_object_id(product_id, "product ID")
    product = collection("product").find_one({"_id": oid, "is_active": True})
    if not product:
        raise NotFound("Product not found")
    return product


def get_product(product_id) -> dict:
    return serialize_product(find_active(product_id))


def create_product(payload: ProductCreate, owner: dict) -> dict:
    doc = payload.model_dump()
    doc.update(seller=owner["_id"], rating=0, num_reviews=0, is_active=True)
    product_id = create_document("product", doc)
    _logger.info(f"Product {product_id} created by {owner['_id']}")
    return serialize_product(collection("product").find_one({"_id": to_object_id(product_id)}))


def load_editable(product_id, user: dict, action: str) -> dict:
    """Fetch a product the user may modify: its seller or an admin."""
    oid = to_object_id(product_id, "product ID")
    product = collection("product").find_one({"_id": oid})
    allowed = product is not None and (
        product.get("seller") == user["_id"] or user.get("role") == "admin"
    )
    if not product or (not product.get("is_active", True) and not allowed):
        raise NotFound("Product not found")
    if not allowed:
        raise Forbidden(f"Not authorized to {action} this product")
    return product


def update_product(product_id, payload: ProductUpdate, user: dict) -> dict:
    product = load_editable(product_id, user, "update")
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        return serialize_product(product)
    changes["updated_at"] = now()
    updated = collection("product").find_one_and_update(
        {"_id": product["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    _logger.info(f"Product {product['_id']} updated by {user['_id']}: {sorted(changes)}")
    return serialize_product(updated)


def soft_delete_product(product_id, user: dict) -> None:
    product = load_editable(product_id, user, "delete")
    collection("product").update_one(
        {"_id": product["_id"]},
        {"$set": {"is_active": False, "updated_at": now()}},
    )
    _logger.info(f"Product {product['_id']} deactivated by {user['_id']}")
