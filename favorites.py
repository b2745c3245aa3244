"""
Favorites: per-user set membership over products.

Membership changes are single conditional updates against the user document
($push guarded by $ne, $pull guarded by membership) so concurrent requests for
the same user never overwrite each other's changes.
"""

from pymongo import ReturnDocument

from catalog import find_active, serialize_products
from database import collection, now, to_object_id
from errors import AlreadyFavorited, NotInFavorites, Unauthorized
from logger import get_logger

_logger = get_logger(__name__)


def _push(user_id, product_id):
    return collection("user").find_one_and_update(
        {"_id": user_id, "favorites": {"$ne": product_id}},
        {"$push": {"favorites": product_id}, "$set": {"updated_at": now()}},
        projection={"favorites": 1},
        return_document=ReturnDocument.AFTER,
    )


def _pull(user_id, product_id):
    return collection("user").find_one_and_update(
        {"_id": user_id, "favorites": product_id},
        {"$pull": {"favorites": product_id}, "$set": {"updated_at": now()}},
        projection={"favorites": 1},
        return_document=ReturnDocument.AFTER,
    )


def _ensure_user(user_id):
    if collection("user").find_one({"_id": user_id}, {"_id": 1}) is None:
        raise Unauthorized("Token is invalid or user no longer exists.")


def list_favorites(user: dict) -> dict:
    """Active favorited products in insertion order; inactive ones stay stored but hidden."""
    stored = collection("user").find_one({"_id": user["_id"]}, {"favorites": 1}) or {}
    ids = stored.get("favorites", [])
    docs = {d["_id"]: d for d in collection("product").find({"_id": {"$in": ids}, "is_active": True})}
    products = serialize_products([docs[pid] for pid in ids if pid in docs])
    return {"favorites": products, "count": len(products)}


def add_favorite(user: dict, product_id) -> dict:
    product = find_active(product_id)
    updated = _push(user["_id"], product["_id"])
    if updated is None:
        _ensure_user(user["_id"])
        raise AlreadyFavorited()
    _logger.info(f"User {user['_id']} favorited {product['_id']}")
    return {"favoriteId": str(product["_id"]), "favoritesCount": len(updated["favorites"])}


def remove_favorite(user: dict, product_id) -> dict:
    oid = to_object_id(product_id, "product ID")
    updated = _pull(user["_id"], oid)
    if updated is None:
        _ensure_user(user["_id"])
        raise NotInFavorites()
    _logger.info(f"User {user['_id']} unfavorited {oid}")
    return {"favoriteId": str(oid), "favoritesCount": len(updated["favorites"])}


def toggle_favorite(user: dict, product_id) -> dict:
    product = find_active(product_id)
    # a concurrent toggle can flip membership between the two attempts; retry once
    for _ in range(2):
        updated = _pull(user["_id"], product["_id"])
        if updated is not None:
            is_favorited = False
            break
        updated = _push(user["_id"], product["_id"])
        if updated is not None:
            is_favorited = True
            break
    else:
        _ensure_user(user["_id"])
        raise AlreadyFavorited("Favorite changed concurrently, try again")
    _logger.info(f"User {user['_id']} toggled {product['_id']} -> {is_favorited}")
    return {"isFavorited": is_favorited, "favoritesCount": len(updated["favorites"])}
