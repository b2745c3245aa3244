"""
Database helpers

Holds the shared MongoDB handle and the small set of helpers the services use
to reach collections. Collection names are the lowercased schema names:
- User -> "user"
- Product -> "product"
"""

from datetime import datetime, timezone
from typing import Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

import config
from errors import Internal, ValidationError
from logger import get_logger

_logger = get_logger(__name__)

db = None


def init_db(database=None):
    """Bind the module-level handle and make sure the indexes exist.

    Without an argument the handle is built from DATABASE_URL; tests pass an
    in-memory database instead.
    """
    global db
    if database is None:
        if not config.DATABASE_URL:
            _logger.warning("DATABASE_URL not set, database is not configured")
            db = None
            return None
        database = MongoClient(config.DATABASE_URL)[config.DATABASE_NAME]
    db = database
    db["user"].create_index("email", unique=True)
    db["product"].create_index([("is_active", ASCENDING), ("created_at", DESCENDING)])
    db["product"].create_index("price")
    db["product"].create_index("category")
    _logger.info(f"Database '{db.name}' ready")
    return db


def collection(name: str):
    if db is None:
        raise Internal("Database not configured")
    return db[name]


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value, label: str = "ID") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label}")


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    stamp = now()
    doc["created_at"] = stamp
    doc["updated_at"] = stamp
    result = collection(collection_name).insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None):
    cursor = collection(collection_name).find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def iso(value):
    return value.isoformat() if isinstance(value, datetime) else value
