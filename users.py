from urllib.parse import quote

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from auth import hash_password, issue_token, verify_password
from database import collection, create_document, iso, now, to_object_id
from errors import Conflict, Unauthorized
from logger import get_logger
from schemas import LoginRequest, ProfileUpdate, RegisterRequest, User

_logger = get_logger(__name__)

AVATAR_URL = "https://ui-avatars.com/api/?name={}&size=128&background=20203a&color=d4a853&bold=true"


def default_avatar(name: str) -> str:
    return AVATAR_URL.format(quote(name))


def public_user(doc: dict, favorites=None) -> dict:
    """Outward view of a user document; the password hash never leaves here."""
    return {
        "id": str(doc["_id"]),
        "name": doc.get("name"),
        "email": doc.get("email"),
        "role": doc.get("role", "user"),
        "avatar": doc.get("avatar", ""),
        "favorites": favorites if favorites is not None else [str(f) for f in doc.get("favorites", [])],
        "createdAt": iso(doc.get("created_at")),
        "updatedAt": iso(doc.get("updated_at")),
    }


def get_user_by_email(email: str):
    return collection("user").find_one({"email": email.strip().lower()})


def register(payload: RegisterRequest) -> dict:
    email = payload.email.strip().lower()
    if get_user_by_email(email):
        raise Conflict("User with this email already exists")
    user = User(
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        avatar=default_avatar(payload.name),
    )
    try:
        user_id = create_document("user", user)
    except DuplicateKeyError:
        raise Conflict("Email already in use")
    _logger.info(f"Registered user {user_id} <{email}>")
    doc = collection("user").find_one({"_id": to_object_id(user_id)})
    return {"token": issue_token(user_id), "user": public_user(doc)}


def login(payload: LoginRequest) -> dict:
    user = get_user_by_email(payload.email)
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise Unauthorized("Invalid email or password")
    return {"token": issue_token(user["_id"]), "user": profile(user)}


def favorite_summaries(user: dict) -> list:
    ids = user.get("favorites", [])
    if not ids:
        return []
    docs = collection("product").find(
        {"_id": {"$in": ids}, "is_active": True},
        {"title": 1, "price": 1, "image": 1, "category": 1},
    )
    by_id = {d["_id"]: d for d in docs}
    return [
        {
            "id": str(pid),
            "title": by_id[pid].get("title"),
            "price": by_id[pid].get("price"),
            "image": by_id[pid].get("image", ""),
            "category": by_id[pid].get("category"),
        }
        for pid in ids
        if pid in by_id
    ]


def profile(user: dict) -> dict:
    return public_user(user, favorites=favorite_summaries(user))


def update_profile(user: dict, payload: ProfileUpdate) -> dict:
    updated = collection("user").find_one_and_update(
        {"_id": user["_id"]},
        {"$set": {"name": payload.name, "updated_at": now()}},
        return_document=ReturnDocument.AFTER,
    )
    _logger.info(f"Updated profile of user {user['_id']}")
    return profile(updated)
