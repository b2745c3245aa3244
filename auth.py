import hashlib
import hmac
import secrets
from datetime import timedelta
from typing import Optional

import jwt
from fastapi import Depends, Header

import config
from database import collection, now, to_object_id
from errors import AppError, ExpiredToken, Forbidden, InvalidToken, Unauthorized, ValidationError
from logger import get_logger

_logger = get_logger(__name__)

PBKDF2_ITERATIONS = 100_000


# Passwords

def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return salt + "$" + digest.hex()


def verify_password(password: str, stored: str) -> bool:
    salt, sep, _ = (stored or "").partition("$")
    if not sep:
        return False
    return hmac.compare_digest(hash_password(password, salt), stored)


# Session tokens

def issue_token(user_id, ttl: Optional[timedelta] = None) -> str:
    """Sign a token binding the user id to an expiry; nothing is stored server-side."""
    issued = now()
    payload = {
        "id": str(user_id),
        "iat": issued,
        "exp": issued + (ttl if ttl is not None else config.TOKEN_TTL),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def verify_token(token: str) -> str:
    """Return the user id carried by a valid token."""
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ExpiredToken()
    except jwt.InvalidTokenError:
        raise InvalidToken()
    user_id = payload.get("id")
    if not user_id:
        raise InvalidToken()
    return user_id


# Guards

def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer"):
        return None
    parts = authorization.split()
    return parts[1] if len(parts) > 1 else None


def _resolve_user(token: str) -> dict:
    user_id = verify_token(token)
    try:
        oid = to_object_id(user_id)
    except ValidationError:
        raise InvalidToken()
    user = collection("user").find_one({"_id": oid})
    if not user:
        raise Unauthorized("Token is invalid or user no longer exists.")
    return user


def require_auth(authorization: Optional[str] = Header(None)) -> dict:
    token = bearer_token(authorization)
    if not token:
        raise Unauthorized()
    try:
        return _resolve_user(token)
    except Unauthorized as e:
        _logger.debug(f"Rejected token: {e.message}")
        raise


def optional_auth(authorization: Optional[str] = Header(None)) -> Optional[dict]:
    token = bearer_token(authorization)
    if not token:
        return None
    try:
        return _resolve_user(token)
    except AppError:
        return None


def require_admin(user: dict = Depends(require_auth)) -> dict:
    if user.get("role") != "admin":
        raise Forbidden("Admin access required.")
    return user
