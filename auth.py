"""
Caller identity for route handlers.

Sessionless, like the login endpoint: the client sends back the user id it
received at login in the X-User-Id header. Handlers only ever see
{id, role, username, email}.
"""
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, Header

from database import get_db
from errors import Forbidden, Unauthorized


def _public_user(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "username": doc.get("username"),
        "email": doc.get("email"),
        "role": doc.get("role", "buyer"),
    }


def get_current_user(x_user_id: Optional[str] = Header(None)) -> dict:
    if not x_user_id:
        raise Unauthorized("No credentials, authorization denied")
    try:
        oid = ObjectId(x_user_id)
    except InvalidId:
        raise Unauthorized("Credentials are not valid")
    doc = get_db()["user"].find_one({"_id": oid})
    if not doc:
        raise Unauthorized("Credentials are not valid")
    return _public_user(doc)


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user["role"] != "admin":
        raise Forbidden("Access denied. Admin only.")
    return user


def is_admin(user: dict) -> bool:
    return user.get("role") == "admin"
