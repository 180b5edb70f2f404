"""
MongoDB access helpers.

The client is created lazily from DATABASE_URL / DATABASE_NAME; tests (or a
worker process) can hand in their own client through init_db().
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient

from config import DATABASE_NAME, DATABASE_URL, MESSAGE_TTL_SECONDS
from errors import NotFound

client = None
db = None


def init_db(mongo_client=None):
    global client, db
    client = mongo_client if mongo_client is not None else MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]
    return db


def get_db():
    if db is None:
        init_db()
    return db


def utcnow() -> datetime:
    # Mongo hands datetimes back as naive UTC, so keep them naive everywhere
    return datetime.now(timezone.utc).replace(tzinfo=None)


def object_id(value: Union[str, ObjectId], what: str = "Resource") -> ObjectId:
    """Parse an id from a URL or payload; malformed ids are reported as missing."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFound(f"{what} not found")


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    else:
        data = dict(data)
    now = utcnow()
    data["created_at"] = now
    data["updated_at"] = now
    result = get_db()[collection_name].insert_one(data)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[tuple]] = None,
    limit: Optional[int] = None,
    skip: int = 0,
) -> List[Dict[str, Any]]:
    cursor = get_db()[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize(value: Any) -> Any:
    """Make a Mongo document JSON friendly: `_id` becomes `id`, ObjectIds become strings."""
    if isinstance(value, list):
        return [serialize(v) for v in value]
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            if key == "_id":
                out["id"] = str(item)
            else:
                out[key] = serialize(item)
        return out
    if isinstance(value, ObjectId):
        return str(value)
    return value


def ensure_indexes() -> None:
    d = get_db()
    d["user"].create_index("username", unique=True)
    d["user"].create_index("email", unique=True)
    d["category"].create_index("name", unique=True)
    d["cart"].create_index("user_id", unique=True)
    d["order"].create_index([("user_id", 1), ("created_at", -1)])
    d["order"].create_index([("status", 1), ("updated_at", 1)])
    d["message"].create_index("conversation_id")
    d["message"].create_index("created_at", expireAfterSeconds=MESSAGE_TTL_SECONDS)
