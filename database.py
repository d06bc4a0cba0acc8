"""
Database helpers for the MotoVibe API (MongoDB via pymongo).

Every document uses a string UUID as its `_id`; the API exposes it as `id`.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from config import DATABASE_URL, DATABASE_NAME, ADMIN_EMAIL, ADMIN_PASSWORD

logger = logging.getLogger(__name__)

db: Optional[Database] = None

try:
    _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = _client[DATABASE_NAME]
except Exception as e:
    logger.error("MongoDB client could not be created: %s", e)


def new_id() -> str:
    return str(uuid.uuid4())


def to_str_id(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = {**doc}
    if d.get("_id") is not None:
        d["id"] = str(d.pop("_id"))
    # convert datetime to iso
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
    return d


def create_document(collection_name: str, data, database: Optional[Database] = None) -> str:
    """Insert a document (dict or pydantic model) and return its new id."""
    database = database if database is not None else db
    if database is None:
        raise RuntimeError("Database not available")
    if isinstance(data, BaseModel):
        data = data.model_dump()
    doc = dict(data)
    doc.pop("id", None)
    doc["_id"] = new_id()
    now = datetime.now(timezone.utc)
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    database[collection_name].insert_one(doc)
    return doc["_id"]


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None, database: Optional[Database] = None) -> List[Dict[str, Any]]:
    database = database if database is not None else db
    if database is None:
        raise RuntimeError("Database not available")
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_admin(database: Optional[Database] = None) -> None:
    """Create the configured admin account if no user owns that email yet."""
    database = database if database is not None else db
    if database is None or not ADMIN_EMAIL:
        return
    if database["user"].find_one({"email": ADMIN_EMAIL}):
        return
    create_document("user", {
        "name": "MotoVibe Admin",
        "email": ADMIN_EMAIL,
        "password": ADMIN_PASSWORD,  # NOTE: demo only; plain text
        "is_admin": True,
        "join_date": datetime.now(timezone.utc).date().isoformat(),
    }, database=database)
    logger.info("Seeded admin account %s", ADMIN_EMAIL)
