"""
MongoDB access shared by every registry.

A single client is created at import time; handlers receive the database
through the ``get_db`` dependency so it can be swapped out in tests.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

import config

client = MongoClient(config.DATABASE_URL, serverSelectionTimeoutMS=5000)
db = client[config.DATABASE_NAME]


def get_db() -> Database:
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_id(id_str: Optional[str]) -> bool:
    return isinstance(id_str, str) and ObjectId.is_valid(id_str)


def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id format")


def serialize(doc: dict) -> dict:
    if not doc:
        return doc
    doc["id"] = str(doc.get("_id"))
    doc.pop("_id", None)
    return doc


def create_document(database: Database, collection_name: str, data) -> str:
    """Insert a pydantic model or dict, stamping ``createdAt``; returns the new id."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    else:
        data = dict(data)
    data.setdefault("createdAt", now())
    inserted_id = database[collection_name].insert_one(data).inserted_id
    return str(inserted_id)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  sort: Optional[List] = None) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    return list(cursor)


def find_by_id(database: Database, collection_name: str, id_str: str, label: str) -> dict:
    """Fetch one document by id or raise 400/404 with ``label`` in the message."""
    doc = database[collection_name].find_one({"_id": oid(id_str)})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return doc
