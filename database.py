"""
MongoDB access helpers

Collections are named after the lower-cased schema class
(Product -> "product", Order -> "order", ...).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import Settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def connect(settings: Settings) -> Database:
    client = MongoClient(settings.database_url)
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    db["discount"].create_index([("category", ASCENDING)], unique=True)
    db["order"].create_index([("invoice_code", ASCENDING)], unique=True)
    db["admin"].create_index([("username", ASCENDING)], unique=True)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document, stamping created_at/updated_at. Returns the new id as a string."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = utcnow()
    data_dict["created_at"] = now
    data_dict["updated_at"] = now
    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(db: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None, newest_first: bool = True) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if newest_first:
        cursor = cursor.sort("created_at", -1)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def to_object_id(id_str: str) -> Optional[ObjectId]:
    """Parse a hex id, returning None when it can't be an ObjectId."""
    if isinstance(id_str, ObjectId):
        return id_str
    if not isinstance(id_str, str) or not ObjectId.is_valid(id_str):
        return None
    return ObjectId(id_str)


def serialize_doc(doc: Optional[Dict[str, Any]]):
    if not doc:
        return None
    out = {}
    for key, value in doc.items():
        if key == "_id":
            out["id"] = str(value)
        else:
            out[key] = _serialize_value(value)
    return out


def _serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value
