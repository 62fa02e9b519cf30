"""
MongoDB access

One MongoClient per process: init_db() on startup, close_db() on shutdown.
Request handlers receive the database through the get_db dependency.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.database import Database

from config import settings
from logging_config import get_logger

log = get_logger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None


def init_db(url: Optional[str] = None, name: Optional[str] = None) -> Database:
    global client, db
    if db is not None:
        return db
    url = url or settings.database_url
    name = name or settings.database_name
    client = MongoClient(url)
    db = client[name]
    log.info(f"Connected to MongoDB database '{name}'")
    return db


def close_db():
    global client, db
    if client is not None:
        client.close()
        log.info("MongoDB connection closed")
    client = None
    db = None


def get_db() -> Database:
    if db is None:
        raise RuntimeError("Database not initialized, call init_db() first")
    return db


def ensure_indexes(database: Database):
    database["product"].create_index([("name", ASCENDING)], unique=True)
    database["user"].create_index([("email", ASCENDING)], unique=True)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_dict(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    # BSON has no date-only type
    for key, value in doc.items():
        if isinstance(value, date) and not isinstance(value, datetime):
            doc[key] = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return doc


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    doc = {k: v for k, v in _as_dict(data).items() if v is not None}
    now = _now()
    doc["created_at"] = now
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(database: Database, collection_name: str, doc_id: Any) -> Optional[Dict[str, Any]]:
    oid = parse_object_id(doc_id)
    if oid is None:
        return None
    return database[collection_name].find_one({"_id": oid})


def update_document(database: Database, collection_name: str, doc_id: Any, data: Union[BaseModel, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    oid = parse_object_id(doc_id)
    if oid is None:
        return None
    changes = _as_dict(data)
    changes.pop("_id", None)
    changes.pop("created_at", None)
    changes["updated_at"] = _now()
    # None means "clear the field", not "store null"
    update: Dict[str, Any] = {"$set": {k: v for k, v in changes.items() if v is not None}}
    cleared = {k: "" for k, v in changes.items() if v is None}
    if cleared:
        update["$unset"] = cleared
    return database[collection_name].find_one_and_update(
        {"_id": oid},
        update,
        return_document=ReturnDocument.AFTER,
    )


def delete_document(database: Database, collection_name: str, doc_id: Any) -> bool:
    oid = parse_object_id(doc_id)
    if oid is None:
        return False
    result = database[collection_name].delete_one({"_id": oid})
    return result.deleted_count > 0
