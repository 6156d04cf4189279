"""
MongoDB access for the habit tracker.

Collections: "habit", "dailyrecord", "settings" (see schemas.py).
"""
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from dotenv import load_dotenv
from pymongo import MongoClient

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]
else:
    logger.warning("DATABASE_URL/DATABASE_NAME not set, database disabled")


def _now():
    return datetime.now(timezone.utc)


def create_document(collection_name: str, data: dict) -> str:
    if db is None:
        raise RuntimeError("Database not available")
    doc = dict(data)
    doc["created_at"] = _now()
    doc["updated_at"] = _now()
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    if db is None:
        raise RuntimeError("Database not available")
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


# ------- Readers -------

def fetch_habits(database, user_id: str) -> List[dict]:
    """All habit definitions for a user, with "_id" exposed as "id"."""
    habits = []
    for doc in database["habit"].find({"user_id": user_id}):
        d = dict(doc)
        d["id"] = str(d.pop("_id"))
        habits.append(d)
    return habits


def fetch_daily_records(database, user_id: str) -> List[dict]:
    """All daily records for a user.

    A record without a "date" field falls back to its document id, and a
    missing "completed" mapping reads as empty.
    """
    records = []
    for doc in database["dailyrecord"].find({"user_id": user_id}):
        d = dict(doc)
        d["id"] = str(d.pop("_id"))
        d["date"] = d.get("date") or d["id"]
        if not isinstance(d.get("completed"), dict):
            d["completed"] = {}
        records.append(d)
    return records
