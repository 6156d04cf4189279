import logging
import os
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from bson import ObjectId
from pymongo.errors import PyMongoError

import database
from database import create_document, fetch_daily_records, fetch_habits
from date_utils import format_date_id, parse_date
from progress import ProgressView, today_summary
from schemas import ChallengeRequest, CompletionToggle, Habit, HabitPatch, Settings, SettingsPatch
from challenges import ChallengeError, ChallengesNotConfigured, generate_challenges

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Habit Tracker API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------- Helpers -------

def to_str_id(doc: dict):
    if not doc:
        return doc
    d = dict(doc)
    if d.get("_id"):
        d["id"] = str(d.pop("_id"))
    return d


def get_user_id(header_val: Optional[str]) -> str:
    return header_val or "anon"


def get_db():
    if database.db is None:
        raise HTTPException(status_code=503, detail="Database not available")
    return database.db


def to_object_id(value: str, what: str = "habit") -> ObjectId:
    try:
        return ObjectId(value)
    except Exception:
        raise HTTPException(status_code=400, detail=f"Invalid {what} id")


def resolve_today(value: Optional[str]) -> date:
    if value is None:
        return date.today()
    parsed = parse_date(value)
    if parsed is None:
        raise HTTPException(status_code=400, detail="today must be YYYY-MM-DD")
    return parsed


def utcnow():
    return datetime.now(timezone.utc)


# ------- Health/Test -------
@app.get("/")
def read_root():
    return {"message": "Habit tracker backend running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "❌ Not Set",
        "database_name": "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        db = database.db
        if db is not None:
            response["database_url"] = "✅ Set"
            response["database_name"] = getattr(db, "name", "✅ Connected")
            response["connection_status"] = "Connected"
            response["collections"] = db.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
        else:
            response["database"] = "⚠️ Available but not initialized"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# ------- Habits -------
@app.post("/habits")
def create_habit(payload: Habit, x_user_id: Optional[str] = None):
    db = get_db()
    user_id = get_user_id(x_user_id)
    data = payload.model_dump()
    data["user_id"] = data.get("user_id") or user_id
    _id = create_document("habit", data)
    doc = db["habit"].find_one({"_id": ObjectId(_id)})
    logger.info("Created habit %s for %s", _id, data["user_id"])
    return to_str_id(doc)


@app.get("/habits")
def list_habits(x_user_id: Optional[str] = None, category: Optional[str] = None):
    db = get_db()
    user_id = get_user_id(x_user_id)
    flt = {"user_id": user_id}
    if category:
        flt["category"] = category
    docs = db["habit"].find(flt).sort("created_at", -1)
    return [to_str_id(d) for d in docs]


@app.get("/habits/{habit_id}")
def get_habit(habit_id: str, x_user_id: Optional[str] = None):
    db = get_db()
    user_id = get_user_id(x_user_id)
    doc = db["habit"].find_one({"_id": to_object_id(habit_id), "user_id": user_id})
    if not doc:
        raise HTTPException(status_code=404, detail="Habit not found")
    return to_str_id(doc)


@app.patch("/habits/{habit_id}")
def update_habit(habit_id: str, payload: HabitPatch, x_user_id: Optional[str] = None):
    db = get_db()
    user_id = get_user_id(x_user_id)
    oid = to_object_id(habit_id)
    updates = {k: v for k, v in payload.model_dump().items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="No updates provided")
    current = db["habit"].find_one({"_id": oid, "user_id": user_id})
    if not current:
        raise HTTPException(status_code=404, detail="Habit not found")
    start = updates.get("start_date", current.get("start_date"))
    end = updates.get("end_date", current.get("end_date"))
    if start and end and end < start:
        raise HTTPException(status_code=422, detail="end_date is before start_date")
    res = db["habit"].update_one({"_id": oid, "user_id": user_id}, {"$set": {**updates, "updated_at": utcnow()}})
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Habit not found")
    doc = db["habit"].find_one({"_id": oid})
    return to_str_id(doc)


@app.delete("/habits/{habit_id}")
def delete_habit(habit_id: str, x_user_id: Optional[str] = None):
    db = get_db()
    user_id = get_user_id(x_user_id)
    res = db["habit"].delete_one({"_id": to_object_id(habit_id), "user_id": user_id})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Habit not found")
    # completion flags for this habit stay in the daily records
    return {"ok": True}


# ------- Daily records -------
@app.get("/daily")
def list_daily(
    start: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="YYYY-MM-DD"),
    x_user_id: Optional[str] = None,
):
    db = get_db()
    user_id = get_user_id(x_user_id)
    flt: dict = {"user_id": user_id}
    if start or end:
        rng = {}
        if start:
            rng["$gte"] = start
        if end:
            rng["$lte"] = end
        flt["date"] = rng
    docs = db["dailyrecord"].find(flt).sort("date", 1)
    return [to_str_id(d) for d in docs]


@app.get("/daily/{date_id}")
def get_daily(date_id: str, x_user_id: Optional[str] = None):
    db = get_db()
    user_id = get_user_id(x_user_id)
    if parse_date(date_id) is None:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")
    doc = db["dailyrecord"].find_one({"user_id": user_id, "date": date_id})
    if not doc:
        return {"user_id": user_id, "date": date_id, "completed": {}}
    return to_str_id(doc)


@app.put("/daily/{date_id}/habits/{habit_id}")
def set_completion(date_id: str, habit_id: str, payload: CompletionToggle, x_user_id: Optional[str] = None):
    db = get_db()
    user_id = get_user_id(x_user_id)
    if parse_date(date_id) is None:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")
    oid = to_object_id(habit_id)
    if not db["habit"].find_one({"_id": oid, "user_id": user_id}):
        raise HTTPException(status_code=404, detail="Habit not found")
    # flags are keyed by the lowercase id that readers expose
    habit_key = str(oid)
    # Upsert: one record per user per date
    col = db["dailyrecord"]
    existing = col.find_one({"user_id": user_id, "date": date_id})
    if existing:
        col.update_one(
            {"_id": existing["_id"]},
            {"$set": {f"completed.{habit_key}": payload.completed, "updated_at": utcnow()}},
        )
        updated = col.find_one({"_id": existing["_id"]})
        return to_str_id(updated)
    data = {"user_id": user_id, "date": date_id, "completed": {habit_key: payload.completed}}
    _id = create_document("dailyrecord", data)
    created = col.find_one({"_id": ObjectId(_id)})
    return to_str_id(created)


# ------- Progress -------
@app.get("/today")
def get_today(
    today: Optional[str] = Query(None, description="YYYY-MM-DD"),
    x_user_id: Optional[str] = None,
):
    db = get_db()
    user_id = get_user_id(x_user_id)
    day = resolve_today(today)
    try:
        habits = fetch_habits(db, user_id)
        record = db["dailyrecord"].find_one({"user_id": user_id, "date": format_date_id(day)})
    except PyMongoError as e:
        logger.error("Failed to load today's data for %s: %s", user_id, e)
        raise HTTPException(status_code=503, detail="Could not load habits")
    return today_summary(habits, record, day)


@app.get("/progress")
def get_progress(
    today: Optional[str] = Query(None, description="YYYY-MM-DD"),
    x_user_id: Optional[str] = None,
):
    db = get_db()
    user_id = get_user_id(x_user_id)
    view = ProgressView(resolve_today(today))
    try:
        view.replace_habits(fetch_habits(db, user_id))
        view.replace_records(fetch_daily_records(db, user_id))
    except PyMongoError as e:
        logger.error("Failed to load progress data for %s: %s", user_id, e)
        raise HTTPException(status_code=503, detail="Could not load progress data")
    finally:
        view.close()
    return view.views


# ------- Settings -------
def load_settings(db, user_id: str) -> dict:
    defaults = Settings(user_id=user_id).model_dump()
    doc = db["settings"].find_one({"user_id": user_id}, {"_id": 0})
    if not doc:
        return defaults
    return {**defaults, **doc}


@app.get("/settings")
def get_settings(x_user_id: Optional[str] = None):
    db = get_db()
    return load_settings(db, get_user_id(x_user_id))


@app.put("/settings")
def update_settings(payload: SettingsPatch, x_user_id: Optional[str] = None):
    db = get_db()
    user_id = get_user_id(x_user_id)
    updates = {k: v for k, v in payload.model_dump().items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="No updates provided")
    db["settings"].update_one(
        {"user_id": user_id},
        {"$set": {**updates, "updated_at": utcnow()}},
        upsert=True,
    )
    return load_settings(db, user_id)


@app.post("/settings/theme/toggle")
def toggle_theme(x_user_id: Optional[str] = None):
    db = get_db()
    user_id = get_user_id(x_user_id)
    current = load_settings(db, user_id)
    theme = "dark" if current.get("theme") == "light" else "light"
    db["settings"].update_one(
        {"user_id": user_id},
        {"$set": {"theme": theme, "updated_at": utcnow()}},
        upsert=True,
    )
    return load_settings(db, user_id)


# ------- Challenges -------
@app.post("/challenges")
def create_challenges(payload: ChallengeRequest):
    try:
        return generate_challenges(payload.habits, payload.performance)
    except ChallengesNotConfigured:
        raise HTTPException(status_code=503, detail="AI challenges not configured")
    except ChallengeError:
        raise HTTPException(status_code=500, detail="AI Challenge generation failed")


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
