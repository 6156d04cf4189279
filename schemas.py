"""
Database Schemas for the habit tracker

Each Pydantic model corresponds to one MongoDB collection (lowercased class name).
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from date_utils import parse_date


def _check_date_id(v: Optional[str]) -> Optional[str]:
    if v in (None, ""):
        return None
    if parse_date(v) is None:
        raise ValueError("date must be YYYY-MM-DD")
    return v


# -------- Core schemas --------
class Habit(BaseModel):
    """User-defined habit
    Collection: "habit"
    """
    user_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(None, description="Free text, 'Other' when empty")
    priority: Optional[str] = Field("Low", description="Low / Medium / High")
    frequency: str = "Daily"
    start_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    end_date: Optional[str] = Field(None, description="YYYY-MM-DD, empty = no end")
    reminder_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$", description="HH:MM")

    @field_validator("start_date", "end_date")
    @classmethod
    def check_dates(cls, v):
        return _check_date_id(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date is before start_date")
        return self


class DailyRecord(BaseModel):
    """Completion flags for one calendar day
    Collection: "dailyrecord"
    """
    user_id: Optional[str] = None
    date: str = Field(..., description="YYYY-MM-DD")
    completed: Dict[str, bool] = Field(default_factory=dict)

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        if parse_date(v) is None:
            raise ValueError("date must be YYYY-MM-DD")
        return v


class Settings(BaseModel):
    """Per-user UI context
    Collection: "settings"
    """
    user_id: Optional[str] = None
    theme: Literal["light", "dark"] = "light"
    notifications_read: int = Field(0, ge=0)


# -------- Request bodies --------
class HabitPatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    frequency: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    reminder_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")

    @field_validator("start_date", "end_date")
    @classmethod
    def check_dates(cls, v):
        return _check_date_id(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date is before start_date")
        return self


class CompletionToggle(BaseModel):
    completed: bool


class SettingsPatch(BaseModel):
    theme: Optional[Literal["light", "dark"]] = None
    notifications_read: Optional[int] = Field(None, ge=0)


class ChallengeRequest(BaseModel):
    habits: List[Dict[str, Any]] = Field(default_factory=list)
    performance: Dict[str, Any] = Field(default_factory=dict)
