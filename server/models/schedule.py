"""Stored schedule entry model"""
from typing import Any

from pydantic import BaseModel, field_validator

from models.draft import Weekday


class ScheduleEntry(BaseModel):
    """A class already on the user's timetable"""
    id: str
    subject_name: str
    start_time: str
    end_time: str
    days: list[Weekday] = []
    color: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> str:
        return str(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _hours_minutes(cls, value: Any) -> str:
        # Postgres time columns come back as "HH:MM:SS"
        return str(value)[:5]

    @field_validator("color", mode="before")
    @classmethod
    def _no_color(cls, value: Any) -> str:
        return value or ""
