'''
Availability API Models
'''
from datetime import date, datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..common.config import settings


class TimeSlot(BaseModel):
    """
    A single bookable candidate interval on a tutor's calendar.
    Derived on every request, never persisted.
    """
    slot_id: UUID = Field(..., description="Deterministic id of the slot (same inputs, same id).")
    date: date
    start_time: time = Field(..., description="Tutor-local start (wall clock).")
    end_time: time = Field(..., description="Tutor-local end (wall clock).")
    starts_at: datetime
    ends_at: datetime
    is_available: bool


# --- Weekly schedule ---

class WeeklyRuleBase(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Monday, 6=Sunday")
    start_time: time
    end_time: time
    is_available: bool = True
    lesson_duration: Optional[int] = Field(
        None,
        ge=settings.MIN_SLOT_MINUTES,
        le=settings.MAX_SLOT_MINUTES,
        description="Lesson length in minutes for this window. Defaults to SLOT_DURATION_MINUTES."
    )
    break_duration: Optional[int] = Field(
        None,
        ge=0,
        le=settings.MAX_BREAK_MINUTES,
        description="Break after each lesson in minutes. Defaults to DEFAULT_BREAK_MINUTES."
    )

    @model_validator(mode='after')
    def check_window(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time.")
        return self


class WeeklyRuleWrite(WeeklyRuleBase):
    """One rule in the payload that replaces a tutor's weekly schedule."""
    pass


class WeeklyRuleRead(WeeklyRuleBase):
    id: UUID
    tutor_id: UUID

    model_config = ConfigDict(from_attributes=True)


# --- Schedule exceptions ---

class ScheduleExceptionCreate(BaseModel):
    """
    A date-specific override. A full-day exception blocks the whole date;
    otherwise start_time/end_time is the blocked part of the day.
    """
    date: date
    is_full_day: bool = True
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode='after')
    def check_partial_window(self):
        if self.is_full_day:
            self.start_time = None
            self.end_time = None
            return self
        if self.start_time is None or self.end_time is None:
            raise ValueError("Partial exceptions need both start_time and end_time.")
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time.")
        return self


class ScheduleExceptionRead(BaseModel):
    id: UUID
    tutor_id: UUID
    date: date
    is_full_day: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
