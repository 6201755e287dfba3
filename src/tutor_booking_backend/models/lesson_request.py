'''
Lesson Request API Models
'''
from datetime import date, datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..database.db_enums import LessonRequestStatusEnum
from .user import UserSummary, SubjectRead


class LessonRequestCreate(BaseModel):
    """
    Payload a student sends to request one of a tutor's slots.
    'student_id' is excluded and taken from the authenticated user.
    """
    tutor_id: UUID
    subject_id: UUID
    requested_date: date
    requested_start_time: time
    requested_end_time: time
    message: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode='after')
    def check_window(self):
        if self.requested_start_time >= self.requested_end_time:
            raise ValueError("requested_start_time must be before requested_end_time.")
        return self


class LessonRequestStatusUpdate(BaseModel):
    """
    Payload for moving a request to a new status.
    'confirmed' is accepted as another name for 'accepted'.
    """
    status: LessonRequestStatusEnum
    tutor_response: Optional[str] = Field(None, max_length=2000)

    @field_validator('status', mode='before')
    @classmethod
    def normalize_confirmed(cls, value):
        if isinstance(value, str) and value.lower() == 'confirmed':
            return LessonRequestStatusEnum.ACCEPTED.value
        return value


class LessonRequestRead(BaseModel):
    id: UUID
    tutor_id: UUID
    student_id: UUID
    subject_id: Optional[UUID] = None
    requested_date: date
    requested_start_time: time
    requested_end_time: time
    message: Optional[str] = None
    status: LessonRequestStatusEnum
    tutor_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime

    tutor: UserSummary
    student: UserSummary
    subject: Optional[SubjectRead] = None

    model_config = ConfigDict(from_attributes=True)
