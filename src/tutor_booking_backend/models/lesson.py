'''
Lesson API Models
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from ..common.time_utils import ensure_utc
from ..database.db_enums import LessonStatusEnum
from .user import UserSummary, SubjectRead


class LessonStatusUpdate(BaseModel):
    status: LessonStatusEnum


class LessonRead(BaseModel):
    id: UUID
    tutor_id: UUID
    student_id: UUID
    subject_id: Optional[UUID] = None
    lesson_request_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    status: LessonStatusEnum
    created_at: datetime

    tutor: UserSummary
    student: UserSummary
    subject: Optional[SubjectRead] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator('start_time', 'end_time', mode='after')
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive values; everything is stored in UTC.
        return ensure_utc(value)
