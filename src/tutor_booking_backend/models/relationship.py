'''
Student-Tutor Relationship API Models
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from ..common.time_utils import ensure_utc
from ..database.db_enums import RelationshipStatusEnum
from .user import UserSummary


class StudentTutorRead(BaseModel):
    """
    One student-tutor pairing, as listed under "my tutors" and "my students".
    Starts as pending on the first booking and becomes accepted once the
    tutor confirms a lesson.
    """
    id: UUID
    status: RelationshipStatusEnum
    start_date: datetime
    end_date: Optional[datetime] = None

    tutor: UserSummary
    student: UserSummary

    model_config = ConfigDict(from_attributes=True)

    @field_validator('start_date', mode='after')
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)
