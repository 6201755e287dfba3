'''
User API Models
'''
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ..database.db_enums import UserRole


class UserSummary(BaseModel):
    """
    Lean user shape nested inside lessons and lesson requests.
    """
    id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserRead(UserSummary):
    """
    Base Pydantic model for reading user data.
    Corresponds to the db_models.Users ORM model.
    """
    email: str
    role: UserRole
    timezone: str


class TutorRead(UserRead):
    hourly_rate: Optional[Decimal] = None
    bio: Optional[str] = None


class StudentRead(UserRead):
    grade: Optional[int] = None


class SubjectRead(BaseModel):
    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)
