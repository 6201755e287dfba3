'''

'''
from typing import Annotated
from uuid import UUID
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..common.exceptions import NotFoundError
from ..common.logger import log


class UserService:
    """
    Base service for user-related database operations.
    Users are mapped polymorphically, so every query returns the concrete
    Tutors / Students / Users (admin) object.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def get_user_by_email(self, email: str) -> db_models.Users | None:
        log.info(f"Fetching full user profile for email: {email}")
        try:
            stmt = select(db_models.Users).filter(db_models.Users.email == email)
            result = await self.db.execute(stmt)
            return result.scalars().first()
        except Exception as e:
            log.error(f"Database error fetching user by email {email}: {e}", exc_info=True)
            raise

    async def get_tutor(self, tutor_id: UUID, for_update: bool = False) -> db_models.Tutors:
        """
        Fetches a tutor or raises NotFoundError.
        With for_update=True the tutor row is locked for the rest of the
        transaction, which serialises bookings against the same tutor.
        """
        stmt = select(db_models.Tutors).filter(db_models.Tutors.id == tutor_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        tutor = result.scalars().first()
        if tutor is None:
            log.warning(f"Tutor {tutor_id} not found.")
            raise NotFoundError("Tutor not found.")
        return tutor

    async def get_subject(self, subject_id: UUID) -> db_models.Subjects:
        subject = await self.db.get(db_models.Subjects, subject_id)
        if subject is None:
            log.warning(f"Subject {subject_id} not found.")
            raise NotFoundError("Subject not found.")
        return subject
