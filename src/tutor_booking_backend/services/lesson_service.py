'''
Lesson Service
'''
from datetime import date, datetime, time, timedelta
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import LessonStatusEnum, UserRole
from ..models import lesson as lesson_models
from ..common.exceptions import NotFoundError, UnauthorizedRoleError
from ..common.time_utils import ensure_utc, get_tz
from ..common.logger import log


class LessonService:
    """
    Read access to lessons for their tutor, their student, or an admin.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    def _base_lesson_query(self):
        return select(db_models.Lessons).options(
            selectinload(db_models.Lessons.tutor),
            selectinload(db_models.Lessons.student),
            selectinload(db_models.Lessons.subject)
        )

    async def get_lesson_internal(self, lesson_id: UUID) -> db_models.Lessons:
        stmt = self._base_lesson_query().filter(db_models.Lessons.id == lesson_id)
        result = await self.db.execute(stmt)
        lesson = result.scalars().first()
        if lesson is None:
            log.warning(f"Tried to fetch non-existing lesson: {lesson_id}")
            raise NotFoundError("Lesson not found.")
        return lesson

    async def get_lesson_for_api(self, lesson_id: UUID, current_user: db_models.Users) -> lesson_models.LessonRead:
        log.info(f"User {current_user.id} requesting lesson {lesson_id}")
        lesson = await self.get_lesson_internal(lesson_id)
        if current_user.role != UserRole.ADMIN.value and current_user.id not in (lesson.tutor_id, lesson.student_id):
            log.warning(f"SECURITY: User {current_user.id} tried to read lesson {lesson_id}.")
            raise UnauthorizedRoleError("You do not have permission to view this lesson.")
        return lesson_models.LessonRead.model_validate(lesson)

    async def list_lessons_for_api(
        self,
        current_user: db_models.Users,
        on_date: Optional[date] = None,
        status: Optional[LessonStatusEnum] = None
    ) -> list[lesson_models.LessonRead]:
        """
        Lists the caller's lessons ordered by start time. `on_date` is read in
        the caller's own timezone.
        """
        log.info(f"User {current_user.id} (Role: {current_user.role}) listing lessons (date={on_date}, status={status}).")
        stmt = self._base_lesson_query().order_by(db_models.Lessons.start_time)

        if current_user.role == UserRole.TUTOR.value:
            stmt = stmt.filter(db_models.Lessons.tutor_id == current_user.id)
        elif current_user.role == UserRole.STUDENT.value:
            stmt = stmt.filter(db_models.Lessons.student_id == current_user.id)

        if on_date is not None:
            tz = get_tz(current_user.timezone)
            day_start = ensure_utc(datetime.combine(on_date, time.min, tzinfo=tz))
            day_end = ensure_utc(datetime.combine(on_date + timedelta(days=1), time.min, tzinfo=tz))
            stmt = stmt.filter(
                db_models.Lessons.start_time < day_end,
                db_models.Lessons.end_time > day_start
            )

        if status is not None:
            stmt = stmt.filter(db_models.Lessons.status == status.value)

        result = await self.db.execute(stmt)
        return [lesson_models.LessonRead.model_validate(lesson) for lesson in result.scalars().all()]
