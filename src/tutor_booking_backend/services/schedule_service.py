'''
Schedule Service
Tutor weekly availability rules and date-specific exceptions.
'''
from datetime import date, datetime, timedelta
from itertools import groupby
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models import availability as availability_models
from ..common.config import settings
from ..common.exceptions import (
    BookingError,
    NotFoundError,
    PersistenceError,
    UnauthorizedRoleError,
    ValidationError,
)
from ..common.logger import log
from .user_service import UserService


class ScheduleService:
    """
    Service for reading and editing a tutor's recurring weekly schedule and
    the one-off exceptions that override it.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        self.db = db
        self.user_service = user_service

    # --- Authorization Helper ---

    def _authorize_tutor(self, current_user: db_models.Users):
        if current_user.role != UserRole.TUTOR.value:
            log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to edit a tutor schedule.")
            raise UnauthorizedRoleError("Only tutors can manage a schedule.")

    # --- Validation Helper ---

    @staticmethod
    def _check_no_overlaps(rules: list[availability_models.WeeklyRuleWrite]):
        """Rejects a schedule where two available rules of the same day overlap."""
        available = sorted(
            (r for r in rules if r.is_available),
            key=lambda r: (r.day_of_week, r.start_time)
        )
        for day, day_rules in groupby(available, key=lambda r: r.day_of_week):
            previous = None
            for rule in day_rules:
                if previous is not None and rule.start_time < previous.end_time:
                    raise ValidationError(
                        f"Rules {previous.start_time}-{previous.end_time} and "
                        f"{rule.start_time}-{rule.end_time} overlap on day {day}."
                    )
                previous = rule

    @staticmethod
    def _check_fits_lesson(rules: list[availability_models.WeeklyRuleWrite]):
        """Rejects a rule whose window cannot hold a single lesson."""
        for rule in rules:
            lesson = rule.lesson_duration or settings.SLOT_DURATION_MINUTES
            window = datetime.combine(date.min, rule.end_time) - datetime.combine(date.min, rule.start_time)
            if window < timedelta(minutes=lesson):
                raise ValidationError(
                    f"Rule {rule.start_time}-{rule.end_time} on day {rule.day_of_week} "
                    f"is shorter than its {lesson} minute lesson."
                )

    # --- Weekly schedule ---

    async def get_weekly_schedule(self, tutor_id: UUID) -> list[availability_models.WeeklyRuleRead]:
        log.info(f"Fetching weekly schedule for tutor {tutor_id}")
        await self.user_service.get_tutor(tutor_id)
        stmt = select(db_models.TutorWeeklySchedule).filter(
            db_models.TutorWeeklySchedule.tutor_id == tutor_id
        ).order_by(
            db_models.TutorWeeklySchedule.day_of_week,
            db_models.TutorWeeklySchedule.start_time
        )
        result = await self.db.execute(stmt)
        return [availability_models.WeeklyRuleRead.model_validate(r) for r in result.scalars().all()]

    async def replace_weekly_schedule(
        self,
        rules: list[availability_models.WeeklyRuleWrite],
        current_user: db_models.Users
    ) -> list[availability_models.WeeklyRuleRead]:
        """
        Replaces all of the calling tutor's weekly rules with `rules`.
        """
        log.info(f"Tutor {current_user.id} replacing weekly schedule with {len(rules)} rules.")
        self._authorize_tutor(current_user)
        self._check_no_overlaps(rules)
        self._check_fits_lesson(rules)

        try:
            await self.db.execute(
                delete(db_models.TutorWeeklySchedule).where(
                    db_models.TutorWeeklySchedule.tutor_id == current_user.id
                )
            )
            self.db.add_all([
                db_models.TutorWeeklySchedule(
                    tutor_id=current_user.id,
                    day_of_week=rule.day_of_week,
                    start_time=rule.start_time,
                    end_time=rule.end_time,
                    is_available=rule.is_available,
                    lesson_duration=rule.lesson_duration,
                    break_duration=rule.break_duration
                )
                for rule in rules
            ])
            await self.db.flush()
        except SQLAlchemyError as e:
            log.error(f"Failed to replace schedule for tutor {current_user.id}: {e}", exc_info=True)
            raise PersistenceError("Could not save the weekly schedule.") from e

        return await self.get_weekly_schedule(current_user.id)

    # --- Exceptions ---

    async def list_exceptions(
        self,
        tutor_id: UUID,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None
    ) -> list[availability_models.ScheduleExceptionRead]:
        log.info(f"Fetching schedule exceptions for tutor {tutor_id} ({from_date} -> {to_date})")
        await self.user_service.get_tutor(tutor_id)
        stmt = select(db_models.TutorScheduleExceptions).filter(
            db_models.TutorScheduleExceptions.tutor_id == tutor_id
        )
        if from_date is not None:
            stmt = stmt.filter(db_models.TutorScheduleExceptions.date >= from_date)
        if to_date is not None:
            stmt = stmt.filter(db_models.TutorScheduleExceptions.date <= to_date)
        stmt = stmt.order_by(db_models.TutorScheduleExceptions.date)

        result = await self.db.execute(stmt)
        return [availability_models.ScheduleExceptionRead.model_validate(e) for e in result.scalars().all()]

    async def add_exception(
        self,
        data: availability_models.ScheduleExceptionCreate,
        current_user: db_models.Users
    ) -> availability_models.ScheduleExceptionRead:
        log.info(f"Tutor {current_user.id} adding schedule exception on {data.date} (full day: {data.is_full_day}).")
        self._authorize_tutor(current_user)
        new_exception = db_models.TutorScheduleExceptions(
            tutor_id=current_user.id,
            date=data.date,
            is_full_day=data.is_full_day,
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason
        )
        try:
            self.db.add(new_exception)
            await self.db.flush()
        except SQLAlchemyError as e:
            log.error(f"Failed to add schedule exception for tutor {current_user.id}: {e}", exc_info=True)
            raise PersistenceError("Could not save the schedule exception.") from e
        return availability_models.ScheduleExceptionRead.model_validate(new_exception)

    async def delete_exception(self, exception_id: UUID, current_user: db_models.Users) -> bool:
        log.info(f"User {current_user.id} attempting to delete schedule exception {exception_id}.")
        try:
            exception = await self.db.get(db_models.TutorScheduleExceptions, exception_id)
            if exception is None:
                raise NotFoundError("Schedule exception not found.")
            if exception.tutor_id != current_user.id:
                log.warning(f"SECURITY: User {current_user.id} tried to delete exception {exception_id} of tutor {exception.tutor_id}.")
                raise UnauthorizedRoleError("You can only delete your own schedule exceptions.")
            await self.db.delete(exception)
            await self.db.flush()
            return True
        except BookingError:
            raise
        except SQLAlchemyError as e:
            log.error(f"Error deleting schedule exception {exception_id}: {e}", exc_info=True)
            raise PersistenceError("Could not delete the schedule exception.") from e
