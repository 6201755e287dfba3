'''
Status Service
Applies the lesson request and lesson state machines.
'''
from datetime import datetime, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import LessonRequestStatusEnum, LessonStatusEnum
from ..models import lesson as lesson_models
from ..models import lesson_request as request_models
from ..core import transitions
from ..common.exceptions import (
    BookingError,
    PersistenceError,
    SlotUnavailableError,
    UnauthorizedRoleError,
)
from ..common.time_utils import ensure_utc, get_tz
from ..common.logger import log
from .booking_service import BookingService
from .lesson_service import LessonService
from .relationship_service import RelationshipService


class StatusService:
    """
    Moves lesson requests and lessons between statuses.

    Every call checks, in order: the record exists, the caller takes part in
    it, the new status is reachable from the current one, and the caller's
    side (tutor or student) may set that status.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        booking_service: Annotated[BookingService, Depends(BookingService)],
        lesson_service: Annotated[LessonService, Depends(LessonService)],
        relationship_service: Annotated[RelationshipService, Depends(RelationshipService)]
    ):
        self.db = db
        self.booking_service = booking_service
        self.lesson_service = lesson_service
        self.relationship_service = relationship_service

    @staticmethod
    def _ensure_participant(entity: str, current_user: db_models.Users, tutor_id: UUID, student_id: UUID):
        if transitions.participant_of(current_user.id, current_user.role, tutor_id, student_id) is None:
            log.warning(f"SECURITY: User {current_user.id} tried to change a {entity} they are not part of.")
            raise UnauthorizedRoleError(f"You are not a participant of this {entity}.")

    async def _ensure_no_lesson_overlap(self, tutor_id: UUID, starts_at: datetime, ends_at: datetime):
        stmt = select(db_models.Lessons.id).filter(
            db_models.Lessons.tutor_id == tutor_id,
            db_models.Lessons.status != LessonStatusEnum.CANCELLED.value,
            db_models.Lessons.start_time < ends_at,
            db_models.Lessons.end_time > starts_at
        ).limit(1)
        if (await self.db.execute(stmt)).scalar() is not None:
            raise SlotUnavailableError("The tutor already has a lesson at this time.")

    # --- Lesson Requests ---

    async def update_request_status(
        self,
        request_id: UUID,
        data: request_models.LessonRequestStatusUpdate,
        current_user: db_models.Users
    ) -> request_models.LessonRequestRead:
        """
        pending -> accepted | rejected (tutor) or cancelled (student).
        Accepting also books a confirmed lesson for the requested interval
        and accepts the student-tutor relationship.
        """
        new_status = data.status.value
        log.info(f"User {current_user.id} moving lesson request {request_id} to '{new_status}'.")
        try:
            lesson_request = await self.booking_service.get_request_internal(request_id)

            self._ensure_participant('lesson request', current_user, lesson_request.tutor_id, lesson_request.student_id)
            transitions.ensure_transition(
                'lesson request', transitions.REQUEST_TRANSITIONS, lesson_request.status, new_status
            )
            transitions.ensure_actor(
                'lesson request', transitions.REQUEST_ACTORS, new_status,
                current_user.id, current_user.role, lesson_request.tutor_id, lesson_request.student_id
            )

            accepting = new_status == LessonRequestStatusEnum.ACCEPTED.value
            if accepting:
                tz = get_tz(lesson_request.tutor.timezone)
                starts_at = ensure_utc(datetime.combine(
                    lesson_request.requested_date, lesson_request.requested_start_time, tzinfo=tz
                ))
                ends_at = ensure_utc(datetime.combine(
                    lesson_request.requested_date, lesson_request.requested_end_time, tzinfo=tz
                ))
                await self._ensure_no_lesson_overlap(lesson_request.tutor_id, starts_at, ends_at)

            lesson_request.status = new_status
            if new_status in (LessonRequestStatusEnum.ACCEPTED.value, LessonRequestStatusEnum.REJECTED.value):
                lesson_request.tutor_response = data.tutor_response
                lesson_request.responded_at = datetime.now(timezone.utc)

            if accepting:
                self.db.add(db_models.Lessons(
                    tutor_id=lesson_request.tutor_id,
                    student_id=lesson_request.student_id,
                    subject_id=lesson_request.subject_id,
                    lesson_request_id=lesson_request.id,
                    start_time=starts_at,
                    end_time=ends_at,
                    status=LessonStatusEnum.CONFIRMED.value
                ))
                await self.relationship_service.accept(lesson_request.student_id, lesson_request.tutor_id)

            await self.db.flush()
            log.info(f"Lesson request {request_id} is now '{new_status}'.")
            return request_models.LessonRequestRead.model_validate(lesson_request)

        except BookingError as e:
            log.warning(f"Status change of lesson request {request_id} refused: {e.detail}")
            raise
        except SQLAlchemyError as e:
            log.error(f"Error updating lesson request {request_id}: {e}", exc_info=True)
            raise PersistenceError("Could not update the lesson request.") from e

    # --- Lessons ---

    async def update_lesson_status(
        self,
        lesson_id: UUID,
        data: lesson_models.LessonStatusUpdate,
        current_user: db_models.Users
    ) -> lesson_models.LessonRead:
        """
        pending -> confirmed (tutor) | cancelled (either side);
        confirmed -> completed (tutor) | cancelled (either side).
        """
        new_status = data.status.value
        log.info(f"User {current_user.id} moving lesson {lesson_id} to '{new_status}'.")
        try:
            lesson = await self.lesson_service.get_lesson_internal(lesson_id)

            self._ensure_participant('lesson', current_user, lesson.tutor_id, lesson.student_id)
            transitions.ensure_transition('lesson', transitions.LESSON_TRANSITIONS, lesson.status, new_status)
            transitions.ensure_actor(
                'lesson', transitions.LESSON_ACTORS, new_status,
                current_user.id, current_user.role, lesson.tutor_id, lesson.student_id
            )

            lesson.status = new_status
            if new_status == LessonStatusEnum.CONFIRMED.value:
                await self.relationship_service.accept(lesson.student_id, lesson.tutor_id)
            await self.db.flush()
            log.info(f"Lesson {lesson_id} is now '{new_status}'.")
            return lesson_models.LessonRead.model_validate(lesson)

        except BookingError as e:
            log.warning(f"Status change of lesson {lesson_id} refused: {e.detail}")
            raise
        except SQLAlchemyError as e:
            log.error(f"Error updating lesson {lesson_id}: {e}", exc_info=True)
            raise PersistenceError("Could not update the lesson.") from e
