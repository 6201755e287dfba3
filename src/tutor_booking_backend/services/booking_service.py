'''
Booking Service
Creates lesson requests and serves them back to their participants.
'''
from datetime import datetime, timedelta
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import LessonRequestStatusEnum, UserRole
from ..models import lesson_request as request_models
from ..core.availability import find_slot
from ..common.exceptions import (
    BookingError,
    InvalidDateError,
    NotFoundError,
    PersistenceError,
    SlotUnavailableError,
    UnauthorizedRoleError,
)
from ..common.time_utils import get_tz, now_in
from ..common.logger import log
from .user_service import UserService
from .availability_service import AvailabilityService
from .relationship_service import RelationshipService


class BookingService:
    """
    Service for the student side of booking: creating a lesson request for
    an available slot, and reading requests back.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        user_service: Annotated[UserService, Depends(UserService)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)],
        relationship_service: Annotated[RelationshipService, Depends(RelationshipService)]
    ):
        self.db = db
        self.user_service = user_service
        self.availability_service = availability_service
        self.relationship_service = relationship_service

    # --- Internal Fetcher ---

    def _base_request_query(self):
        return select(db_models.LessonRequests).options(
            selectinload(db_models.LessonRequests.tutor),
            selectinload(db_models.LessonRequests.student),
            selectinload(db_models.LessonRequests.subject)
        )

    async def get_request_internal(self, request_id: UUID) -> db_models.LessonRequests:
        """Fetches one lesson request with its relationships, or raises NotFoundError."""
        stmt = self._base_request_query().filter(db_models.LessonRequests.id == request_id)
        result = await self.db.execute(stmt)
        lesson_request = result.scalars().first()
        if lesson_request is None:
            log.warning(f"Tried to fetch non-existing lesson request: {request_id}")
            raise NotFoundError("Lesson request not found.")
        return lesson_request

    # --- Booking Writer ---

    async def create_lesson_request(
        self,
        data: request_models.LessonRequestCreate,
        current_user: db_models.Users
    ) -> request_models.LessonRequestRead:
        """
        Creates a pending lesson request for one of the tutor's slots.

        The tutor row is locked and the day's slots are resolved again inside
        this transaction, so the request is only written if the interval is
        still a free slot. A concurrent duplicate that slips past the check is
        stopped by the unique index on pending requests. The first request to
        a tutor also opens a pending student-tutor relationship.
        """
        log.info(
            f"User {current_user.id} requesting tutor {data.tutor_id} on "
            f"{data.requested_date} {data.requested_start_time}-{data.requested_end_time}."
        )
        try:
            if current_user.role != UserRole.STUDENT.value:
                log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to create a lesson request.")
                raise UnauthorizedRoleError("Only students can request lessons.")

            tutor = await self.user_service.get_tutor(data.tutor_id, for_update=True)
            await self.user_service.get_subject(data.subject_id)

            tz = get_tz(tutor.timezone)
            self.availability_service.validate_date(data.requested_date, tz)

            starts_at = datetime.combine(data.requested_date, data.requested_start_time, tzinfo=tz)
            ends_at = datetime.combine(data.requested_date, data.requested_end_time, tzinfo=tz)
            if starts_at <= now_in(tz):
                raise InvalidDateError("The requested slot has already started.")

            minutes = int((ends_at - starts_at) / timedelta(minutes=1))
            length = self.availability_service.slot_length(minutes)
            slots = await self.availability_service.compute_slots(tutor, data.requested_date, length)
            slot = find_slot(slots, starts_at, ends_at)
            if slot is None or not slot.is_available:
                log.warning(f"Refused request for tutor {tutor.id}: {starts_at} - {ends_at} is not a free slot.")
                raise SlotUnavailableError("The requested time is not an available slot.")

            await self.relationship_service.ensure_pending(current_user.id, tutor.id)

            new_request = db_models.LessonRequests(
                tutor_id=tutor.id,
                student_id=current_user.id,
                subject_id=data.subject_id,
                requested_date=data.requested_date,
                requested_start_time=data.requested_start_time,
                requested_end_time=data.requested_end_time,
                message=data.message,
                status=LessonRequestStatusEnum.PENDING.value
            )
            self.db.add(new_request)
            await self.db.flush()
            await self.db.refresh(new_request, ['tutor', 'student', 'subject'])

            log.info(f"Created lesson request {new_request.id} for tutor {tutor.id}.")
            return request_models.LessonRequestRead.model_validate(new_request)

        except BookingError:
            raise
        except IntegrityError as e:
            log.warning(f"Concurrent booking for tutor {data.tutor_id} rejected by the database: {e}")
            raise SlotUnavailableError("The requested time was just booked by someone else.") from e
        except SQLAlchemyError as e:
            log.error(f"Error in create_lesson_request: {e}", exc_info=True)
            raise PersistenceError("Could not save the lesson request. Please try again.") from e

    # --- Read Side ---

    async def list_lesson_requests(
        self,
        current_user: db_models.Users,
        status: Optional[LessonRequestStatusEnum] = None
    ) -> list[request_models.LessonRequestRead]:
        """
        Lists the requests visible to the caller, newest first: a tutor sees
        requests addressed to them, a student their own, an admin all.
        """
        log.info(f"User {current_user.id} (Role: {current_user.role}) listing lesson requests (status={status}).")
        stmt = self._base_request_query().order_by(db_models.LessonRequests.created_at.desc())

        if current_user.role == UserRole.TUTOR.value:
            stmt = stmt.filter(db_models.LessonRequests.tutor_id == current_user.id)
        elif current_user.role == UserRole.STUDENT.value:
            stmt = stmt.filter(db_models.LessonRequests.student_id == current_user.id)

        if status is not None:
            stmt = stmt.filter(db_models.LessonRequests.status == status.value)

        result = await self.db.execute(stmt)
        return [request_models.LessonRequestRead.model_validate(r) for r in result.scalars().all()]

    async def get_lesson_request_for_api(
        self,
        request_id: UUID,
        current_user: db_models.Users
    ) -> request_models.LessonRequestRead:
        log.info(f"User {current_user.id} requesting lesson request {request_id}")
        lesson_request = await self.get_request_internal(request_id)
        if current_user.role != UserRole.ADMIN.value and current_user.id not in (
            lesson_request.tutor_id, lesson_request.student_id
        ):
            log.warning(f"SECURITY: User {current_user.id} tried to read lesson request {request_id}.")
            raise UnauthorizedRoleError("You do not have permission to view this lesson request.")
        return request_models.LessonRequestRead.model_validate(lesson_request)
