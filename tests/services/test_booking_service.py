import pytest
from datetime import date, datetime, time, timedelta, timezone
from uuid import uuid4
from pprint import pprint
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.tutor_booking_backend.database import models as db_models
from src.tutor_booking_backend.database.db_enums import LessonRequestStatusEnum, RelationshipStatusEnum
from src.tutor_booking_backend.models import availability as availability_models
from src.tutor_booking_backend.models import lesson_request as request_models
from src.tutor_booking_backend.services.availability_service import AvailabilityService
from src.tutor_booking_backend.services.booking_service import BookingService
from src.tutor_booking_backend.services.schedule_service import ScheduleService
from src.tutor_booking_backend.common.exceptions import (
    InvalidDateError,
    NotFoundError,
    PersistenceError,
    SlotUnavailableError,
    UnauthorizedRoleError,
)

from tests.constants import TEST_TUTOR_ID, TEST_UNRELATED_TUTOR_ID, TEST_STUDENT_ID, TEST_SUBJECT_ID


def _request(day: date, start: int, end: int, tutor_id=TEST_TUTOR_ID, subject_id=TEST_SUBJECT_ID):
    return request_models.LessonRequestCreate(
        tutor_id=tutor_id,
        subject_id=subject_id,
        requested_date=day,
        requested_start_time=time(start),
        requested_end_time=time(end),
        message="Could we go over integrals?"
    )


@pytest.mark.anyio
class TestCreateLessonRequest:

    async def test_student_books_free_slot(
        self,
        booking_service: BookingService,
        availability_service: AvailabilityService,
        test_student_orm: db_models.Students,
        booking_day: date
    ):
        print(f"\n--- Student requesting 10:00-11:00 on {booking_day} ---")
        created = await booking_service.create_lesson_request(_request(booking_day, 10, 11), test_student_orm)
        pprint(created.model_dump())

        assert isinstance(created, request_models.LessonRequestRead)
        assert created.status == LessonRequestStatusEnum.PENDING
        assert created.student.id == TEST_STUDENT_ID
        assert created.tutor.id == TEST_TUTOR_ID
        assert created.subject.name == 'Math'

        slots = await availability_service.resolve_slots(TEST_TUTOR_ID, booking_day)
        assert [s.is_available for s in slots] == [True, False, True]

    async def test_second_request_for_same_slot_is_refused(
        self,
        booking_service: BookingService,
        test_student_orm: db_models.Students,
        test_unrelated_student_orm: db_models.Students,
        booking_day: date
    ):
        await booking_service.create_lesson_request(_request(booking_day, 10, 11), test_student_orm)
        with pytest.raises(SlotUnavailableError):
            await booking_service.create_lesson_request(_request(booking_day, 10, 11), test_unrelated_student_orm)

    async def test_tutor_cannot_request(
        self,
        booking_service: BookingService,
        test_tutor_orm: db_models.Tutors,
        booking_day: date
    ):
        with pytest.raises(UnauthorizedRoleError):
            await booking_service.create_lesson_request(_request(booking_day, 10, 11), test_tutor_orm)

    async def test_admin_cannot_request(
        self,
        booking_service: BookingService,
        test_admin_orm: db_models.Users,
        booking_day: date
    ):
        with pytest.raises(UnauthorizedRoleError):
            await booking_service.create_lesson_request(_request(booking_day, 10, 11), test_admin_orm)

    async def test_interval_not_matching_a_slot(
        self,
        booking_service: BookingService,
        test_student_orm: db_models.Students,
        booking_day: date
    ):
        data = request_models.LessonRequestCreate(
            tutor_id=TEST_TUTOR_ID,
            subject_id=TEST_SUBJECT_ID,
            requested_date=booking_day,
            requested_start_time=time(10, 30),
            requested_end_time=time(11, 30)
        )
        with pytest.raises(SlotUnavailableError):
            await booking_service.create_lesson_request(data, test_student_orm)

    async def test_outside_weekly_window(
        self,
        booking_service: BookingService,
        test_student_orm: db_models.Students,
        free_day: date
    ):
        with pytest.raises(SlotUnavailableError):
            await booking_service.create_lesson_request(_request(free_day, 10, 11), test_student_orm)

    async def test_longer_request_matching_two_hour_slots(
        self,
        booking_service: BookingService,
        test_student_orm: db_models.Students,
        booking_day: date
    ):
        # The slot length follows the requested duration: 09-11 is the first 2h slot.
        created = await booking_service.create_lesson_request(_request(booking_day, 9, 11), test_student_orm)
        assert created.requested_end_time == time(11)

    async def test_unknown_tutor(
        self,
        booking_service: BookingService,
        test_student_orm: db_models.Students,
        booking_day: date
    ):
        with pytest.raises(NotFoundError):
            await booking_service.create_lesson_request(_request(booking_day, 10, 11, tutor_id=uuid4()), test_student_orm)

    async def test_unknown_subject(
        self,
        booking_service: BookingService,
        test_student_orm: db_models.Students,
        booking_day: date
    ):
        with pytest.raises(NotFoundError):
            await booking_service.create_lesson_request(_request(booking_day, 10, 11, subject_id=uuid4()), test_student_orm)

    async def test_past_date(
        self,
        booking_service: BookingService,
        test_student_orm: db_models.Students
    ):
        with pytest.raises(InvalidDateError):
            await booking_service.create_lesson_request(
                _request(date.today() - timedelta(days=7), 10, 11), test_student_orm
            )

    async def test_pending_slot_unique_index(
        self,
        db_session: AsyncSession,
        booking_day: date
    ):
        """Two pending rows for the same tutor slot are refused by the database itself."""
        def pending_row() -> db_models.LessonRequests:
            return db_models.LessonRequests(
                tutor_id=TEST_TUTOR_ID, student_id=TEST_STUDENT_ID, subject_id=TEST_SUBJECT_ID,
                requested_date=booking_day, requested_start_time=time(10), requested_end_time=time(11),
                status=LessonRequestStatusEnum.PENDING.value
            )

        db_session.add(pending_row())
        await db_session.flush()
        db_session.add(pending_row())
        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()


@pytest.mark.anyio
class TestBookingEdges:

    async def test_slot_that_already_started_today(
        self,
        booking_service: BookingService,
        db_session: AsyncSession,
        test_student_orm: db_models.Students
    ):
        today = datetime.now(timezone.utc).date()
        db_session.add(db_models.TutorWeeklySchedule(
            tutor_id=TEST_UNRELATED_TUTOR_ID, day_of_week=today.weekday(),
            start_time=time(0), end_time=time(23, 30), is_available=True
        ))
        await db_session.flush()

        with pytest.raises(InvalidDateError):
            await booking_service.create_lesson_request(
                _request(today, 0, 1, tutor_id=TEST_UNRELATED_TUTOR_ID), test_student_orm
            )

    async def test_booking_follows_the_rule_grid(
        self,
        booking_service: BookingService,
        schedule_service: ScheduleService,
        test_tutor_orm: db_models.Tutors,
        test_student_orm: db_models.Students,
        booking_day: date
    ):
        await schedule_service.replace_weekly_schedule(
            [availability_models.WeeklyRuleWrite(
                day_of_week=0, start_time=time(9), end_time=time(12), lesson_duration=45, break_duration=15
            )],
            test_tutor_orm
        )

        def request(start: time, end: time):
            return request_models.LessonRequestCreate(
                tutor_id=TEST_TUTOR_ID, subject_id=TEST_SUBJECT_ID, requested_date=booking_day,
                requested_start_time=start, requested_end_time=end
            )

        with pytest.raises(SlotUnavailableError):
            await booking_service.create_lesson_request(request(time(9, 45), time(10, 30)), test_student_orm)
        created = await booking_service.create_lesson_request(request(time(10), time(10, 45)), test_student_orm)
        assert created.requested_end_time == time(10, 45)

    async def test_first_booking_opens_one_pending_relationship(
        self,
        booking_service: BookingService,
        db_session: AsyncSession,
        test_student_orm: db_models.Students,
        booking_day: date
    ):
        await booking_service.create_lesson_request(_request(booking_day, 9, 10), test_student_orm)
        await booking_service.create_lesson_request(_request(booking_day, 11, 12), test_student_orm)

        stmt = select(db_models.StudentTutorRelationships).filter(
            db_models.StudentTutorRelationships.student_id == TEST_STUDENT_ID
        )
        relations = (await db_session.execute(stmt)).scalars().all()
        assert [(r.tutor_id, r.status) for r in relations] == [
            (TEST_TUTOR_ID, RelationshipStatusEnum.PENDING.value)
        ]

    async def test_refused_booking_opens_no_relationship(
        self,
        booking_service: BookingService,
        db_session: AsyncSession,
        test_student_orm: db_models.Students,
        free_day: date
    ):
        with pytest.raises(SlotUnavailableError):
            await booking_service.create_lesson_request(_request(free_day, 10, 11), test_student_orm)
        stmt = select(db_models.StudentTutorRelationships)
        assert (await db_session.execute(stmt)).scalars().all() == []

    async def test_failed_write_becomes_persistence_error(
        self,
        booking_service: BookingService,
        db_session: AsyncSession,
        test_student_orm: db_models.Students,
        booking_day: date,
        monkeypatch: pytest.MonkeyPatch
    ):
        async def failing_flush(*args, **kwargs):
            raise OperationalError("INSERT INTO lesson_requests", {}, Exception("connection lost"))

        monkeypatch.setattr(db_session, "flush", failing_flush)
        with pytest.raises(PersistenceError):
            await booking_service.create_lesson_request(_request(booking_day, 10, 11), test_student_orm)

@pytest.fixture
async def created_request(
    booking_service: BookingService,
    test_student_orm: db_models.Students,
    booking_day: date
) -> request_models.LessonRequestRead:
    return await booking_service.create_lesson_request(_request(booking_day, 10, 11), test_student_orm)


@pytest.mark.anyio
class TestReadLessonRequests:

    async def test_tutor_sees_incoming(
        self,
        booking_service: BookingService,
        created_request: request_models.LessonRequestRead,
        test_tutor_orm: db_models.Tutors
    ):
        requests = await booking_service.list_lesson_requests(test_tutor_orm)
        assert [r.id for r in requests] == [created_request.id]

    async def test_student_sees_own(
        self,
        booking_service: BookingService,
        created_request: request_models.LessonRequestRead,
        test_student_orm: db_models.Students,
        test_unrelated_student_orm: db_models.Students
    ):
        assert len(await booking_service.list_lesson_requests(test_student_orm)) == 1
        assert await booking_service.list_lesson_requests(test_unrelated_student_orm) == []

    async def test_status_filter(
        self,
        booking_service: BookingService,
        created_request: request_models.LessonRequestRead,
        test_admin_orm: db_models.Users
    ):
        pending = await booking_service.list_lesson_requests(test_admin_orm, LessonRequestStatusEnum.PENDING)
        accepted = await booking_service.list_lesson_requests(test_admin_orm, LessonRequestStatusEnum.ACCEPTED)
        assert len(pending) == 1
        assert accepted == []

    async def test_get_by_id_as_participant_and_admin(
        self,
        booking_service: BookingService,
        created_request: request_models.LessonRequestRead,
        test_tutor_orm: db_models.Tutors,
        test_admin_orm: db_models.Users
    ):
        for user in (test_tutor_orm, test_admin_orm):
            fetched = await booking_service.get_lesson_request_for_api(created_request.id, user)
            assert fetched.id == created_request.id

    async def test_get_by_id_as_unrelated_tutor(
        self,
        booking_service: BookingService,
        created_request: request_models.LessonRequestRead,
        test_unrelated_tutor_orm: db_models.Tutors
    ):
        with pytest.raises(UnauthorizedRoleError):
            await booking_service.get_lesson_request_for_api(created_request.id, test_unrelated_tutor_orm)

    async def test_get_unknown(self, booking_service: BookingService, test_admin_orm: db_models.Users):
        with pytest.raises(NotFoundError):
            await booking_service.get_lesson_request_for_api(uuid4(), test_admin_orm)
