'''
Availability Service
Resolves the bookable slots of a tutor for one calendar day.
'''
from datetime import date, datetime, time, timedelta
from typing import Annotated, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import LessonRequestStatusEnum, LessonStatusEnum
from ..models.availability import TimeSlot
from ..core import availability as slot_logic
from ..common.config import settings
from ..common.exceptions import InvalidDateError, ValidationError
from ..common.time_utils import ensure_utc, get_tz, now_in
from ..common.logger import log
from .user_service import UserService


class AvailabilityService:
    """
    Combines a tutor's weekly rules, schedule exceptions and already
    committed lessons / pending requests into the slots of a given day.
    Read-only: nothing here writes to the database.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        self.db = db
        self.user_service = user_service

    # --- Input Helpers ---

    @staticmethod
    def slot_length(slot_minutes: Optional[int] = None) -> timedelta:
        """Returns the slot duration, defaulting to SLOT_DURATION_MINUTES."""
        minutes = settings.SLOT_DURATION_MINUTES if slot_minutes is None else slot_minutes
        if not settings.MIN_SLOT_MINUTES <= minutes <= settings.MAX_SLOT_MINUTES:
            raise ValidationError(
                f"Slot length must be between {settings.MIN_SLOT_MINUTES} "
                f"and {settings.MAX_SLOT_MINUTES} minutes."
            )
        return timedelta(minutes=minutes)

    @staticmethod
    def rule_grid(rule: db_models.TutorWeeklySchedule, slot_length: Optional[timedelta] = None) -> slot_logic.Grid:
        """
        Lesson and break length used to cut a weekly rule into slots.
        An explicit slot_length wins over the rule's own lesson_duration.
        """
        if slot_length is None:
            minutes = rule.lesson_duration or settings.SLOT_DURATION_MINUTES
            slot_length = timedelta(minutes=minutes)
        gap = settings.DEFAULT_BREAK_MINUTES if rule.break_duration is None else rule.break_duration
        return slot_length, timedelta(minutes=gap)

    @staticmethod
    def validate_date(day: date, tz: ZoneInfo) -> None:
        """
        Raises InvalidDateError unless `day` lies between the tutor's local
        today and BOOKING_WINDOW_DAYS ahead.
        """
        today = now_in(tz).date()
        last_day = today + timedelta(days=settings.BOOKING_WINDOW_DAYS)
        if day < today:
            raise InvalidDateError(f"{day.isoformat()} is in the past.")
        if day > last_day:
            raise InvalidDateError(
                f"{day.isoformat()} is more than {settings.BOOKING_WINDOW_DAYS} days ahead."
            )

    @staticmethod
    def _local_interval(day: date, start: time, end: time, tz: ZoneInfo) -> slot_logic.Interval:
        return (datetime.combine(day, start, tzinfo=tz), datetime.combine(day, end, tzinfo=tz))

    # --- Data Loading ---

    async def _load_windows(
        self,
        tutor_id: UUID,
        day: date,
        tz: ZoneInfo,
        slot_length: Optional[timedelta] = None
    ) -> dict[slot_logic.Grid, list[slot_logic.Interval]]:
        """The day's available rule windows, grouped by lesson/break grid."""
        stmt = select(db_models.TutorWeeklySchedule).filter(
            db_models.TutorWeeklySchedule.tutor_id == tutor_id,
            db_models.TutorWeeklySchedule.day_of_week == day.weekday(),
            db_models.TutorWeeklySchedule.is_available.is_(True)
        )
        rules = (await self.db.execute(stmt)).scalars().all()
        windows: dict[slot_logic.Grid, list[slot_logic.Interval]] = {}
        for rule in rules:
            grid = self.rule_grid(rule, slot_length)
            windows.setdefault(grid, []).append(self._local_interval(day, rule.start_time, rule.end_time, tz))
        return windows

    async def _load_exceptions(self, tutor_id: UUID, day: date) -> list[db_models.TutorScheduleExceptions]:
        stmt = select(db_models.TutorScheduleExceptions).filter(
            db_models.TutorScheduleExceptions.tutor_id == tutor_id,
            db_models.TutorScheduleExceptions.date == day
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def load_occupied(self, tutor_id: UUID, day: date, tz: ZoneInfo) -> list[slot_logic.Interval]:
        """
        Intervals already taken on the tutor's local `day`: every lesson that
        is not cancelled plus every pending request.
        """
        day_start = datetime.combine(day, time.min, tzinfo=tz)
        day_end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)

        lesson_stmt = select(db_models.Lessons).filter(
            db_models.Lessons.tutor_id == tutor_id,
            db_models.Lessons.status != LessonStatusEnum.CANCELLED.value,
            db_models.Lessons.start_time < ensure_utc(day_end),
            db_models.Lessons.end_time > ensure_utc(day_start)
        )
        lessons = (await self.db.execute(lesson_stmt)).scalars().all()

        request_stmt = select(db_models.LessonRequests).filter(
            db_models.LessonRequests.tutor_id == tutor_id,
            db_models.LessonRequests.requested_date == day,
            db_models.LessonRequests.status == LessonRequestStatusEnum.PENDING.value
        )
        requests = (await self.db.execute(request_stmt)).scalars().all()

        occupied = [(ensure_utc(lesson.start_time), ensure_utc(lesson.end_time)) for lesson in lessons]
        occupied.extend(
            self._local_interval(day, r.requested_start_time, r.requested_end_time, tz)
            for r in requests
        )
        return occupied

    # --- Resolution ---

    async def compute_slots(
        self,
        tutor: db_models.Tutors,
        day: date,
        slot_length: Optional[timedelta] = None
    ) -> list[TimeSlot]:
        """
        Builds the slots of `day` for an already loaded tutor without any
        date-window checks. The booking writer re-runs this inside its
        transaction. Without slot_length every rule is cut by its own
        lesson_duration.
        """
        tz = get_tz(tutor.timezone)

        windows = await self._load_windows(tutor.id, day, tz, slot_length)
        if not windows:
            log.info(f"Tutor {tutor.id} has no availability on weekday {day.weekday()}.")
            return []

        exceptions = await self._load_exceptions(tutor.id, day)
        if any(e.is_full_day for e in exceptions):
            log.info(f"Tutor {tutor.id} has a full-day exception on {day}.")
            return []
        blocked = [
            self._local_interval(day, e.start_time, e.end_time, tz)
            for e in exceptions
            if e.start_time is not None and e.end_time is not None
        ]

        occupied = await self.load_occupied(tutor.id, day, tz)
        return slot_logic.build_rule_slots(tutor.id, day, windows, blocked, occupied)

    async def resolve_slots(
        self,
        tutor_id: UUID,
        day: date,
        slot_minutes: Optional[int] = None
    ) -> list[TimeSlot]:
        """
        Returns the ordered slots of `day` for a tutor, each flagged with
        is_available. An empty list means there is simply no availability.
        Raises NotFoundError for an unknown tutor and InvalidDateError for a
        day outside the booking window.
        """
        log.info(f"Resolving slots for tutor {tutor_id} on {day} (slot_minutes={slot_minutes})")
        length = None if slot_minutes is None else self.slot_length(slot_minutes)
        tutor = await self.user_service.get_tutor(tutor_id)
        self.validate_date(day, get_tz(tutor.timezone))
        return await self.compute_slots(tutor, day, length)

    async def get_slots_for_api(
        self,
        tutor_id: UUID,
        day: date,
        slot_minutes: Optional[int] = None
    ) -> list[TimeSlot]:
        """
        resolve_slots plus the caller-level booking window: on the tutor's
        current day, slots that have already started are reported unavailable.
        """
        slots = await self.resolve_slots(tutor_id, day, slot_minutes)
        if not slots:
            return slots

        now = datetime.now(slots[0].starts_at.tzinfo)
        if day != now.date():
            return slots
        return [
            s.model_copy(update={"is_available": False}) if s.starts_at <= now else s
            for s in slots
        ]
