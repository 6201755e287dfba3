'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any code is imported.
2. Providing a fresh in-memory database, seeded with a known set of users,
   for each test.
3. Providing an async HTTP client bound to the app for endpoint testing.
4. Providing instances of all service classes, pre-injected with the test db session.
'''

import os

# Must happen before the settings object is created on import.
os.environ["TEST_MODE"] = "True"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import pytest
from datetime import date, datetime, time, timedelta, timezone
from typing import AsyncGenerator

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine

# --- Constant Imports ----
from tests.constants import (
    TEST_TUTOR_ID,
    TEST_UNRELATED_TUTOR_ID,
    TEST_STUDENT_ID,
    TEST_UNRELATED_STUDENT_ID,
    TEST_ADMIN_ID,
    TEST_SUBJECT_ID,
    TEST_PASSWORD,
    TEST_TUTOR_EMAIL,
    TEST_UNRELATED_TUTOR_EMAIL,
    TEST_STUDENT_EMAIL,
    TEST_UNRELATED_STUDENT_EMAIL,
    TEST_ADMIN_EMAIL,
)

# --- Application Imports ---
from src.tutor_booking_backend.main import app
from src.tutor_booking_backend.common.config import settings
from src.tutor_booking_backend.database.engine import build_engine, build_session_factory, get_db_session
from src.tutor_booking_backend.database.db_enums import UserRole
from src.tutor_booking_backend.database import models as db_models
from src.tutor_booking_backend.services.security import HashedPassword
from src.tutor_booking_backend.services.user_service import UserService
from src.tutor_booking_backend.services.availability_service import AvailabilityService
from src.tutor_booking_backend.services.schedule_service import ScheduleService
from src.tutor_booking_backend.services.booking_service import BookingService
from src.tutor_booking_backend.services.lesson_service import LessonService
from src.tutor_booking_backend.services.status_service import StatusService
from src.tutor_booking_backend.services.relationship_service import RelationshipService


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (aiosqlite does not run on trio).
    2. Promotes the scope to 'session' (solves 'ScopeMismatch').
    """
    return "asyncio"


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow on purpose, so the seed password is hashed once per run."""
    return HashedPassword.get_hash(TEST_PASSWORD)


def next_weekday(weekday: int) -> date:
    """The next date (strictly after today, UTC) falling on `weekday` (0=Monday)."""
    today = datetime.now(timezone.utc).date()
    ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=ahead)


@pytest.fixture(scope="function")
def booking_day() -> date:
    """A future Monday, the day the seeded tutor works 09:00-12:00."""
    return next_weekday(0)


@pytest.fixture(scope="function")
def free_day() -> date:
    """A future Tuesday, a day the seeded tutor has no rules for."""
    return next_weekday(1)


# --- 1. Database Fixtures ---

@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    A brand new in-memory SQLite database per test.
    StaticPool keeps the single connection alive, so the schema created here
    is the one every session below sees.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your .env file or environment."

    test_engine = build_engine(settings.DATABASE_URL_TEST)
    async with test_engine.begin() as conn:
        await conn.run_sync(db_models.Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


async def _seed(session: AsyncSession, hashed: str):
    """Two tutors, two students, one admin and one subject."""
    session.add_all([
        db_models.Tutors(
            id=TEST_TUTOR_ID, email=TEST_TUTOR_EMAIL, password=hashed,
            role=UserRole.TUTOR.value, timezone='UTC',
            first_name='Tara', last_name='Tutor', hourly_rate=40, bio='Maths and physics.',
            weekly_schedule=[
                db_models.TutorWeeklySchedule(
                    day_of_week=0, start_time=time(9, 0), end_time=time(12, 0), is_available=True
                ),
            ]
        ),
        db_models.Tutors(
            id=TEST_UNRELATED_TUTOR_ID, email=TEST_UNRELATED_TUTOR_EMAIL, password=hashed,
            role=UserRole.TUTOR.value, timezone='UTC',
            first_name='Omar', last_name='Other'
        ),
        db_models.Students(
            id=TEST_STUDENT_ID, email=TEST_STUDENT_EMAIL, password=hashed,
            role=UserRole.STUDENT.value, timezone='UTC',
            first_name='Sami', last_name='Student', grade=10
        ),
        db_models.Students(
            id=TEST_UNRELATED_STUDENT_ID, email=TEST_UNRELATED_STUDENT_EMAIL, password=hashed,
            role=UserRole.STUDENT.value, timezone='UTC',
            first_name='Una', last_name='Unrelated', grade=11
        ),
        db_models.Users(
            id=TEST_ADMIN_ID, email=TEST_ADMIN_EMAIL, password=hashed,
            role=UserRole.ADMIN.value, timezone='UTC',
            first_name='Ada', last_name='Admin'
        ),
        db_models.Subjects(id=TEST_SUBJECT_ID, name='Math'),
    ])
    await session.commit()


@pytest.fixture(scope="function")
async def db_session(engine: AsyncEngine, password_hash: str) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a single session on a freshly seeded database.
    Service tests and the HTTP client share it.
    """
    session = build_session_factory(engine)()
    await _seed(session, password_hash)
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()


# --- 2. HTTP Client Fixture (For API Tests) ---

@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    An async client talking to the app in-process.
    `get_db_session` is overridden so every request runs on the test session
    and nothing is committed beyond a flush.
    """
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


# --- 3. Service Fixtures ---

@pytest.fixture(scope="function")
def user_service(db_session: AsyncSession) -> UserService:
    return UserService(db=db_session)

@pytest.fixture(scope="function")
def availability_service(db_session: AsyncSession, user_service: UserService) -> AvailabilityService:
    return AvailabilityService(db=db_session, user_service=user_service)

@pytest.fixture(scope="function")
def schedule_service(db_session: AsyncSession, user_service: UserService) -> ScheduleService:
    return ScheduleService(db=db_session, user_service=user_service)

@pytest.fixture(scope="function")
def relationship_service(db_session: AsyncSession) -> RelationshipService:
    return RelationshipService(db=db_session)

@pytest.fixture(scope="function")
def booking_service(
    db_session: AsyncSession,
    user_service: UserService,
    availability_service: AvailabilityService,
    relationship_service: RelationshipService
) -> BookingService:
    return BookingService(
        db=db_session,
        user_service=user_service,
        availability_service=availability_service,
        relationship_service=relationship_service
    )

@pytest.fixture(scope="function")
def lesson_service(db_session: AsyncSession) -> LessonService:
    return LessonService(db=db_session)

@pytest.fixture(scope="function")
def status_service(
    db_session: AsyncSession,
    booking_service: BookingService,
    lesson_service: LessonService,
    relationship_service: RelationshipService
) -> StatusService:
    return StatusService(
        db=db_session,
        booking_service=booking_service,
        lesson_service=lesson_service,
        relationship_service=relationship_service
    )


# --- 4. Data Fixtures ---

@pytest.fixture(scope="function")
async def test_tutor_orm(db_session: AsyncSession) -> db_models.Tutors:
    tutor = await db_session.get(db_models.Tutors, TEST_TUTOR_ID)
    assert tutor is not None, f"Test tutor with ID {TEST_TUTOR_ID} not found in DB."
    return tutor

@pytest.fixture(scope="function")
async def test_unrelated_tutor_orm(db_session: AsyncSession) -> db_models.Tutors:
    tutor = await db_session.get(db_models.Tutors, TEST_UNRELATED_TUTOR_ID)
    assert tutor is not None, f"Test tutor with ID {TEST_UNRELATED_TUTOR_ID} not found in DB."
    return tutor

@pytest.fixture(scope="function")
async def test_student_orm(db_session: AsyncSession) -> db_models.Students:
    student = await db_session.get(db_models.Students, TEST_STUDENT_ID)
    assert student is not None, f"Test student with ID {TEST_STUDENT_ID} not found in DB."
    return student

@pytest.fixture(scope="function")
async def test_unrelated_student_orm(db_session: AsyncSession) -> db_models.Students:
    student = await db_session.get(db_models.Students, TEST_UNRELATED_STUDENT_ID)
    assert student is not None, f"Test student with ID {TEST_UNRELATED_STUDENT_ID} not found in DB."
    return student

@pytest.fixture(scope="function")
async def test_admin_orm(db_session: AsyncSession) -> db_models.Users:
    admin = await db_session.get(db_models.Users, TEST_ADMIN_ID)
    assert admin is not None, f"Test admin with ID {TEST_ADMIN_ID} not found in DB."
    return admin
