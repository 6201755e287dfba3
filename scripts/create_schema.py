"""
Standalone script to create the database schema from the ORM models and,
optionally, seed a demo tutor, student and subject.

Usage:
    python scripts/create_schema.py [--db-url URL] [--demo]
"""

import argparse
import asyncio
import sys
from datetime import time
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

# --- Path Setup ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.tutor_booking_backend.common.config import settings
from src.tutor_booking_backend.database.engine import build_engine, build_session_factory
from src.tutor_booking_backend.database.db_enums import UserRole
from src.tutor_booking_backend.database import models as db_models
from src.tutor_booking_backend.services.security import HashedPassword

DEMO_PASSWORD = "demo-password"


def demo_rows(hashed: str) -> list[db_models.Base]:
    """A tutor working weekday mornings, one student and one subject."""
    tutor = db_models.Tutors(
        email="demo.tutor@tutorbooking.com", password=hashed, role=UserRole.TUTOR.value,
        first_name="Demo", last_name="Tutor", timezone="UTC", hourly_rate=30,
        weekly_schedule=[
            db_models.TutorWeeklySchedule(
                day_of_week=day, start_time=time(9), end_time=time(12),
                lesson_duration=60, break_duration=15
            )
            for day in range(5)
        ]
    )
    student = db_models.Students(
        email="demo.student@tutorbooking.com", password=hashed, role=UserRole.STUDENT.value,
        first_name="Demo", last_name="Student", timezone="UTC", grade=10
    )
    return [tutor, student, db_models.Subjects(name="Math")]


async def create_schema(db_url: str, demo: bool):
    engine = build_engine(db_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(db_models.Base.metadata.create_all)
        print("Schema created (existing tables were left untouched).")

        if demo:
            Session = build_session_factory(engine)
            async with Session() as session:
                existing = await session.execute(
                    select(db_models.Users).filter(db_models.Users.email == "demo.tutor@tutorbooking.com")
                )
                if existing.scalars().first() is not None:
                    print("Demo data already present, skipping.")
                else:
                    session.add_all(demo_rows(HashedPassword.get_hash(DEMO_PASSWORD)))
                    await session.commit()
                    print(f"Seeded demo users (password: '{DEMO_PASSWORD}').")
    except SQLAlchemyError as e:
        print(f"ERROR: could not create the schema: {e}")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the tutor booking schema.")
    parser.add_argument("--db-url", default=settings.database_url, help="SQLAlchemy async database URL")
    parser.add_argument("--demo", action="store_true", help="Also insert demo users and a subject")
    args = parser.parse_args()

    asyncio.run(create_schema(args.db_url, args.demo))
