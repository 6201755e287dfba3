from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Enum, ForeignKeyConstraint, Index, Integer, Numeric, PrimaryKeyConstraint, SmallInteger, String, Text, Time, UniqueConstraint, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import decimal
import uuid

from .db_enums import LessonRequestStatusEnum, LessonStatusEnum, RelationshipStatusEnum, UserRole


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Base(DeclarativeBase):
    pass


class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('email', name='users_email_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255))
    password: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(Enum(*UserRole.get_all_names(), name='user_role'))
    timezone: Mapped[str] = mapped_column(Text, default='UTC')
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    first_name: Mapped[Optional[str]] = mapped_column(Text)
    last_name: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)

    # Every subclass is joined eagerly so role specific columns never lazy-load.
    __mapper_args__ = {
        'polymorphic_on': 'role',
        'polymorphic_identity': 'admin',
        'with_polymorphic': '*',
    }


class Tutors(Users):
    __tablename__ = 'tutors'
    __table_args__ = (
        ForeignKeyConstraint(['id'], ['users.id'], ondelete='CASCADE', name='tutors_id_fkey'),
        PrimaryKeyConstraint('id', name='tutors_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    hourly_rate: Mapped[Optional[decimal.Decimal]] = mapped_column(Numeric(10, 2))
    bio: Mapped[Optional[str]] = mapped_column(Text)

    weekly_schedule: Mapped[list['TutorWeeklySchedule']] = relationship(
        'TutorWeeklySchedule',
        back_populates='tutor',
        cascade='all, delete-orphan'
    )
    schedule_exceptions: Mapped[list['TutorScheduleExceptions']] = relationship(
        'TutorScheduleExceptions',
        back_populates='tutor',
        cascade='all, delete-orphan'
    )

    __mapper_args__ = {'polymorphic_identity': 'tutor'}


class Students(Users):
    __tablename__ = 'students'
    __table_args__ = (
        ForeignKeyConstraint(['id'], ['users.id'], ondelete='CASCADE', name='students_id_fkey'),
        PrimaryKeyConstraint('id', name='students_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    grade: Mapped[Optional[int]] = mapped_column(Integer)

    __mapper_args__ = {'polymorphic_identity': 'student'}


class Subjects(Base):
    __tablename__ = 'subjects'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='subjects_pkey'),
        UniqueConstraint('name', name='subjects_name_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text)


class TutorWeeklySchedule(Base):
    __tablename__ = 'tutor_weekly_schedule'
    __table_args__ = (
        CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='valid_day_of_week'),
        CheckConstraint('start_time < end_time', name='weekly_schedule_start_before_end'),
        CheckConstraint('lesson_duration IS NULL OR lesson_duration > 0', name='weekly_schedule_positive_lesson'),
        CheckConstraint('break_duration IS NULL OR break_duration >= 0', name='weekly_schedule_non_negative_break'),
        ForeignKeyConstraint(['tutor_id'], ['tutors.id'], ondelete='CASCADE', name='tutor_weekly_schedule_tutor_id_fkey'),
        PrimaryKeyConstraint('id', name='tutor_weekly_schedule_pkey'),
        Index('idx_weekly_schedule_tutor_day', 'tutor_id', 'day_of_week')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tutor_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    day_of_week: Mapped[int] = mapped_column(SmallInteger)
    start_time: Mapped[datetime.time] = mapped_column(Time)
    end_time: Mapped[datetime.time] = mapped_column(Time)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    # Minutes; NULL falls back to SLOT_DURATION_MINUTES / DEFAULT_BREAK_MINUTES.
    lesson_duration: Mapped[Optional[int]] = mapped_column(SmallInteger)
    break_duration: Mapped[Optional[int]] = mapped_column(SmallInteger)

    tutor: Mapped['Tutors'] = relationship('Tutors', back_populates='weekly_schedule')


class TutorScheduleExceptions(Base):
    __tablename__ = 'tutor_schedule_exceptions'
    __table_args__ = (
        CheckConstraint(
            'is_full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)',
            name='partial_exception_has_window'
        ),
        ForeignKeyConstraint(['tutor_id'], ['tutors.id'], ondelete='CASCADE', name='tutor_schedule_exceptions_tutor_id_fkey'),
        PrimaryKeyConstraint('id', name='tutor_schedule_exceptions_pkey'),
        Index('idx_schedule_exceptions_tutor_date', 'tutor_id', 'date')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tutor_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    date: Mapped[datetime.date] = mapped_column(Date)
    is_full_day: Mapped[bool] = mapped_column(Boolean, default=True)
    start_time: Mapped[Optional[datetime.time]] = mapped_column(Time)
    end_time: Mapped[Optional[datetime.time]] = mapped_column(Time)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)

    tutor: Mapped['Tutors'] = relationship('Tutors', back_populates='schedule_exceptions')


class LessonRequests(Base):
    __tablename__ = 'lesson_requests'
    __table_args__ = (
        CheckConstraint('requested_start_time < requested_end_time', name='lesson_request_start_before_end'),
        ForeignKeyConstraint(['tutor_id'], ['tutors.id'], ondelete='CASCADE', name='lesson_requests_tutor_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='lesson_requests_student_id_fkey'),
        ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='SET NULL', name='lesson_requests_subject_id_fkey'),
        PrimaryKeyConstraint('id', name='lesson_requests_pkey'),
        Index('idx_lesson_requests_tutor_date', 'tutor_id', 'requested_date'),
        # At most one pending request may hold a tutor's slot.
        Index(
            'uq_lesson_requests_pending_slot',
            'tutor_id', 'requested_date', 'requested_start_time',
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'")
        )
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tutor_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    subject_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    requested_date: Mapped[datetime.date] = mapped_column(Date)
    requested_start_time: Mapped[datetime.time] = mapped_column(Time)
    requested_end_time: Mapped[datetime.time] = mapped_column(Time)
    message: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        Enum(*LessonRequestStatusEnum.get_all_names(), name='lesson_request_status_enum'),
        default='pending'
    )
    tutor_response: Mapped[Optional[str]] = mapped_column(Text)
    responded_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, onupdate=_utcnow)

    tutor: Mapped['Tutors'] = relationship('Tutors', foreign_keys='[LessonRequests.tutor_id]')
    student: Mapped['Students'] = relationship('Students', foreign_keys='[LessonRequests.student_id]')
    subject: Mapped[Optional['Subjects']] = relationship('Subjects')


class Lessons(Base):
    __tablename__ = 'lessons'
    __table_args__ = (
        CheckConstraint('start_time < end_time', name='lesson_start_before_end'),
        ForeignKeyConstraint(['tutor_id'], ['tutors.id'], ondelete='CASCADE', name='lessons_tutor_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='lessons_student_id_fkey'),
        ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='SET NULL', name='lessons_subject_id_fkey'),
        ForeignKeyConstraint(['lesson_request_id'], ['lesson_requests.id'], ondelete='SET NULL', name='lessons_lesson_request_id_fkey'),
        PrimaryKeyConstraint('id', name='lessons_pkey'),
        Index('idx_lessons_tutor_start', 'tutor_id', 'start_time')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tutor_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    subject_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    lesson_request_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    start_time: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    end_time: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    status: Mapped[str] = mapped_column(
        Enum(*LessonStatusEnum.get_all_names(), name='lesson_status_enum'),
        default='pending'
    )
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, onupdate=_utcnow)

    tutor: Mapped['Tutors'] = relationship('Tutors', foreign_keys='[Lessons.tutor_id]')
    student: Mapped['Students'] = relationship('Students', foreign_keys='[Lessons.student_id]')
    subject: Mapped[Optional['Subjects']] = relationship('Subjects')


class StudentTutorRelationships(Base):
    __tablename__ = 'student_tutor_relationships'
    __table_args__ = (
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='student_tutor_relationships_student_id_fkey'),
        ForeignKeyConstraint(['tutor_id'], ['tutors.id'], ondelete='CASCADE', name='student_tutor_relationships_tutor_id_fkey'),
        PrimaryKeyConstraint('id', name='student_tutor_relationships_pkey'),
        UniqueConstraint('student_id', 'tutor_id', name='student_tutor_relationships_pair_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    tutor_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    status: Mapped[str] = mapped_column(
        Enum(*RelationshipStatusEnum.get_all_names(), name='relationship_status_enum'),
        default='pending'
    )
    start_date: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
    end_date: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, onupdate=_utcnow)

    tutor: Mapped['Tutors'] = relationship('Tutors', foreign_keys='[StudentTutorRelationships.tutor_id]')
    student: Mapped['Students'] = relationship('Students', foreign_keys='[StudentTutorRelationships.student_id]')
