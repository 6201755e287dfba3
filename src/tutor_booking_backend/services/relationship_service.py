'''
Relationship Service
Keeps track of which students work with which tutors.
'''
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import RelationshipStatusEnum, UserRole
from ..models import relationship as relationship_models
from ..common.exceptions import UnauthorizedRoleError
from ..common.logger import log


class RelationshipService:
    """
    A student and a tutor become related the first time the student books
    them (pending). The relationship is accepted once the tutor accepts a
    request or confirms a lesson. Writes here never flush on their own: they
    ride on the caller's transaction.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def _get_pair(self, student_id: UUID, tutor_id: UUID) -> db_models.StudentTutorRelationships | None:
        stmt = select(db_models.StudentTutorRelationships).filter(
            db_models.StudentTutorRelationships.student_id == student_id,
            db_models.StudentTutorRelationships.tutor_id == tutor_id
        )
        return (await self.db.execute(stmt)).scalars().first()

    async def ensure_pending(self, student_id: UUID, tutor_id: UUID) -> db_models.StudentTutorRelationships:
        """Returns the pair's relationship, adding a pending one if there is none yet."""
        relation = await self._get_pair(student_id, tutor_id)
        if relation is None:
            log.info(f"Opening a pending relationship between student {student_id} and tutor {tutor_id}.")
            relation = db_models.StudentTutorRelationships(
                student_id=student_id,
                tutor_id=tutor_id,
                status=RelationshipStatusEnum.PENDING.value
            )
            self.db.add(relation)
        return relation

    async def accept(self, student_id: UUID, tutor_id: UUID) -> db_models.StudentTutorRelationships:
        """Moves the pair's relationship to accepted, creating it when missing."""
        relation = await self._get_pair(student_id, tutor_id)
        if relation is None:
            relation = db_models.StudentTutorRelationships(student_id=student_id, tutor_id=tutor_id)
            self.db.add(relation)
        if relation.status != RelationshipStatusEnum.ACCEPTED.value:
            log.info(f"Relationship between student {student_id} and tutor {tutor_id} is now accepted.")
            relation.status = RelationshipStatusEnum.ACCEPTED.value
        return relation

    # --- Read Side ---

    async def _list(self, column, user_id: UUID, status: Optional[RelationshipStatusEnum]):
        stmt = select(db_models.StudentTutorRelationships).options(
            selectinload(db_models.StudentTutorRelationships.tutor),
            selectinload(db_models.StudentTutorRelationships.student)
        ).filter(column == user_id).order_by(db_models.StudentTutorRelationships.start_date)
        if status is not None:
            stmt = stmt.filter(db_models.StudentTutorRelationships.status == status.value)
        result = await self.db.execute(stmt)
        return [relationship_models.StudentTutorRead.model_validate(r) for r in result.scalars().all()]

    async def list_my_tutors(
        self,
        current_user: db_models.Users,
        status: Optional[RelationshipStatusEnum] = None
    ) -> list[relationship_models.StudentTutorRead]:
        log.info(f"Fetching tutors of student {current_user.id} (status={status}).")
        if current_user.role != UserRole.STUDENT.value:
            log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to list their tutors.")
            raise UnauthorizedRoleError("Only students have tutors.")
        return await self._list(db_models.StudentTutorRelationships.student_id, current_user.id, status)

    async def list_my_students(
        self,
        current_user: db_models.Users,
        status: Optional[RelationshipStatusEnum] = None
    ) -> list[relationship_models.StudentTutorRead]:
        log.info(f"Fetching students of tutor {current_user.id} (status={status}).")
        if current_user.role != UserRole.TUTOR.value:
            log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to list their students.")
            raise UnauthorizedRoleError("Only tutors have students.")
        return await self._list(db_models.StudentTutorRelationships.tutor_id, current_user.id, status)
