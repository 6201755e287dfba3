'''
API endpoints for Lessons.
'''
from datetime import date
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query

from ..database import models as db_models
from ..database.db_enums import LessonStatusEnum
from ..models import lesson as lesson_models
from ..services.security import verify_token_and_get_user
from ..services.lesson_service import LessonService
from ..services.status_service import StatusService


class LessonsAPI:
    """
    A class to encapsulate the lesson endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/lessons",
            tags=["Lessons"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.list_lessons,
                methods=["GET"],
                response_model=list[lesson_models.LessonRead])

        self.router.add_api_route(
                "/{lesson_id}",
                self.get_lesson,
                methods=["GET"],
                response_model=lesson_models.LessonRead)

        self.router.add_api_route(
                "/{lesson_id}/status",
                self.update_status,
                methods=["PATCH"],
                response_model=lesson_models.LessonRead)

    async def list_lessons(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)],
        day: Annotated[Optional[date], Query(alias="date")] = None,
        status: Optional[LessonStatusEnum] = None
    ) -> list[Any]:
        """
        Lists the current user's lessons, optionally for one day.
        """
        return await lesson_service.list_lessons_for_api(current_user, on_date=day, status=status)

    async def get_lesson(
        self,
        lesson_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)]
    ) -> Any:
        return await lesson_service.get_lesson_for_api(lesson_id, current_user)

    async def update_status(
        self,
        lesson_id: UUID,
        status_data: lesson_models.LessonStatusUpdate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        status_service: Annotated[StatusService, Depends(StatusService)]
    ) -> Any:
        """
        Confirms, completes (tutor) or cancels (either participant) a lesson.
        """
        return await status_service.update_lesson_status(lesson_id, status_data, current_user)

# Instantiate the class and export its router
lessons_api = LessonsAPI()
router = lessons_api.router
