'''
API endpoints for Lesson Requests.
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status

from ..database import models as db_models
from ..database.db_enums import LessonRequestStatusEnum
from ..models import lesson_request as request_models
from ..services.security import verify_token_and_get_user
from ..services.booking_service import BookingService
from ..services.status_service import StatusService


class LessonRequestsAPI:
    """
    A class to encapsulate the lesson request endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/lesson-requests",
            tags=["Lesson Requests"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.list_requests,
                methods=["GET"],
                response_model=list[request_models.LessonRequestRead])

        self.router.add_api_route(
                "/",
                self.create_request,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=request_models.LessonRequestRead)

        self.router.add_api_route(
                "/{request_id}",
                self.get_request,
                methods=["GET"],
                response_model=request_models.LessonRequestRead)

        self.router.add_api_route(
                "/{request_id}/status",
                self.update_status,
                methods=["PATCH"],
                response_model=request_models.LessonRequestRead)

    async def list_requests(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        booking_service: Annotated[BookingService, Depends(BookingService)],
        status: Optional[LessonRequestStatusEnum] = None
    ) -> list[Any]:
        """
        Lists the lesson requests visible to the current user, newest first.
        """
        return await booking_service.list_lesson_requests(current_user, status)

    async def create_request(
        self,
        request_data: request_models.LessonRequestCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        booking_service: Annotated[BookingService, Depends(BookingService)]
    ) -> Any:
        """
        Requests one of a tutor's available slots. Restricted to Students.
        """
        return await booking_service.create_lesson_request(request_data, current_user)

    async def get_request(
        self,
        request_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        booking_service: Annotated[BookingService, Depends(BookingService)]
    ) -> Any:
        return await booking_service.get_lesson_request_for_api(request_id, current_user)

    async def update_status(
        self,
        request_id: UUID,
        status_data: request_models.LessonRequestStatusUpdate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        status_service: Annotated[StatusService, Depends(StatusService)]
    ) -> Any:
        """
        Accepts or rejects (tutor) or cancels (student) a pending request.
        """
        return await status_service.update_request_status(request_id, status_data, current_user)

# Instantiate the class and export its router
lesson_requests_api = LessonRequestsAPI()
router = lesson_requests_api.router
