'''
API endpoints for reading User resources.
'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import APIRouter, Depends

from ..database import models as db_models
from ..database.db_enums import RelationshipStatusEnum, UserRole
from ..models import user as user_models
from ..models import relationship as relationship_models
from ..services.security import verify_token_and_get_user
from ..services.user_service import UserService
from ..services.relationship_service import RelationshipService


class UserAPI:
    """Endpoints for general user actions."""
    def __init__(self):
        self.router = APIRouter(tags=["Users"])
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route("/users/me", self.read_users_me, methods=["GET"], response_model=user_models.UserRead)
        self.router.add_api_route(
                "/users/me/tutors",
                self.read_my_tutors,
                methods=["GET"],
                response_model=list[relationship_models.StudentTutorRead])
        self.router.add_api_route(
                "/users/me/students",
                self.read_my_students,
                methods=["GET"],
                response_model=list[relationship_models.StudentTutorRead])
        self.router.add_api_route("/tutors/{tutor_id}", self.read_tutor, methods=["GET"], response_model=user_models.TutorRead)

    async def read_users_me(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
    ):
        """
        Returns the profile information for the currently authenticated user.
        """
        if current_user.role == UserRole.TUTOR.value:
            return user_models.TutorRead.model_validate(current_user)
        if current_user.role == UserRole.STUDENT.value:
            return user_models.StudentRead.model_validate(current_user)
        return user_models.UserRead.model_validate(current_user)

    async def read_my_tutors(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        relationship_service: Annotated[RelationshipService, Depends(RelationshipService)],
        status: Optional[RelationshipStatusEnum] = None
    ):
        """
        Lists the tutors the calling student has booked, optionally by status.
        """
        return await relationship_service.list_my_tutors(current_user, status)

    async def read_my_students(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        relationship_service: Annotated[RelationshipService, Depends(RelationshipService)],
        status: Optional[RelationshipStatusEnum] = None
    ):
        return await relationship_service.list_my_students(current_user, status)

    async def read_tutor(
        self,
        tutor_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        """
        Returns a tutor's public profile.
        """
        tutor = await user_service.get_tutor(tutor_id)
        return user_models.TutorRead.model_validate(tutor)


# Create an instance of the class and export its router
user_api = UserAPI()
router = user_api.router
