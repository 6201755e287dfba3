'''
API endpoints for tutor availability: resolved slots, weekly schedule and exceptions.
'''
from datetime import date
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Response, status

from ..database import models as db_models
from ..models import availability as availability_models
from ..services.security import verify_token_and_get_user
from ..services.availability_service import AvailabilityService
from ..services.schedule_service import ScheduleService


class ScheduleAPI:
    """
    A class to encapsulate the availability endpoints.
    Reads are addressed by tutor id; writes always act on the calling tutor.
    """
    def __init__(self):
        self.router = APIRouter(tags=["Schedule"])
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/tutors/{tutor_id}/slots",
                self.get_slots,
                methods=["GET"],
                response_model=list[availability_models.TimeSlot])

        self.router.add_api_route(
                "/tutors/{tutor_id}/schedule",
                self.get_weekly_schedule,
                methods=["GET"],
                response_model=list[availability_models.WeeklyRuleRead])

        self.router.add_api_route(
                "/tutors/{tutor_id}/exceptions",
                self.list_exceptions,
                methods=["GET"],
                response_model=list[availability_models.ScheduleExceptionRead])

        self.router.add_api_route(
                "/schedule/",
                self.replace_weekly_schedule,
                methods=["PUT"],
                response_model=list[availability_models.WeeklyRuleRead])

        self.router.add_api_route(
                "/schedule/exceptions",
                self.add_exception,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=availability_models.ScheduleExceptionRead)

        self.router.add_api_route(
                "/schedule/exceptions/{exception_id}",
                self.delete_exception,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def get_slots(
        self,
        tutor_id: UUID,
        day: Annotated[date, Query(alias="date", description="Calendar day, YYYY-MM-DD")],
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)],
        slot_minutes: Annotated[Optional[int], Query(description="Slot length, defaults to the configured one")] = None
    ) -> list[Any]:
        """
        Returns every slot of the tutor on `date` with its availability.
        """
        return await availability_service.get_slots_for_api(tutor_id, day, slot_minutes)

    async def get_weekly_schedule(
        self,
        tutor_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> list[Any]:
        return await schedule_service.get_weekly_schedule(tutor_id)

    async def list_exceptions(
        self,
        tutor_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)],
        from_date: Optional[date] = None,
        to_date: Optional[date] = None
    ) -> list[Any]:
        return await schedule_service.list_exceptions(tutor_id, from_date, to_date)

    async def replace_weekly_schedule(
        self,
        rules: list[availability_models.WeeklyRuleWrite],
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> list[Any]:
        """
        Replaces the calling tutor's weekly schedule. Restricted to Tutors.
        """
        return await schedule_service.replace_weekly_schedule(rules, current_user)

    async def add_exception(
        self,
        exception_data: availability_models.ScheduleExceptionCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> Any:
        return await schedule_service.add_exception(exception_data, current_user)

    async def delete_exception(
        self,
        exception_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ):
        await schedule_service.delete_exception(exception_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
schedule_api = ScheduleAPI()
router = schedule_api.router
