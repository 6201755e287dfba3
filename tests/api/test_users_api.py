"""
Tests for the "my tutors" / "my students" endpoints.
"""
import pytest
import httpx
from datetime import date

from src.tutor_booking_backend.database import models as db_models
from src.tutor_booking_backend.services.security import JWTHandler
from tests.constants import TEST_TUTOR_ID, TEST_STUDENT_ID, TEST_SUBJECT_ID


def auth_headers_for_user(user: db_models.Users) -> dict[str, str]:
    """Helper to create auth headers for a given user."""
    token = JWTHandler.create_access_token(subject=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


async def book_ten_o_clock(client: httpx.AsyncClient, student: db_models.Students, day: date) -> dict:
    response = await client.post(
        "/lesson-requests/",
        json={
            "tutor_id": str(TEST_TUTOR_ID),
            "subject_id": str(TEST_SUBJECT_ID),
            "requested_date": day.isoformat(),
            "requested_start_time": "10:00:00",
            "requested_end_time": "11:00:00"
        },
        headers=auth_headers_for_user(student)
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.anyio
class TestRelationshipsAPI:

    async def test_lists_are_empty_before_any_booking(
        self,
        client: httpx.AsyncClient,
        test_student_orm: db_models.Students,
        test_tutor_orm: db_models.Tutors
    ):
        tutors = await client.get("/users/me/tutors", headers=auth_headers_for_user(test_student_orm))
        students = await client.get("/users/me/students", headers=auth_headers_for_user(test_tutor_orm))
        assert tutors.status_code == students.status_code == 200
        assert tutors.json() == students.json() == []

    async def test_booking_then_acceptance(
        self,
        client: httpx.AsyncClient,
        test_student_orm: db_models.Students,
        test_tutor_orm: db_models.Tutors,
        booking_day: date
    ):
        created = await book_ten_o_clock(client, test_student_orm, booking_day)

        response = await client.get("/users/me/tutors", headers=auth_headers_for_user(test_student_orm))
        assert response.status_code == 200
        tutors = response.json()
        print(f"\n--- My tutors: {tutors} ---")
        assert len(tutors) == 1
        assert tutors[0]["tutor"]["id"] == str(TEST_TUTOR_ID)
        assert tutors[0]["status"] == "pending"

        response = await client.patch(
            f"/lesson-requests/{created['id']}/status",
            json={"status": "accepted"},
            headers=auth_headers_for_user(test_tutor_orm)
        )
        assert response.status_code == 200

        response = await client.get(
            "/users/me/students", params={"status": "accepted"}, headers=auth_headers_for_user(test_tutor_orm)
        )
        assert response.status_code == 200
        students = response.json()
        assert [s["student"]["id"] for s in students] == [str(TEST_STUDENT_ID)]

        pending = await client.get(
            "/users/me/students", params={"status": "pending"}, headers=auth_headers_for_user(test_tutor_orm)
        )
        assert pending.json() == []

    async def test_student_has_no_students(
        self,
        client: httpx.AsyncClient,
        test_student_orm: db_models.Students
    ):
        response = await client.get("/users/me/students", headers=auth_headers_for_user(test_student_orm))
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    async def test_tutor_has_no_tutors(
        self,
        client: httpx.AsyncClient,
        test_tutor_orm: db_models.Tutors
    ):
        response = await client.get("/users/me/tutors", headers=auth_headers_for_user(test_tutor_orm))
        assert response.status_code == 403

    async def test_unknown_status_filter(
        self,
        client: httpx.AsyncClient,
        test_student_orm: db_models.Students
    ):
        response = await client.get(
            "/users/me/tutors", params={"status": "ended"}, headers=auth_headers_for_user(test_student_orm)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    async def test_requires_authentication(self, client: httpx.AsyncClient):
        response = await client.get("/users/me/tutors")
        assert response.status_code == 401
