# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for invitation endpoints."""

import pytest
from httpx import AsyncClient

from learnhub.infrastructure.database.models import Course, User, UserRole

INVITATIONS = "/api/v1/invitations"


async def _invite(client: AsyncClient, headers: dict[str, str], course: Course, email: str):
    return await client.post(
        INVITATIONS,
        json={"course_id": course.id, "student_email": email, "message": "Welcome aboard"},
        headers=headers,
    )


class TestCreateInvitationEndpoint:
    """Tests for POST /invitations."""

    @pytest.mark.asyncio
    async def test_teacher_invites_student(
        self,
        client: AsyncClient,
        auth_headers,
        course: Course,
        teacher: User,
        student: User,
    ) -> None:
        """Test a course owner can invite by email."""
        response = await _invite(client, auth_headers(teacher), course, student.email)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["student_id"] == student.id
        assert body["message"] == "Welcome aboard"

    @pytest.mark.asyncio
    async def test_duplicate_is_conflict(
        self,
        client: AsyncClient,
        auth_headers,
        course: Course,
        teacher: User,
        student: User,
    ) -> None:
        """Test a second pending invitation is rejected."""
        headers = auth_headers(teacher)
        await _invite(client, headers, course, student.email)

        response = await _invite(client, headers, course, student.email)

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_students_cannot_invite(
        self,
        client: AsyncClient,
        auth_headers,
        make_user,
        course: Course,
        student: User,
    ) -> None:
        """Test the teacher role is required."""
        classmate = await make_user(UserRole.STUDENT)

        response = await _invite(client, auth_headers(student), course, classmate.email)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_student_and_bad_email(
        self,
        client: AsyncClient,
        auth_headers,
        course: Course,
        teacher: User,
    ) -> None:
        """Test unknown emails are 404 and invalid ones fail validation."""
        headers = auth_headers(teacher)

        unknown = await _invite(client, headers, course, "ghost@example.com")
        invalid = await _invite(client, headers, course, "not-an-email")

        assert unknown.status_code == 404
        assert invalid.status_code == 422


class TestInvitationActions:
    """Tests for accept, decline, cancel and queries."""

    @pytest.mark.asyncio
    async def test_accept_flow(
        self,
        client: AsyncClient,
        auth_headers,
        course: Course,
        teacher: User,
        student: User,
    ) -> None:
        """Test accepting enrolls the learner and cannot be repeated."""
        created = await _invite(client, auth_headers(teacher), course, student.email)
        invitation_id = created.json()["id"]
        headers = auth_headers(student)

        mine = await client.get(f"{INVITATIONS}/mine", headers=headers)
        assert [i["id"] for i in mine.json()] == [invitation_id]

        accepted = await client.put(f"{INVITATIONS}/{invitation_id}/accept", headers=headers)
        assert accepted.status_code == 200
        assert accepted.json()["message"] == "Invitation accepted successfully"
        assert accepted.json()["invitation"]["status"] == "accepted"

        status = await client.get(f"/api/v1/courses/{course.id}/enrollment", headers=headers)
        assert status.json()["enrolled"] is True

        again = await client.put(f"{INVITATIONS}/{invitation_id}/accept", headers=headers)
        assert again.status_code == 409

        mine_after = await client.get(f"{INVITATIONS}/mine", headers=headers)
        assert mine_after.json() == []

    @pytest.mark.asyncio
    async def test_decline(
        self,
        client: AsyncClient,
        auth_headers,
        course: Course,
        teacher: User,
        student: User,
    ) -> None:
        """Test the invitee can decline."""
        created = await _invite(client, auth_headers(teacher), course, student.email)
        invitation_id = created.json()["id"]

        response = await client.put(
            f"{INVITATIONS}/{invitation_id}/decline",
            headers=auth_headers(student),
        )

        assert response.status_code == 200
        assert response.json()["invitation"]["status"] == "declined"

    @pytest.mark.asyncio
    async def test_cancel_and_visibility(
        self,
        client: AsyncClient,
        auth_headers,
        make_user,
        course: Course,
        teacher: User,
        student: User,
    ) -> None:
        """Test only participants see an invitation and only the issuer cancels it."""
        created = await _invite(client, auth_headers(teacher), course, student.email)
        invitation_id = created.json()["id"]
        stranger = await make_user(UserRole.TEACHER)

        hidden = await client.get(f"{INVITATIONS}/{invitation_id}", headers=auth_headers(stranger))
        visible = await client.get(f"{INVITATIONS}/{invitation_id}", headers=auth_headers(student))
        by_student = await client.delete(f"{INVITATIONS}/{invitation_id}", headers=auth_headers(student))
        by_issuer = await client.delete(f"{INVITATIONS}/{invitation_id}", headers=auth_headers(teacher))

        assert hidden.status_code == 403
        assert visible.status_code == 200
        assert by_student.status_code == 403
        assert by_issuer.status_code == 200
        assert by_issuer.json()["invitation"]["status"] == "cancelled"

        sent = await client.get(f"{INVITATIONS}/sent", headers=auth_headers(teacher))
        assert [i["status"] for i in sent.json()] == ["cancelled"]
