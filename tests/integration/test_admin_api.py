# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for admin, notification and health endpoints."""

import pytest
from httpx import AsyncClient

from learnhub.infrastructure.database.models import Course, User, UserRole


class TestAdminEndpoints:
    """Tests for admin maintenance endpoints."""

    @pytest.mark.asyncio
    async def test_admin_role_required(
        self,
        client: AsyncClient,
        auth_headers,
        teacher: User,
    ) -> None:
        """Test non-admins are forbidden and anonymous callers unauthorized."""
        forbidden = await client.post(
            "/api/v1/admin/fix-enrollment-counts",
            headers=auth_headers(teacher),
        )
        anonymous = await client.get("/api/v1/admin/realtime/stats")

        assert forbidden.status_code == 403
        assert anonymous.status_code == 401

    @pytest.mark.asyncio
    async def test_fix_enrollment_counts(
        self,
        client: AsyncClient,
        auth_headers,
        make_user,
        make_course,
        teacher: User,
    ) -> None:
        """Test reconciliation reports and repairs drifted courses."""
        admin = await make_user(UserRole.ADMIN)
        await make_course(teacher, title="Drifted", enrollment_count=3)
        await make_course(teacher, title="Healthy")

        response = await client.post(
            "/api/v1/admin/fix-enrollment-counts",
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["processed"] == 2
        assert body["fixed"] == 1
        drifted = next(r for r in body["results"] if r["course_title"] == "Drifted")
        assert drifted["enrollment_count_before"] == 3
        assert drifted["enrollment_count_after"] == 0

    @pytest.mark.asyncio
    async def test_expire_invitations_and_stats(
        self,
        client: AsyncClient,
        auth_headers,
        make_user,
    ) -> None:
        """Test the sweep and stats endpoints respond for admins."""
        headers = auth_headers(await make_user(UserRole.ADMIN))

        expired = await client.post("/api/v1/admin/expire-invitations", headers=headers)
        stats = await client.get("/api/v1/admin/realtime/stats", headers=headers)

        assert expired.status_code == 200
        assert expired.json() == {"expired": 0}
        assert stats.status_code == 200
        assert stats.json()["hub"]["sessions"] == 0
        assert "total_handlers" in stats.json()["events"]


class TestNotificationEndpoints:
    """Tests for the notification inbox."""

    @pytest.mark.asyncio
    async def test_inbox_lifecycle(
        self,
        client: AsyncClient,
        auth_headers,
        course: Course,
        teacher: User,
        student: User,
    ) -> None:
        """Test listing, marking read and deleting a notification."""
        await client.post(
            "/api/v1/invitations",
            json={"course_id": course.id, "student_email": student.email},
            headers=auth_headers(teacher),
        )
        headers = auth_headers(student)

        inbox = await client.get("/api/v1/notifications", headers=headers)
        assert inbox.status_code == 200
        assert inbox.json()["unread"] == 1
        notification = inbox.json()["items"][0]
        assert notification["title"] == "Course invitation"
        assert notification["read"] is False

        marked = await client.post(
            f"/api/v1/notifications/mark-read/{notification['id']}",
            headers=headers,
        )
        assert marked.json()["unread"] == 0

        deleted = await client.delete(f"/api/v1/notifications/{notification['id']}", headers=headers)
        assert deleted.status_code == 200

        missing = await client.delete(f"/api/v1/notifications/{notification['id']}", headers=headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_inbox_is_private(
        self,
        client: AsyncClient,
        auth_headers,
        course: Course,
        teacher: User,
        student: User,
    ) -> None:
        """Test a user cannot touch another user's notifications."""
        await client.post(
            "/api/v1/invitations",
            json={"course_id": course.id, "student_email": student.email},
            headers=auth_headers(teacher),
        )
        inbox = await client.get("/api/v1/notifications", headers=auth_headers(student))
        notification_id = inbox.json()["items"][0]["id"]

        response = await client.post(
            f"/api/v1/notifications/mark-read/{notification_id}",
            headers=auth_headers(teacher),
        )
        teacher_inbox = await client.get("/api/v1/notifications", headers=auth_headers(teacher))

        assert response.status_code == 404
        assert teacher_inbox.json() == {"items": [], "unread": 0}

    @pytest.mark.asyncio
    async def test_mark_all_read(
        self,
        client: AsyncClient,
        auth_headers,
        make_course,
        teacher: User,
        student: User,
    ) -> None:
        """Test mark-all-read reports how many rows changed."""
        for title in ("Geometry", "Calculus"):
            course = await make_course(teacher, title=title)
            await client.post(
                "/api/v1/invitations",
                json={"course_id": course.id, "student_email": student.email},
                headers=auth_headers(teacher),
            )

        response = await client.post(
            "/api/v1/notifications/mark-all-read",
            headers=auth_headers(student),
        )

        assert response.json() == {"success": True, "unread": 0, "updated": 2}


class TestHealthEndpoint:
    """Tests for the public health check."""

    @pytest.mark.asyncio
    async def test_health_is_public(self, client: AsyncClient) -> None:
        """Test the health check answers without a token."""
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] in ("healthy", "degraded")
        assert body["version"] == "1.0.0"

    @pytest.mark.asyncio
    async def test_readiness_reports_database(self, client: AsyncClient) -> None:
        """Test readiness includes the database check."""
        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert "database" in response.json()["checks"]
