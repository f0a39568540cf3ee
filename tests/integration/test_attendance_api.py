"""
Integration tests for attendance sessions

Tests session management, QR check-in with the week-long token window,
manual check-in scoping and the attendance award.
"""
from datetime import timedelta
from uuid import UUID

import pytest
from sqlalchemy import func, select

from mentorboard.clock import utcnow
from mentorboard.models import PointsTransaction, StudentAttendance, User
from mentorboard.services import attendance as attendance_service

pytestmark = pytest.mark.integration


async def create_session(client, headers, generate_qr=True, when=None, title="Weekly meetup"):
    response = await client.post(
        "/api/v1/attendance/sessions",
        json={
            "title": title,
            "session_date": (when or utcnow()).isoformat(),
            "generate_qr": generate_qr,
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


class TestSessions:
    """Session management"""

    async def test_create_with_qr(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))

        assert len(session["qr_code_token"]) == 64
        assert session["status"] == "ACTIVE"
        assert session["created_by_id"] == str(people.tutor.id)

    async def test_create_without_qr(self, client, people, auth):
        session = await create_session(client, auth(people.tutor), generate_qr=False)
        assert session["qr_code_token"] is None

    async def test_students_cannot_create(self, client, people, auth):
        response = await client.post(
            "/api/v1/attendance/sessions",
            json={"title": "Nope", "session_date": utcnow().isoformat()},
            headers=auth(people.student),
        )
        assert response.status_code == 403

    async def test_tutor_lists_only_own_sessions(self, client, people, auth):
        await create_session(client, auth(people.tutor), title="Mine")
        await create_session(client, auth(people.other_tutor), title="Theirs")

        response = await client.get("/api/v1/attendance/sessions", headers=auth(people.tutor))

        assert response.status_code == 200
        assert [s["title"] for s in response.json()] == ["Mine"]
        assert response.json()[0]["attendee_count"] == 0

    async def test_other_tutor_cannot_open_session(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))

        response = await client.get(f"/api/v1/attendance/sessions/{session['id']}", headers=auth(people.other_tutor))
        assert response.status_code == 403

    async def test_regenerate_invalidates_old_token(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))

        response = await client.post(f"/api/v1/attendance/sessions/{session['id']}/qr", headers=auth(people.tutor))

        assert response.status_code == 200
        assert response.json()["qr_code_token"] != session["qr_code_token"]

        stale = await client.post(
            "/api/v1/attendance/check-in", json={"token": session["qr_code_token"]}, headers=auth(people.student)
        )
        assert stale.status_code == 400

    async def test_qr_svg(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))

        response = await client.get(f"/api/v1/attendance/sessions/{session['id']}/qr.svg", headers=auth(people.tutor))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert "<svg" in response.text


class TestQRCheckIn:
    """POST /api/v1/attendance/check-in"""

    async def test_check_in_awards_points(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))

        response = await client.post(
            "/api/v1/attendance/check-in", json={"token": session["qr_code_token"]}, headers=auth(people.student)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["points_awarded"] == 30
        assert data["attendance"]["check_in_method"] == "QR"

        balance = (await client.get("/api/v1/points/balance", headers=auth(people.student))).json()
        assert balance["points"] == 30
        assert balance["experience"] == 30

    async def test_second_check_in_conflicts(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))
        body = {"token": session["qr_code_token"], "session_id": session["id"]}

        first = await client.post("/api/v1/attendance/check-in", json=body, headers=auth(people.student))
        second = await client.post("/api/v1/attendance/check-in", json=body, headers=auth(people.student))

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["code"] == "ALREADY_CHECKED_IN"

        balance = (await client.get("/api/v1/points/balance", headers=auth(people.student))).json()
        assert balance["points"] == 30

    async def test_expired_token(self, client, people, auth):
        session = await create_session(client, auth(people.tutor), when=utcnow() - timedelta(days=21))

        response = await client.post(
            "/api/v1/attendance/check-in", json={"token": session["qr_code_token"]}, headers=auth(people.student)
        )

        assert response.status_code == 400
        assert response.json()["code"] == "TOKEN_EXPIRED"

    async def test_unknown_token(self, client, people, auth):
        response = await client.post(
            "/api/v1/attendance/check-in", json={"token": "deadbeef"}, headers=auth(people.student)
        )
        assert response.json()["code"] == "TOKEN_EXPIRED"

    async def test_closed_session_rejects(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))
        await client.patch(
            f"/api/v1/attendance/sessions/{session['id']}", json={"status": "CLOSED"}, headers=auth(people.tutor)
        )

        response = await client.post(
            "/api/v1/attendance/check-in", json={"token": session["qr_code_token"]}, headers=auth(people.student)
        )
        assert response.status_code == 400

    async def test_staff_cannot_use_qr(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))

        response = await client.post(
            "/api/v1/attendance/check-in", json={"token": session["qr_code_token"]}, headers=auth(people.tutor)
        )
        assert response.status_code == 403

    async def test_verify_token(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))

        response = await client.get(
            "/api/v1/attendance/verify", params={"token": session["qr_code_token"]}, headers=auth(people.student)
        )

        assert response.status_code == 200
        assert response.json()["id"] == session["id"]
        assert response.json()["tutor_name"]


class TestManualCheckIn:
    async def test_assistant_checks_in_group_student(self, client, people, auth):
        session = await create_session(client, auth(people.tutor), generate_qr=False)

        response = await client.post(
            f"/api/v1/attendance/sessions/{session['id']}/manual-check-in",
            json={"student_id": str(people.student.id), "notes": "Came late"},
            headers=auth(people.assistant),
        )

        assert response.status_code == 201
        assert response.json()["attendance"]["check_in_method"] == "MANUAL"

        detail = await client.get(f"/api/v1/attendance/sessions/{session['id']}", headers=auth(people.tutor))
        attendances = detail.json()["attendances"]
        assert len(attendances) == 1
        assert attendances[0]["student"]["username"] == "student"
        assert attendances[0]["notes"] == "Came late"

    async def test_student_outside_group(self, client, people, auth):
        session = await create_session(client, auth(people.tutor), generate_qr=False)

        response = await client.post(
            f"/api/v1/attendance/sessions/{session['id']}/manual-check-in",
            json={"student_id": str(people.other_student.id)},
            headers=auth(people.tutor),
        )
        assert response.status_code == 403

    async def test_manual_after_qr_conflicts(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))
        await client.post(
            "/api/v1/attendance/check-in", json={"token": session["qr_code_token"]}, headers=auth(people.student)
        )

        response = await client.post(
            f"/api/v1/attendance/sessions/{session['id']}/manual-check-in",
            json={"student_id": str(people.student.id)},
            headers=auth(people.tutor),
        )
        assert response.status_code == 409


class TestAttendanceOverview:
    async def test_admin_overview_counts(self, client, people, auth):
        session = await create_session(client, auth(people.tutor))
        for student in (people.student, people.student2):
            await client.post(
                "/api/v1/attendance/check-in", json={"token": session["qr_code_token"]}, headers=auth(student)
            )

        response = await client.get("/api/v1/stats/attendance", headers=auth(people.admin))

        assert response.status_code == 200
        rows = response.json()
        assert rows[0]["attendees"] == 2
        assert rows[0]["tutor"] == "tutor"


class TestConcurrentCheckIn:
    async def test_lost_race_keeps_neither_row(self, client, people, auth, session_factory, monkeypatch):
        session = await create_session(client, auth(people.tutor), generate_qr=False)
        stage_award = attendance_service.record_attendance_award

        async def competing_check_in_first(db, student_id, actor_id, period_id):
            # Another request commits the same check-in after the duplicate lookup
            async with session_factory() as other:
                other.add(StudentAttendance(
                    session_id=UUID(session["id"]),
                    student_id=student_id,
                    check_in_method="MANUAL",
                ))
                await other.commit()
            return await stage_award(db, student_id, actor_id, period_id)

        monkeypatch.setattr(attendance_service, "record_attendance_award", competing_check_in_first)

        response = await client.post(
            f"/api/v1/attendance/sessions/{session['id']}/manual-check-in",
            json={"student_id": str(people.student.id)},
            headers=auth(people.tutor),
        )

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_CHECKED_IN"

        async with session_factory() as check:
            assert await check.scalar(select(func.count(StudentAttendance.id))) == 1
            assert await check.scalar(select(func.count(PointsTransaction.id))) == 0
            student = await check.get(User, people.student.id)
            assert student.points == 0
