"""
Integration tests for staff reports and the weekly leaderboard

Tests attendance alerts, per-tutor attendance rates, weekly participation,
the events overview and the weekly top earners.
"""
from datetime import timedelta

import pytest

from mentorboard.clock import utcnow

pytestmark = pytest.mark.integration


async def create_session(client, headers, when=None, title="Weekly meetup"):
    response = await client.post(
        "/api/v1/attendance/sessions",
        json={"title": title, "session_date": (when or utcnow()).isoformat(), "generate_qr": False},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


async def check_in(client, headers, session, student):
    response = await client.post(
        f"/api/v1/attendance/sessions/{session['id']}/manual-check-in",
        json={"student_id": str(student.id)},
        headers=headers,
    )
    assert response.status_code == 201


@pytest.fixture
async def group_sessions(client, people, auth):
    """Two sessions by tutor: student attends both, student2 only the later one"""
    headers = auth(people.tutor)
    earlier = await create_session(client, headers, when=utcnow() - timedelta(hours=2), title="Earlier")
    later = await create_session(client, headers, title="Later")
    await check_in(client, headers, earlier, people.student)
    await check_in(client, headers, later, people.student)
    await check_in(client, headers, later, people.student2)
    return earlier, later


class TestAttendanceAlerts:
    """GET /api/v1/stats/attendance-alerts"""

    async def test_default_threshold(self, client, people, auth, group_sessions):
        response = await client.get("/api/v1/stats/attendance-alerts", headers=auth(people.admin))

        assert response.status_code == 200
        body = response.json()
        assert body["threshold"] == 70
        # othertutor never held a session, so otherstudent is not measured
        assert [row["username"] for row in body["students"]] == ["student2"]
        row = body["students"][0]
        assert row["attended_sessions"] == 1
        assert row["total_sessions"] == 2
        assert row["attendance_percentage"] == 50.0
        assert row["tutor_id"] == str(people.tutor.id)

    async def test_custom_threshold(self, client, people, auth, group_sessions):
        response = await client.get(
            "/api/v1/stats/attendance-alerts", params={"threshold": 40}, headers=auth(people.tutor)
        )

        assert response.status_code == 200
        assert response.json()["students"] == []

    async def test_assistant_sees_assisted_group(self, client, people, auth, group_sessions):
        response = await client.get("/api/v1/stats/attendance-alerts", headers=auth(people.assistant))

        assert response.status_code == 200
        assert [row["username"] for row in response.json()["students"]] == ["student2"]

    async def test_tutor_cannot_ask_about_other_group(self, client, people, auth):
        response = await client.get(
            "/api/v1/stats/attendance-alerts",
            params={"tutor_id": str(people.other_tutor.id)},
            headers=auth(people.tutor),
        )
        assert response.status_code == 403

    async def test_students_forbidden(self, client, people, auth):
        response = await client.get("/api/v1/stats/attendance-alerts", headers=auth(people.student))
        assert response.status_code == 403


class TestTutorAttendance:
    """GET /api/v1/stats/tutor-attendance/{tutor_id}"""

    async def test_rates_per_session(self, client, people, auth, group_sessions):
        response = await client.get(
            f"/api/v1/stats/tutor-attendance/{people.tutor.id}", headers=auth(people.admin)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["tutor_name"] == "Tutor Test"
        assert body["total_students"] == 2
        assert body["total_sessions"] == 2
        assert body["overall_attendance_rate"] == 75

        later, earlier = body["sessions"]
        assert later["title"] == "Later"
        assert later["attended_students"] == 2
        assert later["absent_students"] == 0
        assert later["attendance_rate"] == 100
        assert earlier["attended_students"] == 1
        assert earlier["absent_students"] == 1
        assert earlier["attendance_rate"] == 50

    async def test_group_without_sessions(self, client, people, auth):
        response = await client.get(
            f"/api/v1/stats/tutor-attendance/{people.other_tutor.id}", headers=auth(people.other_tutor)
        )

        assert response.status_code == 200
        assert response.json()["total_sessions"] == 0
        assert response.json()["overall_attendance_rate"] == 0

    async def test_not_a_tutor(self, client, people, auth):
        response = await client.get(
            f"/api/v1/stats/tutor-attendance/{people.student.id}", headers=auth(people.admin)
        )
        assert response.status_code == 404

    async def test_other_tutor_forbidden(self, client, people, auth):
        response = await client.get(
            f"/api/v1/stats/tutor-attendance/{people.tutor.id}", headers=auth(people.other_tutor)
        )
        assert response.status_code == 403


class TestWeeklyParticipation:
    """GET /api/v1/stats/weekly-participation"""

    async def test_counts_per_tutor(self, client, people, auth, group_sessions):
        await create_session(client, auth(people.other_tutor), title="Empty room")

        response = await client.get("/api/v1/stats/weekly-participation", headers=auth(people.admin))

        assert response.status_code == 200
        assert response.json() == [
            {
                "tutor_id": str(people.other_tutor.id),
                "tutor": "othertutor",
                "total_sessions": 1,
                "total_attendances": 0,
                "unique_students": 0,
            },
            {
                "tutor_id": str(people.tutor.id),
                "tutor": "tutor",
                "total_sessions": 2,
                "total_attendances": 3,
                "unique_students": 2,
            },
        ]

    async def test_tutor_sees_own_row(self, client, people, auth, group_sessions):
        await create_session(client, auth(people.other_tutor), title="Empty room")

        response = await client.get("/api/v1/stats/weekly-participation", headers=auth(people.tutor))

        assert [row["tutor"] for row in response.json()] == ["tutor"]

    async def test_week_of_active_period(self, client, people, auth):
        # The active period started a week ago, so today falls in week 2
        session = await create_session(client, auth(people.tutor))
        await check_in(client, auth(people.tutor), session, people.student)

        first = await client.get(
            "/api/v1/stats/weekly-participation", params={"week": 1}, headers=auth(people.admin)
        )
        second = await client.get(
            "/api/v1/stats/weekly-participation", params={"week": 2}, headers=auth(people.admin)
        )

        assert first.json() == []
        assert second.json()[0]["total_attendances"] == 1


class TestEventsOverview:
    """GET /api/v1/stats/events-overview"""

    @pytest.fixture
    async def event(self, client, people, auth):
        headers = auth(people.tutor)
        event_type = await client.post("/api/v1/event-types", json={"name": "Workshop"}, headers=headers)
        response = await client.post(
            "/api/v1/events",
            json={
                "title": "Robotics workshop",
                "event_type_id": event_type.json()["id"],
                "event_date": (utcnow() + timedelta(days=3)).isoformat(),
                "capacity": 10,
            },
            headers=headers,
        )
        event = response.json()
        await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student))
        await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student2))
        await client.patch(f"/api/v1/events/{event['id']}", json={"status": "ONGOING"}, headers=headers)
        await client.post(f"/api/v1/events/{event['id']}/check-in", headers=auth(people.student))
        return event

    async def test_registered_vs_attended(self, client, people, auth, event):
        response = await client.get("/api/v1/stats/events-overview", headers=auth(people.admin))

        assert response.status_code == 200
        [row] = response.json()
        assert row["event_id"] == event["id"]
        assert row["event_type"] == "Workshop"
        assert row["registered"] == 2
        assert row["attended"] == 1
        assert row["attendance_rate"] == 50

    async def test_status_filter(self, client, people, auth, event):
        ongoing = await client.get(
            "/api/v1/stats/events-overview", params={"status": "ONGOING"}, headers=auth(people.admin)
        )
        completed = await client.get(
            "/api/v1/stats/events-overview", params={"status": "COMPLETED"}, headers=auth(people.admin)
        )

        assert len(ongoing.json()) == 1
        assert completed.json() == []

    async def test_admin_only(self, client, people, auth):
        response = await client.get("/api/v1/stats/events-overview", headers=auth(people.tutor))
        assert response.status_code == 403


async def award(client, headers, student_id, points):
    response = await client.post(
        "/api/v1/points",
        json={"student_id": str(student_id), "points": points, "reason": "Homework"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["transaction"]


class TestWeeklyTopEarners:
    """GET /api/v1/leaderboard/weekly"""

    async def test_ranked_by_this_weeks_awards(self, client, people, auth):
        headers = auth(people.tutor)
        await award(client, headers, people.student.id, 40)
        await award(client, headers, people.student2.id, 20)
        extra = await award(client, headers, people.student2.id, 30)
        rolled_back = await client.post(
            "/api/v1/points/rollback",
            json={"transaction_id": extra["id"], "transaction_type": "POINTS", "reason": "Correction"},
            headers=headers,
        )
        assert rolled_back.status_code == 201

        response = await client.get("/api/v1/leaderboard/weekly", headers=auth(people.student))

        assert response.status_code == 200
        entries = response.json()["entries"]
        assert [(e["username"], e["rank"], e["weekly_points"]) for e in entries] == [
            ("student", 1, 40),
            ("student2", 2, 20),
        ]
        assert entries[0]["weekly_experience"] == 40
        assert entries[0]["total_experience"] == 40
        assert entries[0]["tutor_id"] == str(people.tutor.id)

    async def test_redeeming_does_not_lower_weekly_earnings(self, client, people, auth):
        headers = auth(people.tutor)
        await award(client, headers, people.student.id, 40)
        await award(client, headers, people.student.id, -10)

        response = await client.get("/api/v1/leaderboard/weekly", headers=auth(people.admin))

        [entry] = response.json()["entries"]
        assert entry["weekly_points"] == 40

    async def test_empty_week(self, client, people, auth):
        response = await client.get("/api/v1/leaderboard/weekly", headers=auth(people.tutor))

        assert response.status_code == 200
        body = response.json()
        assert body["entries"] == []
        assert body["week_start"] < body["week_end"]
