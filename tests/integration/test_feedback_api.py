"""
Integration tests for student wishes, tutor-written student reports and
student statistics
"""
import pytest

pytestmark = pytest.mark.integration


class TestWishes:
    async def test_student_submits_and_lists_wish(self, client, people, auth):
        response = await client.post(
            "/api/v1/wishes",
            json={"title": "More robotics", "description": "Could we build a line follower?"},
            headers=auth(people.student),
        )

        assert response.status_code == 201
        assert response.json()["status"] == "PENDING"
        assert response.json()["period_id"] == str(people.period.id)

        mine = await client.get("/api/v1/wishes/mine", headers=auth(people.student))
        assert [w["title"] for w in mine.json()] == ["More robotics"]

        theirs = await client.get("/api/v1/wishes/mine", headers=auth(people.student2))
        assert theirs.json() == []

    async def test_staff_cannot_submit(self, client, people, auth):
        response = await client.post(
            "/api/v1/wishes", json={"title": "Hmm", "description": "Nope"}, headers=auth(people.tutor)
        )
        assert response.status_code == 403

    async def test_admin_reviews_wish(self, client, people, auth):
        wish = (await client.post(
            "/api/v1/wishes",
            json={"title": "Snacks", "description": "Fruit during breaks"},
            headers=auth(people.student),
        )).json()

        response = await client.patch(
            f"/api/v1/wishes/{wish['id']}",
            json={"status": "REVIEWED", "admin_note": "Starting next week"},
            headers=auth(people.admin),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "REVIEWED"
        assert response.json()["admin_note"] == "Starting next week"

        pending = await client.get("/api/v1/wishes", params={"status": "PENDING"}, headers=auth(people.admin))
        reviewed = await client.get("/api/v1/wishes", params={"status": "REVIEWED"}, headers=auth(people.admin))
        assert pending.json() == []
        assert reviewed.json()[0]["student"]["username"] == "student"

    async def test_admin_opens_single_wish(self, client, people, auth):
        wish = (await client.post(
            "/api/v1/wishes",
            json={"title": "Chess club", "description": "On Fridays"},
            headers=auth(people.student),
        )).json()

        response = await client.get(f"/api/v1/wishes/{wish['id']}", headers=auth(people.admin))
        by_student = await client.get(f"/api/v1/wishes/{wish['id']}", headers=auth(people.student))

        assert response.status_code == 200
        assert response.json()["student"]["username"] == "student"
        assert by_student.status_code == 403


class TestStudentReports:
    async def test_tutor_writes_report(self, client, people, auth):
        response = await client.post(
            "/api/v1/student-reports",
            json={"student_id": str(people.student.id), "title": "Week 3", "content": "Very focused"},
            headers=auth(people.tutor),
        )

        assert response.status_code == 201
        assert response.json()["tutor_id"] == str(people.tutor.id)

        listed = await client.get(
            "/api/v1/student-reports", params={"student_id": str(people.student.id)}, headers=auth(people.assistant)
        )
        assert [r["title"] for r in listed.json()] == ["Week 3"]

    async def test_out_of_group_student(self, client, people, auth):
        response = await client.post(
            "/api/v1/student-reports",
            json={"student_id": str(people.other_student.id), "title": "Week 3", "content": "Hello"},
            headers=auth(people.tutor),
        )
        assert response.status_code == 403

    async def test_only_author_edits(self, client, people, auth):
        report = (await client.post(
            "/api/v1/student-reports",
            json={"student_id": str(people.student.id), "title": "Week 3", "content": "Very focused"},
            headers=auth(people.tutor),
        )).json()

        by_admin = await client.patch(
            f"/api/v1/student-reports/{report['id']}", json={"content": "Edited"}, headers=auth(people.admin)
        )
        by_author = await client.patch(
            f"/api/v1/student-reports/{report['id']}", json={"content": "Edited"}, headers=auth(people.tutor)
        )

        assert by_admin.status_code == 403
        assert by_author.status_code == 200
        assert by_author.json()["content"] == "Edited"

    async def test_students_have_no_access(self, client, people, auth):
        response = await client.get(
            "/api/v1/student-reports", params={"student_id": str(people.student.id)}, headers=auth(people.student)
        )
        assert response.status_code == 403


class TestStudentStats:
    async def test_my_stats(self, client, people, auth):
        await client.post(
            "/api/v1/points",
            json={"student_id": str(people.student.id), "points": 12},
            headers=auth(people.tutor),
        )

        response = await client.get("/api/v1/stats/me", headers=auth(people.student))

        assert response.status_code == 200
        data = response.json()
        assert data["points"] == 12
        assert data["experience"] == 12
        assert data["rank"] == 1
        assert data["attended_sessions"] == 0
        assert data["events_joined"] == 0
