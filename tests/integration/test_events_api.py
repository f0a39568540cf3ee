"""
Integration tests for events and event types

Tests registration against capacity, unregistering, staff-added participants
and day-of check-in.
"""
from datetime import timedelta
from uuid import UUID

import pytest

from mentorboard.clock import utcnow
from mentorboard.exceptions import CapacityReachedError
from mentorboard.services import events as event_service

pytestmark = pytest.mark.integration


@pytest.fixture
async def event_type(client, people, auth):
    response = await client.post(
        "/api/v1/event-types", json={"name": "Workshop", "description": "Hands-on"}, headers=auth(people.tutor)
    )
    assert response.status_code == 201
    return response.json()


async def create_event(client, headers, event_type, capacity=10, generate_qr=False):
    response = await client.post(
        "/api/v1/events",
        json={
            "title": "Robotics workshop",
            "event_type_id": event_type["id"],
            "event_date": (utcnow() + timedelta(days=3)).isoformat(),
            "location": "Lab 2",
            "capacity": capacity,
            "generate_qr": generate_qr,
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


class TestEventTypes:
    async def test_duplicate_name_conflicts(self, client, people, auth, event_type):
        response = await client.post("/api/v1/event-types", json={"name": "Workshop"}, headers=auth(people.admin))

        assert response.status_code == 409

    async def test_type_in_use_cannot_be_deleted(self, client, people, auth, event_type):
        await create_event(client, auth(people.tutor), event_type)

        response = await client.delete(f"/api/v1/event-types/{event_type['id']}", headers=auth(people.admin))

        assert response.status_code == 409

    async def test_active_only_filter(self, client, people, auth, event_type):
        await client.patch(
            f"/api/v1/event-types/{event_type['id']}", json={"is_active": False}, headers=auth(people.admin)
        )

        everything = await client.get("/api/v1/event-types", headers=auth(people.student))
        active = await client.get("/api/v1/event-types", params={"active_only": True}, headers=auth(people.student))

        assert len(everything.json()) == 1
        assert active.json() == []


class TestRegistration:
    """POST /api/v1/events/{id}/register"""

    async def test_register_takes_a_seat(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type, capacity=5)

        response = await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student))

        assert response.status_code == 201
        assert response.json()["status"] == "REGISTERED"

        participation = await client.get(f"/api/v1/events/{event['id']}/participation", headers=auth(people.student))
        assert participation.json()["registered"] is True
        assert participation.json()["seats_left"] == 4

    async def test_capacity_reached(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type, capacity=1)
        await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student))

        response = await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student2))

        assert response.status_code == 409
        assert response.json()["code"] == "CAPACITY_REACHED"

        detail = await client.get(f"/api/v1/events/{event['id']}", headers=auth(people.tutor))
        assert detail.json()["registered_count"] == 1
        assert [p["student"]["username"] for p in detail.json()["participants"]] == ["student"]

    async def test_double_registration(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type)
        await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student))

        response = await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student))

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_REGISTERED"

    async def test_unregister_frees_seat(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type, capacity=1)
        await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student))

        left = await client.delete(f"/api/v1/events/{event['id']}/register", headers=auth(people.student))
        joined = await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student2))

        assert left.status_code == 200
        assert joined.status_code == 201

    async def test_cancelled_event_closed(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type)
        await client.patch(f"/api/v1/events/{event['id']}", json={"status": "CANCELLED"}, headers=auth(people.tutor))

        response = await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student))

        assert response.status_code == 400

    async def test_capacity_cannot_drop_below_registrations(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type, capacity=3)
        for student in (people.student, people.student2):
            await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(student))

        response = await client.patch(f"/api/v1/events/{event['id']}", json={"capacity": 1}, headers=auth(people.tutor))

        assert response.status_code == 400


class TestParticipantsManagement:
    async def test_tutor_adds_group_student(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type)

        response = await client.post(
            f"/api/v1/events/{event['id']}/participants",
            json={"student_id": str(people.student.id)},
            headers=auth(people.tutor),
        )
        assert response.status_code == 201

        removed = await client.delete(
            f"/api/v1/events/{event['id']}/participants/{people.student.id}", headers=auth(people.tutor)
        )
        assert removed.status_code == 200

    async def test_tutor_cannot_add_other_group(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type)

        response = await client.post(
            f"/api/v1/events/{event['id']}/participants",
            json={"student_id": str(people.other_student.id)},
            headers=auth(people.tutor),
        )
        assert response.status_code == 403

    async def test_only_creator_edits(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type)

        response = await client.patch(
            f"/api/v1/events/{event['id']}", json={"title": "Hijacked"}, headers=auth(people.other_tutor)
        )
        assert response.status_code == 403


class TestEventCheckIn:
    async def test_check_in_requires_ongoing(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type)

        response = await client.post(f"/api/v1/events/{event['id']}/check-in", headers=auth(people.student))

        assert response.status_code == 400

    async def test_check_in_with_qr_registers_walk_in(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type, generate_qr=True)
        await client.patch(f"/api/v1/events/{event['id']}", json={"status": "ONGOING"}, headers=auth(people.tutor))

        response = await client.post(
            f"/api/v1/events/{event['id']}/check-in",
            json={"token": event["qr_code_token"]},
            headers=auth(people.student),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "ATTENDED"
        assert response.json()["check_in_method"] == "QR"

    async def test_wrong_token(self, client, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type, generate_qr=True)
        await client.patch(f"/api/v1/events/{event['id']}", json={"status": "ONGOING"}, headers=auth(people.tutor))

        response = await client.post(
            f"/api/v1/events/{event['id']}/check-in", json={"token": "nope"}, headers=auth(people.student)
        )

        assert response.status_code == 400
        assert response.json()["code"] == "TOKEN_EXPIRED"


class TestStaleEventRegistration:
    async def test_full_event_rejects_registration_through_stale_copy(self, client, db, people, auth, event_type):
        event = await create_event(client, auth(people.tutor), event_type, capacity=1)
        stale = await event_service.get_event(db, UUID(event["id"]))
        assert stale.registered_count == 0

        filled = await client.post(f"/api/v1/events/{event['id']}/register", headers=auth(people.student))
        assert filled.status_code == 201

        # The session still holds the copy loaded before the seat was taken
        with pytest.raises(CapacityReachedError):
            await event_service.register(db, people.student2, stale.id)
        await db.rollback()

        detail = (await client.get(f"/api/v1/events/{event['id']}", headers=auth(people.tutor))).json()
        assert detail["registered_count"] == 1
        assert [p["student"]["username"] for p in detail["participants"]] == ["student"]
