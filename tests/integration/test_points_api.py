"""
Integration tests for the points and experience ledgers

Tests awarding, redeeming, balance derivation, group scoping, rollbacks and
the leaderboard built from the ledgers.
"""
import pytest

pytestmark = pytest.mark.integration


async def award(client, headers, student_id, points, reason="Homework"):
    return await client.post(
        "/api/v1/points",
        json={"student_id": str(student_id), "points": points, "reason": reason},
        headers=headers,
    )


class TestAwardPoints:
    """POST /api/v1/points"""

    async def test_tutor_awards_own_student(self, client, people, auth):
        response = await award(client, auth(people.tutor), people.student.id, 25)

        assert response.status_code == 201
        data = response.json()
        assert data["new_balance"] == 25
        assert data["transaction"]["type"] == "AWARD"
        assert data["transaction"]["points"] == 25
        assert data["transaction"]["period_id"] == str(people.period.id)

    async def test_award_also_grants_experience(self, client, people, auth):
        await award(client, auth(people.tutor), people.student.id, 40)

        response = await client.get("/api/v1/points/balance", headers=auth(people.student))

        assert response.status_code == 200
        assert response.json() == {"student_id": str(people.student.id), "points": 40, "experience": 40}

    async def test_tutor_cannot_award_other_group(self, client, people, auth):
        response = await award(client, auth(people.tutor), people.other_student.id, 10)

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    async def test_admin_awards_any_student(self, client, people, auth):
        response = await award(client, auth(people.admin), people.other_student.id, 10)
        assert response.status_code == 201

    async def test_assistant_cannot_award(self, client, people, auth):
        response = await award(client, auth(people.assistant), people.student.id, 10)
        assert response.status_code == 403

    async def test_zero_points_rejected(self, client, people, auth):
        response = await award(client, auth(people.tutor), people.student.id, 0)

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"

    async def test_unknown_student(self, client, people, auth):
        response = await award(client, auth(people.admin), people.tutor.id, 10)
        assert response.status_code == 404


class TestRedeemPoints:
    async def test_redeem_within_balance(self, client, people, auth):
        headers = auth(people.tutor)
        await award(client, headers, people.student.id, 50)

        response = await award(client, headers, people.student.id, -20, reason="Sticker")

        assert response.status_code == 201
        assert response.json()["transaction"]["type"] == "REDEEM"
        assert response.json()["transaction"]["points"] == 20
        assert response.json()["new_balance"] == 30

    async def test_redeem_does_not_reduce_experience(self, client, people, auth):
        headers = auth(people.tutor)
        await award(client, headers, people.student.id, 50)
        await award(client, headers, people.student.id, -50)

        balance = (await client.get("/api/v1/points/balance", headers=auth(people.student))).json()
        assert balance["points"] == 0
        assert balance["experience"] == 50

    async def test_redeem_above_balance(self, client, people, auth):
        headers = auth(people.tutor)
        await award(client, headers, people.student.id, 10)

        response = await award(client, headers, people.student.id, -11)

        assert response.status_code == 400
        assert response.json()["code"] == "INSUFFICIENT_POINTS"


class TestBalanceAccess:
    async def test_tutor_reads_own_student_balance(self, client, people, auth):
        response = await client.get(
            "/api/v1/points/balance", params={"student_id": str(people.student.id)}, headers=auth(people.tutor)
        )
        assert response.status_code == 200

    async def test_student_cannot_read_other_student(self, client, people, auth):
        response = await client.get(
            "/api/v1/points/balance", params={"student_id": str(people.student2.id)}, headers=auth(people.student)
        )
        assert response.status_code == 403

    async def test_student_sees_only_own_transactions(self, client, people, auth):
        headers = auth(people.tutor)
        await award(client, headers, people.student.id, 5)
        await award(client, headers, people.student2.id, 7)

        response = await client.get("/api/v1/points", headers=auth(people.student))

        assert response.status_code == 200
        assert [row["student_id"] for row in response.json()] == [str(people.student.id)]


class TestExperience:
    async def test_award_experience_only(self, client, people, auth):
        response = await client.post(
            "/api/v1/points/experience",
            json={"student_id": str(people.student.id), "amount": 15},
            headers=auth(people.tutor),
        )
        assert response.status_code == 201

        balance = (await client.get("/api/v1/points/balance", headers=auth(people.student))).json()
        assert balance["points"] == 0
        assert balance["experience"] == 15


class TestRollback:
    """POST /api/v1/points/rollback"""

    async def test_rollback_reverses_award(self, client, people, auth):
        created = await award(client, auth(people.tutor), people.student.id, 30)
        transaction_id = created.json()["transaction"]["id"]

        response = await client.post(
            "/api/v1/points/rollback",
            json={"transaction_id": transaction_id, "transaction_type": "POINTS", "reason": "Entered twice"},
            headers=auth(people.admin),
        )

        assert response.status_code == 201
        assert response.json()["transaction_id"] == transaction_id

        balance = (await client.get("/api/v1/points/balance", headers=auth(people.student))).json()
        assert balance["points"] == 0
        assert balance["experience"] == 0

        history = await client.get("/api/v1/points/rollbacks", headers=auth(people.admin))
        assert len(history.json()) == 1

    async def test_second_rollback_conflicts(self, client, people, auth):
        created = await award(client, auth(people.tutor), people.student.id, 30)
        body = {
            "transaction_id": created.json()["transaction"]["id"],
            "transaction_type": "POINTS",
            "reason": "Mistake",
        }

        first = await client.post("/api/v1/points/rollback", json=body, headers=auth(people.admin))
        second = await client.post("/api/v1/points/rollback", json=body, headers=auth(people.admin))

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["code"] == "ALREADY_ROLLED_BACK"

    async def test_rollback_is_admin_only(self, client, people, auth):
        created = await award(client, auth(people.tutor), people.student.id, 30)

        response = await client.post(
            "/api/v1/points/rollback",
            json={
                "transaction_id": created.json()["transaction"]["id"],
                "transaction_type": "POINTS",
                "reason": "Mine",
            },
            headers=auth(people.tutor),
        )
        assert response.status_code == 403


class TestLeaderboard:
    async def test_ranked_by_experience(self, client, people, auth):
        await award(client, auth(people.tutor), people.student.id, 20)
        await award(client, auth(people.tutor), people.student2.id, 50)
        await award(client, auth(people.other_tutor), people.other_student.id, 20)

        response = await client.get("/api/v1/leaderboard", headers=auth(people.student))

        assert response.status_code == 200
        data = response.json()
        assert data["period"] == "Spring Term"
        assert [(e["username"], e["rank"]) for e in data["entries"]] == [
            ("student2", 1),
            ("otherstudent", 2),
            ("student", 2),
        ]
        assert data["me"]["username"] == "student"

    async def test_group_leaderboard(self, client, people, auth):
        await award(client, auth(people.other_tutor), people.other_student.id, 20)

        response = await client.get("/api/v1/leaderboard/group", headers=auth(people.assistant))

        assert response.status_code == 200
        usernames = {e["username"] for e in response.json()["entries"]}
        assert usernames == {"student", "student2"}


async def start_period(client, headers, name):
    created = await client.post(
        "/api/v1/periods",
        json={"name": name, "start_date": "2030-01-07T00:00:00"},
        headers=headers,
    )
    period_id = created.json()["id"]
    response = await client.post(f"/api/v1/periods/{period_id}/activate", headers=headers)
    assert response.status_code == 200
    return period_id


async def displayed_and_ledger(client, headers):
    me = (await client.get("/api/v1/auth/me", headers=headers)).json()
    balance = (await client.get("/api/v1/points/balance", headers=headers)).json()
    return (me["points"], me["experience"]), (balance["points"], balance["experience"])


async def rollback(client, headers, transaction_id):
    return await client.post(
        "/api/v1/points/rollback",
        json={"transaction_id": transaction_id, "transaction_type": "POINTS", "reason": "Correction"},
        headers=headers,
    )


class TestDisplayedBalance:
    """The balance on /auth/me always equals the ledger of the active period"""

    async def test_new_period_starts_from_zero(self, client, people, auth):
        await award(client, auth(people.tutor), people.student.id, 50)

        await start_period(client, auth(people.admin), "Autumn")

        displayed, ledger = await displayed_and_ledger(client, auth(people.student))
        assert displayed == ledger == (0, 0)

    async def test_reactivating_restores_earlier_totals(self, client, people, auth):
        await award(client, auth(people.tutor), people.student.id, 50)
        await start_period(client, auth(people.admin), "Autumn")
        await award(client, auth(people.tutor), people.student.id, 10)

        response = await client.post(f"/api/v1/periods/{people.period.id}/activate", headers=auth(people.admin))
        assert response.status_code == 200

        displayed, ledger = await displayed_and_ledger(client, auth(people.student))
        assert displayed == ledger == (50, 50)

    async def test_rolling_back_old_period_row_leaves_current_balance(self, client, people, auth):
        old = (await award(client, auth(people.tutor), people.student.id, 50)).json()
        await start_period(client, auth(people.admin), "Autumn")
        await award(client, auth(people.tutor), people.student.id, 20)

        response = await rollback(client, auth(people.admin), old["transaction"]["id"])
        assert response.status_code == 201

        displayed, ledger = await displayed_and_ledger(client, auth(people.student))
        assert displayed == ledger == (20, 20)

    async def test_rollbacks_after_full_redeem(self, client, people, auth):
        awarded = (await award(client, auth(people.tutor), people.student.id, 50)).json()
        redeemed = (await award(client, auth(people.tutor), people.student.id, -50)).json()

        await rollback(client, auth(people.admin), awarded["transaction"]["id"])
        await rollback(client, auth(people.admin), redeemed["transaction"]["id"])

        displayed, ledger = await displayed_and_ledger(client, auth(people.student))
        assert displayed == ledger == (0, 0)
