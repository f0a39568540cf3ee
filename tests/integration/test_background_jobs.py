"""
Integration tests for the scheduled housekeeping jobs

Runs the service functions behind each job against the test database and
checks the scheduler registers every job.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select, update

from mentorboard.clock import utcnow
from mentorboard.models import AttendanceSession, Event, User
from mentorboard.services import attendance, events, ledger
from mentorboard.services.scheduler import configure_scheduler, scheduler

pytestmark = pytest.mark.integration


async def _status(db, model, row_id):
    return await db.scalar(select(model.status).where(model.id == row_id))


class TestEventStatusJob:
    async def test_events_move_through_statuses(self, db, people):
        now = datetime(2024, 5, 15, 12, 0)
        kind = await events.create_event_type(db, people.admin, "Talk")

        async def make(title, when):
            return await events.create_event(db, people.admin, title, when, kind.id)

        today = await make("Today", datetime(2024, 5, 15, 9, 0))
        yesterday = await make("Yesterday", datetime(2024, 5, 14, 10, 0))
        tomorrow = await make("Tomorrow", datetime(2024, 5, 16, 10, 0))
        cancelled = await make("Cancelled", datetime(2024, 5, 14, 10, 0))
        await events.update_event(db, people.admin, cancelled.id, status="CANCELLED")

        summary = await events.advance_event_statuses(db, now=now)

        assert summary == {"started": 1, "completed": 1}
        assert await _status(db, Event, today.id) == "ONGOING"
        assert await _status(db, Event, yesterday.id) == "COMPLETED"
        assert await _status(db, Event, tomorrow.id) == "UPCOMING"
        assert await _status(db, Event, cancelled.id) == "CANCELLED"


class TestCloseSessionsJob:
    async def test_only_expired_sessions_close(self, db, people):
        old = await attendance.create_session(
            db, people.tutor, "Old", utcnow() - timedelta(days=21), generate_qr=True
        )
        current = await attendance.create_session(db, people.tutor, "Current", utcnow(), generate_qr=True)
        no_qr = await attendance.create_session(db, people.tutor, "No QR", utcnow() - timedelta(days=21))

        closed = await attendance.close_expired_sessions(db)

        assert closed == 1
        assert await _status(db, AttendanceSession, old.id) == "CLOSED"
        assert await _status(db, AttendanceSession, current.id) == "ACTIVE"
        assert await _status(db, AttendanceSession, no_qr.id) == "ACTIVE"


class TestReconcileJob:
    async def test_drifted_cache_is_rewritten(self, db, people):
        await ledger.award_points(db, people.tutor, people.student.id, 25)
        await db.execute(update(User).where(User.id == people.student.id).values(points=999))
        await db.commit()

        changed = await ledger.reconcile_cached_balances(db)

        assert changed == 1
        student = await db.get(User, people.student.id)
        assert student.points == 25
        assert student.experience == 25

    async def test_consistent_cache_untouched(self, db, people):
        await ledger.award_points(db, people.tutor, people.student.id, 10)

        assert await ledger.reconcile_cached_balances(db) == 0


class TestSchedulerConfiguration:
    def test_all_jobs_registered(self):
        configure_scheduler()
        try:
            ids = {job.id for job in scheduler.get_jobs()}
            assert ids == {"close_attendance_sessions", "event_status_transitions", "balance_reconciliation"}
        finally:
            scheduler.remove_all_jobs()
