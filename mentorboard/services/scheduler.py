"""
APScheduler Configuration

Periodic housekeeping: closing attendance sessions whose QR window has passed,
moving events through their statuses and reconciling cached balances with
the ledger.
"""
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from mentorboard.database import AsyncSessionLocal
from mentorboard.services.attendance import close_expired_sessions
from mentorboard.services.events import advance_event_statuses
from mentorboard.services.ledger import reconcile_cached_balances

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def close_attendance_sessions():
    """Hourly job closing ACTIVE sessions whose check-in window has expired"""
    try:
        async with AsyncSessionLocal() as session:
            closed = await close_expired_sessions(session)
        if closed:
            logger.info(f"Closed {closed} expired attendance sessions")
    except Exception as e:
        logger.error(f"Failed to close attendance sessions: {e}", exc_info=True)


async def update_event_statuses():
    """Quarter-hourly job moving events UPCOMING -> ONGOING -> COMPLETED"""
    try:
        async with AsyncSessionLocal() as session:
            summary = await advance_event_statuses(session)
        if summary["started"] or summary["completed"]:
            logger.info(
                f"Event statuses updated: {summary['started']} started, "
                f"{summary['completed']} completed"
            )
    except Exception as e:
        logger.error(f"Failed to update event statuses: {e}", exc_info=True)


async def reconcile_balances():
    """Nightly job rewriting cached points/experience from the ledger"""
    logger.info("Starting nightly balance reconciliation")

    try:
        async with AsyncSessionLocal() as session:
            changed = await reconcile_cached_balances(session)

        if changed:
            # Drift means a write path skipped the cache update
            logger.warning(f"Reconciled cached balances for {changed} students")
        else:
            logger.info("Cached balances match the ledger")

    except Exception as e:
        logger.error(f"Failed to reconcile balances: {e}", exc_info=True)


def configure_scheduler():
    """
    Configure APScheduler with all scheduled jobs.

    Jobs:
        - Attendance session closing: Every hour at :05
        - Event status transitions: Every 15 minutes
        - Balance reconciliation: Every night at 03:00
    """
    scheduler.add_job(
        close_attendance_sessions,
        trigger=CronTrigger(hour='*', minute=5),
        id='close_attendance_sessions',
        name='Close Expired Attendance Sessions',
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1
    )

    scheduler.add_job(
        update_event_statuses,
        trigger=CronTrigger(minute='*/15'),
        id='event_status_transitions',
        name='Advance Event Statuses',
        replace_existing=True,
        coalesce=True,
        max_instances=1
    )

    scheduler.add_job(
        reconcile_balances,
        trigger=CronTrigger(hour=3, minute=0),
        id='balance_reconciliation',
        name='Reconcile Cached Balances',
        replace_existing=True,
        coalesce=True,
        max_instances=1
    )

    logger.info("Scheduler configured with attendance, event and reconciliation jobs")


def start_scheduler():
    """Start the APScheduler"""
    configure_scheduler()
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    """Stop the APScheduler"""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler stopped")
