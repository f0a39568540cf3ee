"""
Event Service

Capacity-limited events. A seat is reserved with a conditional UPDATE:

    UPDATE events SET registered_count = registered_count + 1
    WHERE id = :id AND registered_count < capacity

and the participant row is inserted in the same transaction. When the UPDATE
touches no row the event is full, so concurrent registrations can never
overbook it.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard import config
from mentorboard.clock import to_naive_utc, utcnow
from mentorboard.exceptions import (
    CapacityReachedError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
    TokenExpiredError,
)
from mentorboard.models import Event, EventParticipant, EventType, User
from mentorboard.models.enums import CheckInMethod, EventStatus, ParticipantStatus, UserRole
from mentorboard.services import qr
from mentorboard.services.users import get_student, get_student_in_scope

logger = logging.getLogger(__name__)

ORGANIZER_ROLES = (UserRole.ADMIN.value, UserRole.TUTOR.value)
UPDATABLE_FIELDS = ("title", "description", "event_type_id", "event_date", "location", "capacity", "status", "notes")
OPEN_STATUSES = (EventStatus.UPCOMING.value, EventStatus.ONGOING.value)


def _require_organizer(actor: User):
    if actor.role not in ORGANIZER_ROLES:
        raise PermissionDeniedError("Only tutors and admins can manage events")


def _require_owner(actor: User, event: Event):
    if actor.role != UserRole.ADMIN.value and event.created_by_id != actor.id:
        raise PermissionDeniedError("Only the event creator or an admin can change this event")


# Event types

async def list_event_types(db: AsyncSession, active_only: bool = False) -> List[EventType]:
    query = select(EventType).order_by(EventType.name)
    if active_only:
        query = query.where(EventType.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_event_type(db: AsyncSession, type_id: UUID) -> EventType:
    event_type = await db.get(EventType, type_id)
    if event_type is None:
        raise NotFoundError("Event type not found")
    return event_type


async def create_event_type(db: AsyncSession, actor: User, name: str, description: Optional[str] = None) -> EventType:
    _require_organizer(actor)
    name = (name or "").strip()
    if not name:
        raise InvalidRequestError("Event type name is required")

    event_type = EventType(name=name, description=description)
    db.add(event_type)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("An event type with this name already exists")
    return event_type


async def update_event_type(db: AsyncSession, type_id: UUID, **changes) -> EventType:
    event_type = await get_event_type(db, type_id)
    if changes.get("name") is not None:
        event_type.name = changes["name"].strip()
    if "description" in changes:
        event_type.description = changes["description"]
    if changes.get("is_active") is not None:
        event_type.is_active = changes["is_active"]

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("An event type with this name already exists")
    return event_type


async def delete_event_type(db: AsyncSession, type_id: UUID) -> None:
    event_type = await get_event_type(db, type_id)
    in_use = await db.scalar(select(func.count(Event.id)).where(Event.event_type_id == event_type.id))
    if in_use:
        raise ConflictError("Event type is used by existing events; deactivate it instead")
    await db.delete(event_type)
    await db.commit()


# Events

async def get_event(db: AsyncSession, event_id: UUID) -> Event:
    event = await db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


async def list_events(
    db: AsyncSession,
    status: Optional[EventStatus] = None,
    event_type_id: Optional[UUID] = None,
) -> List[Event]:
    query = select(Event).order_by(Event.event_date.desc())
    if status is not None:
        query = query.where(Event.status == EventStatus(status).value)
    if event_type_id is not None:
        query = query.where(Event.event_type_id == event_type_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_event_detail(db: AsyncSession, event_id: UUID) -> Tuple[Event, List[Tuple[EventParticipant, User]]]:
    event = await get_event(db, event_id)
    result = await db.execute(
        select(EventParticipant, User)
        .join(User, User.id == EventParticipant.student_id)
        .where(EventParticipant.event_id == event.id)
        .order_by(EventParticipant.registered_at)
    )
    return event, [(participant, student) for participant, student in result.all()]


def _issue_qr(event: Event):
    event.qr_code_token = qr.generate_token()
    event.qr_code_expires_at = utcnow() + timedelta(hours=config.EVENT_QR_TTL_HOURS)


async def create_event(
    db: AsyncSession,
    actor: User,
    title: str,
    event_date: datetime,
    event_type_id: UUID,
    capacity: Optional[int] = None,
    description: Optional[str] = None,
    location: Optional[str] = None,
    notes: Optional[str] = None,
    generate_qr: bool = False,
) -> Event:
    _require_organizer(actor)
    title = (title or "").strip()
    if not title:
        raise InvalidRequestError("Event title is required")

    await get_event_type(db, event_type_id)

    capacity = capacity if capacity is not None else config.DEFAULT_EVENT_CAPACITY
    if capacity < 1:
        raise InvalidRequestError("Capacity must be at least 1")

    event = Event(
        title=title,
        description=description,
        event_type_id=event_type_id,
        event_date=to_naive_utc(event_date),
        location=location,
        capacity=capacity,
        registered_count=0,
        status=EventStatus.UPCOMING.value,
        notes=notes,
        created_by_id=actor.id,
    )
    if generate_qr:
        _issue_qr(event)

    db.add(event)
    await db.commit()
    logger.info(f"{actor.username} created event '{title}' (capacity {capacity})")
    return event


async def update_event(db: AsyncSession, actor: User, event_id: UUID, **changes) -> Event:
    event = await get_event(db, event_id)
    _require_owner(actor, event)

    for field, value in changes.items():
        if field not in UPDATABLE_FIELDS:
            raise InvalidRequestError(f"Unknown field: {field}")
        if value is None:
            continue
        if field == "event_date":
            value = to_naive_utc(value)
        elif field == "status":
            value = EventStatus(value).value
        elif field == "event_type_id":
            await get_event_type(db, value)
        elif field == "capacity" and value < max(event.registered_count, 1):
            raise InvalidRequestError(
                f"Capacity cannot be lower than the {event.registered_count} registered participants"
            )
        setattr(event, field, value)

    await db.commit()
    return event


async def delete_event(db: AsyncSession, actor: User, event_id: UUID) -> None:
    event = await get_event(db, event_id)
    _require_owner(actor, event)
    await db.delete(event)
    await db.commit()
    logger.info(f"{actor.username} deleted event {event_id}")


async def generate_event_qr(db: AsyncSession, actor: User, event_id: UUID) -> Event:
    event = await get_event(db, event_id)
    _require_owner(actor, event)
    _issue_qr(event)
    await db.commit()
    return event


async def render_event_qr(db: AsyncSession, event_id: UUID) -> str:
    event = await get_event(db, event_id)
    if not event.qr_code_token:
        raise InvalidRequestError("This event has no QR code; generate one first")
    return qr.render_svg(qr.event_check_in_url(event.id, event.qr_code_token))


# Participation

async def _reserve_seat(db: AsyncSession, event_id: UUID) -> bool:
    """Atomically take one seat; False when the event is full"""
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.registered_count < Event.capacity)
        .values(registered_count=Event.registered_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _release_seat(db: AsyncSession, event_id: UUID):
    await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.registered_count > 0)
        .values(registered_count=Event.registered_count - 1)
        .execution_options(synchronize_session=False)
    )


async def _find_participant(db: AsyncSession, event_id: UUID, student_id: UUID) -> Optional[EventParticipant]:
    result = await db.execute(
        select(EventParticipant).where(
            EventParticipant.event_id == event_id,
            EventParticipant.student_id == student_id,
        )
    )
    return result.scalar_one_or_none()


async def _register(
    db: AsyncSession,
    event: Event,
    student: User,
    status: ParticipantStatus = ParticipantStatus.REGISTERED,
    method: Optional[CheckInMethod] = None,
) -> EventParticipant:
    if event.status not in OPEN_STATUSES:
        raise InvalidRequestError("Registration is closed for this event")
    if await _find_participant(db, event.id, student.id) is not None:
        raise ConflictError("Student is already registered for this event", code="ALREADY_REGISTERED")

    if not await _reserve_seat(db, event.id):
        logger.warning(f"Registration of {student.username} rejected: event {event.id} is full")
        raise CapacityReachedError()

    participant = EventParticipant(
        event_id=event.id,
        student_id=student.id,
        status=status.value,
        check_in_method=method.value if method else None,
        check_in_time=utcnow() if status == ParticipantStatus.ATTENDED else None,
    )
    db.add(participant)
    try:
        await db.commit()
    except IntegrityError:
        # Concurrent duplicate registration; the seat reservation is undone too
        await db.rollback()
        raise ConflictError("Student is already registered for this event", code="ALREADY_REGISTERED")

    await db.refresh(event)
    logger.info(f"{student.username} registered for event {event.id} ({event.registered_count}/{event.capacity})")
    return participant


async def register(db: AsyncSession, student: User, event_id: UUID) -> EventParticipant:
    """Student registers themselves"""
    if student.role != UserRole.STUDENT.value:
        raise PermissionDeniedError("Only students can register for events")
    event = await get_event(db, event_id)
    return await _register(db, event, student)


async def add_participant(db: AsyncSession, actor: User, event_id: UUID, student_id: UUID) -> EventParticipant:
    """Staff register a student of their group"""
    if actor.role == UserRole.STUDENT.value:
        raise PermissionDeniedError("Students cannot add participants")
    event = await get_event(db, event_id)
    student = await get_student_in_scope(db, actor, student_id)
    return await _register(db, event, student)


async def unregister(db: AsyncSession, actor: User, event_id: UUID, student_id: Optional[UUID] = None) -> None:
    """
    Remove a registration and free the seat.

    Students remove themselves; the event creator or an admin may remove anyone.
    """
    event = await get_event(db, event_id)
    if student_id is None or student_id == actor.id:
        student_id = actor.id
    else:
        _require_owner(actor, event)

    participant = await _find_participant(db, event.id, student_id)
    if participant is None:
        raise NotFoundError("Registration not found")

    await db.delete(participant)
    await _release_seat(db, event.id)
    await db.commit()
    await db.refresh(event)
    logger.info(f"Student {student_id} unregistered from event {event.id}")


async def get_participation(db: AsyncSession, student: User, event_id: UUID) -> Dict[str, Any]:
    event = await get_event(db, event_id)
    participant = await _find_participant(db, event.id, student.id)
    return {
        "event_id": event.id,
        "registered": participant is not None,
        "status": participant.status if participant else None,
        "check_in_time": participant.check_in_time if participant else None,
        "seats_left": event.capacity - event.registered_count,
    }


async def check_in(db: AsyncSession, student: User, event_id: UUID, token: Optional[str] = None) -> EventParticipant:
    """
    Mark a student as attended.

    The event must be ONGOING. A supplied QR token must match and be
    unexpired. Students not yet registered are registered on the spot,
    subject to capacity.
    """
    await get_student(db, student.id)
    event = await get_event(db, event_id)
    if event.status != EventStatus.ONGOING.value:
        raise InvalidRequestError("Event is not currently open for check-in")

    if token is not None:
        if not event.qr_code_token or event.qr_code_token != token or not qr.is_token_valid(event.qr_code_expires_at, utcnow()):
            logger.warning(f"Rejected event token for event {event.id}")
            raise TokenExpiredError()

    method = CheckInMethod.QR if token else CheckInMethod.MANUAL
    participant = await _find_participant(db, event.id, student.id)
    if participant is None:
        return await _register(db, event, student, ParticipantStatus.ATTENDED, method)

    participant.status = ParticipantStatus.ATTENDED.value
    participant.check_in_method = method.value
    participant.check_in_time = utcnow()
    await db.commit()
    logger.info(f"{student.username} checked in to event {event.id}")
    return participant


async def advance_event_statuses(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Move events along UPCOMING -> ONGOING -> COMPLETED by date.

    An event is ONGOING on its calendar day and COMPLETED afterwards.
    CANCELLED events are left alone.
    """
    now = now or utcnow()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    started = await db.execute(
        update(Event)
        .where(
            Event.status == EventStatus.UPCOMING.value,
            Event.event_date <= now,
            Event.event_date >= day_start,
        )
        .values(status=EventStatus.ONGOING.value)
        .execution_options(synchronize_session=False)
    )
    completed = await db.execute(
        update(Event)
        .where(
            Event.status.in_(OPEN_STATUSES),
            Event.event_date < day_start,
        )
        .values(status=EventStatus.COMPLETED.value)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return {"started": started.rowcount or 0, "completed": completed.rowcount or 0}
