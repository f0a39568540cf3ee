"""
User Service

Account management plus the group-visibility rules every other service relies
on: a tutor acts on their own students, an assistant on the students of the
tutor they assist, an admin on everyone.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from mentorboard.models import User
from mentorboard.models.enums import UserRole
from mentorboard.services.security import hash_password, verify_password

logger = logging.getLogger(__name__)

STAFF_ROLES = (UserRole.ADMIN.value, UserRole.TUTOR.value, UserRole.ASSISTANT.value)

# Fields an admin may change through update_user
UPDATABLE_FIELDS = (
    "email", "first_name", "last_name", "role", "is_active", "tutor_id", "assisted_tutor_id",
)


def scope_tutor_id(user: User) -> Optional[UUID]:
    """
    Resolve whose group the caller may act on.

    Returns:
        The tutor id for tutors (self) and assistants (assisted tutor),
        None for admins (unrestricted)

    Raises:
        PermissionDeniedError: For students, or assistants without a tutor
    """
    if user.role == UserRole.ADMIN.value:
        return None
    if user.role == UserRole.TUTOR.value:
        return user.id
    if user.role == UserRole.ASSISTANT.value:
        if user.assisted_tutor_id is None:
            raise PermissionDeniedError("No tutor is assigned to this assistant")
        return user.assisted_tutor_id
    raise PermissionDeniedError("Students cannot act on other users")


async def authenticate(db: AsyncSession, username: str, password: str) -> User:
    """Return the active user matching the credentials or raise AuthenticationError"""
    result = await db.execute(select(User).where(User.username == username.strip().lower()))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(password, user.password_hash):
        logger.warning(f"Failed login for username '{username}'")
        raise AuthenticationError("Invalid username or password", code="INVALID_CREDENTIALS")
    if not user.is_active:
        raise AuthenticationError("Account is disabled", code="ACCOUNT_DISABLED")
    return user


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def get_student(db: AsyncSession, student_id: UUID) -> User:
    """Load a user and make sure it is a student"""
    student = await db.get(User, student_id)
    if student is None or student.role != UserRole.STUDENT.value:
        raise NotFoundError("Student not found")
    return student


async def get_student_in_scope(db: AsyncSession, actor: User, student_id: UUID) -> User:
    """
    Load a student the actor is allowed to act on.

    Raises:
        NotFoundError: If the student does not exist
        PermissionDeniedError: If the student is outside the actor's group
    """
    student = await get_student(db, student_id)
    tutor_id = scope_tutor_id(actor)
    if tutor_id is not None and student.tutor_id != tutor_id:
        logger.warning(f"User {actor.id} tried to act on student {student_id} outside their group")
        raise PermissionDeniedError("This student is not in your group")
    return student


async def _validate_links(db: AsyncSession, role: str, tutor_id: Optional[UUID], assisted_tutor_id: Optional[UUID]):
    if role == UserRole.STUDENT.value and tutor_id is None:
        raise InvalidRequestError("Students must be assigned to a tutor")
    for linked_id in (tutor_id, assisted_tutor_id):
        if linked_id is None:
            continue
        tutor = await db.get(User, linked_id)
        if tutor is None or tutor.role != UserRole.TUTOR.value:
            raise InvalidRequestError("Assigned tutor does not exist")


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    role: UserRole,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    tutor_id: Optional[UUID] = None,
    assisted_tutor_id: Optional[UUID] = None,
) -> User:
    """
    Create an account (admin operation).

    Raises:
        InvalidRequestError: Student without tutor or unknown tutor
        ConflictError: Username or email already taken
    """
    role = UserRole(role).value
    username = username.strip().lower()
    email = email.strip().lower()
    await _validate_links(db, role, tutor_id, assisted_tutor_id)

    result = await db.execute(
        select(User.id).where(or_(User.username == username, User.email == email))
    )
    if result.first() is not None:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        first_name=first_name,
        last_name=last_name,
        tutor_id=tutor_id if role == UserRole.STUDENT.value else None,
        assisted_tutor_id=assisted_tutor_id if role == UserRole.ASSISTANT.value else None,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Username or email already exists")

    logger.info(f"Created {role} account '{username}'")
    return user


async def list_users(db: AsyncSession, actor: User, role: Optional[UserRole] = None) -> List[User]:
    """Admins see everyone (optionally filtered by role); staff see their group's students"""
    query = select(User).order_by(User.username)
    tutor_id = scope_tutor_id(actor)

    if tutor_id is not None:
        query = query.where(User.role == UserRole.STUDENT.value, User.tutor_id == tutor_id)
    elif role is not None:
        query = query.where(User.role == UserRole(role).value)

    result = await db.execute(query)
    return list(result.scalars().all())


async def list_my_students(db: AsyncSession, actor: User) -> List[User]:
    """Students of the caller's group; admins get the students assigned to themselves"""
    tutor_id = scope_tutor_id(actor)
    if tutor_id is None:
        tutor_id = actor.id

    result = await db.execute(
        select(User)
        .where(
            User.role == UserRole.STUDENT.value,
            User.tutor_id == tutor_id,
            User.is_active.is_(True),
        )
        .order_by(User.first_name, User.last_name, User.username)
    )
    return list(result.scalars().all())


async def update_user(db: AsyncSession, user_id: UUID, **changes) -> User:
    """Apply admin edits; only keys in UPDATABLE_FIELDS are accepted"""
    user = await get_user(db, user_id)

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise InvalidRequestError(f"Unknown fields: {', '.join(sorted(unknown))}")

    if "role" in changes and changes["role"] is not None:
        changes["role"] = UserRole(changes["role"]).value
    if "email" in changes and changes["email"]:
        changes["email"] = changes["email"].strip().lower()

    for field, value in changes.items():
        setattr(user, field, value)

    await _validate_links(db, user.role, user.tutor_id, user.assisted_tutor_id)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Email already exists")

    logger.info(f"Updated user {user.username}: {sorted(changes)}")
    return user


async def change_password(
    db: AsyncSession,
    actor: User,
    user_id: UUID,
    new_password: str,
    current_password: Optional[str] = None,
) -> None:
    """
    Change a password.

    Users change their own password by proving the current one; admins may
    reset anyone's.
    """
    if len(new_password) < 6:
        raise InvalidRequestError("Password must be at least 6 characters")

    user = await get_user(db, user_id)
    if actor.role != UserRole.ADMIN.value:
        if actor.id != user.id:
            raise PermissionDeniedError("You can only change your own password")
        if not current_password or not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect", code="INVALID_CREDENTIALS")

    user.password_hash = hash_password(new_password)
    await db.commit()
    logger.info(f"Password changed for user {user.username}")
