import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from lostfound.models.enums import Role
from lostfound.models.user import User
from lostfound.services.errors import ConflictError, NotFoundError, ValidationError
from lostfound.utils.form_validator import UserCreate

logger = logging.getLogger(__name__)


def create_user(session: Session, payload: UserCreate) -> User:
    if payload.role == Role.STUDENT:
        missing = [f for f in ("block", "department") if not getattr(payload, f)]
        if missing:
            raise ValidationError(
                "Students must provide block and department",
                errors=[{"loc": [f], "msg": "required for STUDENT"} for f in missing],
            )

    email = payload.email.lower()

    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        raise ConflictError("Email already registered")

    # Students are approved on registration, staff wait for an admin
    is_approved = payload.is_approved
    if is_approved is None:
        is_approved = payload.role == Role.STUDENT

    user = User(
        name=payload.name,
        email=email,
        role=payload.role,
        is_approved=is_approved,
        block=payload.block,
        department=payload.department,
        phone=payload.phone,
        alt_phone=payload.alt_phone,
        email_notifications_enabled=payload.email_notifications_enabled,
        notify_scope=payload.notify_scope,
    )

    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Email already registered")
    session.refresh(user)

    logger.info("Registered %s user %s", user.role.value, user.id)
    return user


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def find_user(session: Session, user_id: Optional[int]) -> Optional[User]:
    if user_id is None:
        return None
    return session.get(User, user_id)


def users_in_block(session: Session, block: str) -> list[User]:
    return list(session.exec(select(User).where(User.block == block).order_by(User.name)).all())


def list_moderators(session: Session) -> list[User]:
    return list(
        session.exec(
            select(User)
            .where(col(User.role).in_([Role.STAFF, Role.ADMIN]))
            .where(User.is_approved == True)  # noqa: E712
        ).all()
    )
