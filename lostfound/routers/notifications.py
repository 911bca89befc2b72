import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, col, func, select

from lostfound.db.db import get_session
from lostfound.models.enums import NotificationType
from lostfound.models.notification import Notification
from lostfound.services.errors import NotFoundError
from lostfound.utils.auth_helper import AuthContext, get_auth_context

router = APIRouter()


def _unread(ctx: AuthContext):
    return select(Notification).where(
        Notification.user_id == ctx.user_id,
        Notification.is_read == False,  # noqa: E712
    )


@router.get("/")
def get_my_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    type: Optional[NotificationType] = None,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    """In-app inbox, newest first"""
    query = _unread(ctx) if unread_only else select(Notification).where(Notification.user_id == ctx.user_id)

    if type:
        query = query.where(Notification.type == type)

    notifications = session.exec(
        query.order_by(col(Notification.created_at).desc()).limit(limit)
    ).all()

    return {"notifications": notifications}


@router.get("/count")
def get_unread_notifications_count(
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    count = session.exec(
        select(func.count(Notification.id))
        .where(Notification.user_id == ctx.user_id)
        .where(Notification.is_read == False)  # noqa: E712
    ).one()

    return {"count": count}


@router.post("/{notification_id}/mark-read")
def mark_notification_read(
    notification_id: uuid.UUID,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    notification = session.get(Notification, notification_id)

    # Someone else's notification looks the same as a missing one
    if not notification or notification.user_id != ctx.user_id:
        raise NotFoundError("Notification not found")

    if not notification.is_read:
        notification.is_read = True
        session.add(notification)
        session.commit()

    return {"ok": True}


@router.post("/mark-all-read")
def mark_all_notifications_read(
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    unread = session.exec(_unread(ctx)).all()

    for notification in unread:
        notification.is_read = True
        session.add(notification)
    session.commit()

    return {"ok": True, "updated": len(unread)}
