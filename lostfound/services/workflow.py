"""
Moderation and publication workflow.

Every write that crosses entity boundaries goes through this module: it checks
who is asking, mutates the stores, injects thread messages, and is the only
caller of the notification sink. Primary writes are committed before any side
effect runs, and side-effect failures are reported, not raised.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, func, or_, select

from lostfound.models.claim import Claim
from lostfound.models.enums import Category, ClaimStatus, ItemType, ReportStatus, ReviewStatus, Visibility
from lostfound.models.found_item import FoundItem
from lostfound.models.lost_report import LostReport
from lostfound.models.user import User
from lostfound.services import claims, directory, lifecycle, matching, threads
from lostfound.services.errors import AuthorizationError, NotFoundError
from lostfound.services.matching import ilike_contains
from lostfound.services.notifications import NotificationResult, NotificationSink, found_item_link
from lostfound.utils.auth_helper import AuthContext
from lostfound.utils.form_validator import (
    ClaimCreate,
    ClaimResolve,
    CommentCreate,
    FoundItemCreate,
    LostReportCreate,
    ModerateReportRequest,
)

logger = logging.getLogger(__name__)

CONTACT_REPORT_FIELDS = {"contact_phone"}
MODERATION_REPORT_FIELDS = {"admin_note"}
CONTACT_OWNER_FIELDS = {"email", "phone", "alt_phone"}


class OperationResult(BaseModel):
    data: Any
    notifications: list[NotificationResult] = []


class Page(BaseModel):
    items: list[Any]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


def _reloaded(session: Session, record):
    # Notification and thread writes commit after the primary record, which expires it
    session.refresh(record)
    return record


# Lost reports

def get_lost_report(session: Session, report_id: uuid.UUID) -> LostReport:
    report = session.get(LostReport, report_id)
    if not report:
        raise NotFoundError("Lost report not found")
    return report


def can_see_private_fields(report: LostReport, ctx: AuthContext) -> bool:
    return ctx.user_id == report.user_id or ctx.is_admin


def can_view(report: LostReport, ctx: AuthContext, now: Optional[datetime] = None) -> bool:
    if ctx.user_id == report.user_id or ctx.is_privileged:
        return True
    return lifecycle.is_feed_visible(report, now)


def can_see_moderation_fields(report: LostReport, ctx: AuthContext) -> bool:
    return ctx.user_id == report.user_id or ctx.is_privileged


def serialize_report(report: LostReport, owner: Optional[User], ctx: AuthContext) -> dict:
    """Report as seen by ``ctx``.

    Contact details go to the owner and admins only. The moderator note goes to
    the owner and to anyone who can moderate.
    """
    show_private = can_see_private_fields(report, ctx)

    hidden = set()
    if not show_private:
        hidden |= CONTACT_REPORT_FIELDS
    if not can_see_moderation_fields(report, ctx):
        hidden |= MODERATION_REPORT_FIELDS

    data = report.model_dump(exclude=hidden or None)

    if owner:
        owner_fields = {"id", "name", "role", "block", "department"}
        if show_private:
            owner_fields |= CONTACT_OWNER_FIELDS
        data["owner"] = owner.model_dump(include=owner_fields)

    return data


def create_lost_report(session: Session, ctx: AuthContext, payload: LostReportCreate) -> OperationResult:
    owner = directory.get_user(session, ctx.user_id)

    report = lifecycle.new_report(owner.id, **payload.model_dump())

    session.add(report)
    session.commit()
    session.refresh(report)

    logger.info(
        "Lost report %s created by user %s (%s/%s)",
        report.id, owner.id, report.visibility.value, report.review_status.value,
    )

    notifications = []

    # Private reports that still want attention need a moderator to look at them
    if report.visibility == Visibility.ADMIN_ONLY and report.notify_requested:
        sink = NotificationSink(session)
        for moderator in directory.list_moderators(session):
            notifications.append(sink.private_report_submitted(moderator, owner, report))

    return OperationResult(data=serialize_report(report, owner, ctx), notifications=notifications)


def get_report(session: Session, ctx: AuthContext, report_id: uuid.UUID) -> dict:
    report = get_lost_report(session, report_id)

    # Unpublished reports are invisible rather than forbidden
    if not can_view(report, ctx):
        raise NotFoundError("Lost report not found")

    owner = directory.find_user(session, report.user_id)
    return serialize_report(report, owner, ctx)


def list_my_reports(session: Session, ctx: AuthContext, page: int = 1, limit: int = 5) -> Page:
    total = session.exec(select(func.count(LostReport.id)).where(LostReport.user_id == ctx.user_id)).one()

    reports = session.exec(
        select(LostReport)
        .where(LostReport.user_id == ctx.user_id)
        .order_by(col(LostReport.created_at).desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return Page(items=list(reports), page=page, limit=limit, total=total)


def list_nearby(
    session: Session,
    ctx: AuthContext,
    scope: str = "block",
    category: Optional[Category] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 12,
    now: Optional[datetime] = None,
) -> Page:
    conditions = [lifecycle.feed_filter(now)]

    # Users without a block (staff) fall back to the whole campus
    if scope == "block" and ctx.block:
        conditions.append(User.block == ctx.block)

    if category:
        conditions.append(LostReport.category == category)

    if search and search.strip():
        term = search.strip()
        conditions.append(
            or_(ilike_contains(LostReport.item_name, term), ilike_contains(LostReport.description, term))
        )

    owner_join = col(LostReport.user_id) == col(User.id)
    base = select(LostReport, User).join(User, owner_join).where(*conditions)
    count = select(func.count(LostReport.id)).select_from(LostReport).join(User, owner_join).where(*conditions)

    total = session.exec(count).one()
    rows = session.exec(
        base.order_by(col(LostReport.created_at).desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return Page(
        items=[serialize_report(report, owner, ctx) for report, owner in rows],
        page=page,
        limit=limit,
        total=total,
    )


def list_lost_reports(
    session: Session,
    ctx: AuthContext,
    status: Optional[ReportStatus] = None,
    visibility: Optional[Visibility] = None,
    review_status: Optional[ReviewStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    if not ctx.is_privileged:
        raise AuthorizationError("Staff or admin access required")

    conditions = []
    if status:
        conditions.append(LostReport.status == status)
    if visibility:
        conditions.append(LostReport.visibility == visibility)
    if review_status:
        conditions.append(LostReport.review_status == review_status)

    total = session.exec(select(func.count(LostReport.id)).where(*conditions)).one()
    rows = session.exec(
        select(LostReport, User)
        .join(User, col(LostReport.user_id) == col(User.id))
        .where(*conditions)
        .order_by(col(LostReport.created_at).desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return Page(
        items=[serialize_report(report, owner, ctx) for report, owner in rows],
        page=page,
        limit=limit,
        total=total,
    )


def moderate_report(
    session: Session,
    ctx: AuthContext,
    report_id: uuid.UUID,
    payload: ModerateReportRequest,
) -> OperationResult:
    if not ctx.is_privileged:
        raise AuthorizationError("Only staff or admins can moderate reports")

    report = get_lost_report(session, report_id)
    was_closed = report.status == ReportStatus.CLOSED

    approved_now = lifecycle.apply_moderation(
        report,
        review_status=payload.review_status,
        publish_status=payload.publish_status,
        admin_note=payload.admin_note,
        status=payload.status,
    )

    session.add(report)
    session.commit()
    session.refresh(report)

    logger.info(
        "Lost report %s moderated by user %s: review=%s publish=%s status=%s",
        report.id, ctx.user_id, report.review_status.value, report.publish_status.value, report.status.value,
    )

    if report.status == ReportStatus.CLOSED and not was_closed:
        _purge_thread(session, report)

    notifications = []
    owner = directory.find_user(session, report.user_id)

    if approved_now and owner:
        notifications.append(NotificationSink(session).report_published(owner, report))

    return OperationResult(data=serialize_report(report, owner, ctx), notifications=notifications)


def close_report(session: Session, ctx: AuthContext, report_id: uuid.UUID) -> OperationResult:
    report = get_lost_report(session, report_id)

    if report.user_id != ctx.user_id and not ctx.is_admin:
        raise AuthorizationError("Only the owner or an admin can close this report")

    lifecycle.close(report)

    session.add(report)
    session.commit()
    session.refresh(report)

    logger.info("Lost report %s closed by user %s", report.id, ctx.user_id)

    _purge_thread(session, report)

    owner = directory.find_user(session, report.user_id)
    return OperationResult(data=serialize_report(report, owner, ctx))


def _purge_thread(session: Session, report: LostReport):
    try:
        threads.purge_thread(session, ItemType.LOST_REPORT, report.id)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not purge comments of closed report %s", report.id)


def get_matches(session: Session, ctx: AuthContext, report_id: uuid.UUID) -> list[FoundItem]:
    report = get_lost_report(session, report_id)

    if report.user_id != ctx.user_id and not ctx.is_privileged:
        raise AuthorizationError("Not authorized to view matches for this item")

    return matching.find_matches(session, report)


# Found items

def create_found_item(session: Session, ctx: AuthContext, payload: FoundItemCreate) -> OperationResult:
    linked_report = None
    if payload.linked_lost_report_id:
        linked_report = get_lost_report(session, payload.linked_lost_report_id)

    found_item = FoundItem(reporter_id=ctx.user_id, **payload.model_dump())

    session.add(found_item)
    session.commit()
    session.refresh(found_item)

    logger.info("Found item %s reported by user %s", found_item.id, ctx.user_id)

    notifications = []
    if linked_report is not None:
        notifications.extend(_match_report(session, linked_report, found_item))

    return OperationResult(data=_reloaded(session, found_item), notifications=notifications)


def _match_report(session: Session, report: LostReport, found_item: FoundItem) -> list[NotificationResult]:
    # Separate write from the found item; a failure here leaves the item unmatched
    if not lifecycle.mark_matched(report):
        logger.info("Found item %s linked to closed report %s, not matching", found_item.id, report.id)
        return []

    session.add(report)
    session.commit()
    session.refresh(report)

    logger.info("Lost report %s matched by found item %s", report.id, found_item.id)

    link = found_item_link(found_item)
    try:
        threads.inject_match_message(session, report, found_item, link)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not post match message on report %s", report.id)

    owner = directory.find_user(session, report.user_id)
    if not owner:
        return []

    return [NotificationSink(session).found_match(owner, report, found_item)]


def list_found_items(
    session: Session,
    search: Optional[str] = None,
    category: Optional[Category] = None,
    location: Optional[str] = None,
    page: int = 1,
    limit: int = 12,
) -> Page:
    conditions = []

    if search and search.strip():
        term = search.strip()
        conditions.append(
            or_(ilike_contains(FoundItem.item_name, term), ilike_contains(FoundItem.description, term))
        )
    if category:
        conditions.append(FoundItem.category == category)
    if location and location.strip():
        conditions.append(ilike_contains(FoundItem.location_found, location.strip()))

    total = session.exec(select(func.count(FoundItem.id)).where(*conditions)).one()
    items = session.exec(
        select(FoundItem)
        .where(*conditions)
        .order_by(col(FoundItem.date_found).desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return Page(items=list(items), page=page, limit=limit, total=total)


# Claims

def create_claim(session: Session, ctx: AuthContext, payload: ClaimCreate) -> OperationResult:
    claim, found_item = claims.open_claim(session, ctx, payload)

    sink = NotificationSink(session)
    claimant = directory.get_user(session, ctx.user_id)
    notifications = [sink.claim_created(claimant, found_item)]

    if found_item.linked_lost_report_id:
        report = session.get(LostReport, found_item.linked_lost_report_id)
        owner = directory.find_user(session, report.user_id) if report else None
        if owner and owner.id != claimant.id:
            notifications.append(sink.claim_submitted(owner, found_item, claimant))

    return OperationResult(data=_reloaded(session, claim), notifications=notifications)


def resolve_claim(
    session: Session,
    ctx: AuthContext,
    claim_id: uuid.UUID,
    payload: ClaimResolve,
) -> OperationResult:
    claim = claims.decide_claim(session, ctx, claim_id, payload)

    found_item = claims.get_found_item(session, claim.found_item_id)
    claimant = directory.find_user(session, claim.user_id)
    if not claimant:
        return OperationResult(data=claim)

    sink = NotificationSink(session)
    if claim.status == ClaimStatus.APPROVED:
        result = sink.claim_approved(claimant, found_item, claim.pickup_instructions)
    else:
        result = sink.claim_rejected(claimant, found_item)

    return OperationResult(data=_reloaded(session, claim), notifications=[result])


def list_claims_for_found_item(session: Session, ctx: AuthContext, found_item_id: uuid.UUID) -> list[dict]:
    if not ctx.is_privileged:
        raise AuthorizationError("Staff or admin access required")

    claims.get_found_item(session, found_item_id)

    results = []
    for claim in claims.list_for_found_item(session, found_item_id):
        claimant = directory.find_user(session, claim.user_id)
        data = claim.model_dump()
        if claimant:
            data["claimant"] = claimant.model_dump(
                include={"id", "name", "role", "department", "block", "email", "phone", "alt_phone"}
            )
        results.append(data)

    return results


# Discussion threads

def _thread_target(session: Session, ctx: AuthContext, item_type: ItemType, item_id: uuid.UUID):
    target = threads.get_target(session, item_type, item_id)
    if isinstance(target, LostReport) and not can_view(target, ctx):
        raise NotFoundError("Item not found")
    return target


def list_comments(session: Session, ctx: AuthContext, item_type: ItemType, item_id: uuid.UUID) -> list[dict]:
    _thread_target(session, ctx, item_type, item_id)

    comments = threads.list_comments(session, item_type, item_id)

    authors = {}
    for comment in comments:
        if comment.user_id is not None and comment.user_id not in authors:
            authors[comment.user_id] = directory.find_user(session, comment.user_id)

    results = []
    for comment in comments:
        data = comment.model_dump()
        author = authors.get(comment.user_id)
        data["author"] = author.model_dump(include={"id", "name", "role"}) if author else None
        results.append(data)

    return results


def post_comment(
    session: Session,
    ctx: AuthContext,
    item_type: ItemType,
    item_id: uuid.UUID,
    payload: CommentCreate,
) -> OperationResult:
    target = _thread_target(session, ctx, item_type, item_id)

    comment = threads.add_comment(session, target, item_type, ctx.user_id, payload.text, payload.parent_id)

    notifications = []
    owner_id = threads.target_owner_id(target)

    if owner_id is not None and owner_id != ctx.user_id:
        owner = directory.find_user(session, owner_id)
        author = directory.find_user(session, ctx.user_id)
        if owner and author:
            notifications.append(NotificationSink(session).new_comment(owner, target.item_name, target.id, author.name))

    return OperationResult(data=_reloaded(session, comment), notifications=notifications)


# Dashboard

def admin_stats(session: Session, ctx: AuthContext) -> dict:
    if not ctx.is_privileged:
        raise AuthorizationError("Staff or admin access required")

    return {
        "total_lost": session.exec(select(func.count(LostReport.id))).one(),
        "total_found": session.exec(select(func.count(FoundItem.id))).one(),
        "total_claims": session.exec(select(func.count(Claim.id))).one(),
        "pending_claims": session.exec(
            select(func.count(Claim.id)).where(Claim.status == ClaimStatus.PENDING)
        ).one(),
        "pending_lost_reviews": session.exec(
            select(func.count(LostReport.id)).where(LostReport.review_status == ReviewStatus.PENDING_REVIEW)
        ).one(),
    }
