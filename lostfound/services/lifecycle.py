"""
Lost report state machine.

A report carries three orthogonal enums: ``review_status``, ``publish_status`` and
``status``. Every mutation in this module ends with :func:`enforce_publication`,
which is the only place ``publish_status`` is derived, so a report can never be
PUBLISHED unless it is APPROVED and CAMPUS-visible.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import ColumnElement
from sqlmodel import and_, col, or_

from lostfound.config import CLOSED_FEED_GRACE_DAYS
from lostfound.models.enums import PublishStatus, ReportStatus, ReviewStatus, Visibility
from lostfound.models.lost_report import LostReport
from lostfound.services.errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands datetimes back naive
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def initial_statuses(visibility: Visibility, notify_requested: bool) -> tuple[ReviewStatus, PublishStatus]:
    # Private reports nobody needs to be told about skip moderation entirely
    if visibility == Visibility.ADMIN_ONLY and not notify_requested:
        return ReviewStatus.APPROVED, PublishStatus.DRAFT

    return ReviewStatus.PENDING_REVIEW, PublishStatus.DRAFT


def can_publish(report: LostReport) -> bool:
    return report.review_status == ReviewStatus.APPROVED and report.visibility == Visibility.CAMPUS


def enforce_publication(report: LostReport, *, approved_now: bool = False) -> LostReport:
    """Re-derive ``publish_status`` after a mutation.

    ``approved_now`` marks a transition into APPROVED, which auto-publishes
    campus reports. A moderator may still unpublish an approved report later,
    so approval alone does not force PUBLISHED.
    """
    if approved_now and can_publish(report):
        report.publish_status = PublishStatus.PUBLISHED

    if report.publish_status == PublishStatus.PUBLISHED and not can_publish(report):
        report.publish_status = PublishStatus.DRAFT

    return report


def new_report(owner_id: int, **fields) -> LostReport:
    report = LostReport(user_id=owner_id, **fields)

    report.review_status, report.publish_status = initial_statuses(report.visibility, report.notify_requested)
    report.status = ReportStatus.OPEN
    report.closed_at = None

    return enforce_publication(report)


def apply_moderation(
    report: LostReport,
    review_status: Optional[ReviewStatus] = None,
    publish_status: Optional[PublishStatus] = None,
    admin_note: Optional[str] = None,
    status: Optional[ReportStatus] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Apply a moderator decision in place. Returns True when the report became APPROVED."""
    if publish_status == PublishStatus.PUBLISHED:
        effective_review = review_status or report.review_status
        if effective_review != ReviewStatus.APPROVED or report.visibility != Visibility.CAMPUS:
            raise ValidationError(
                "Only approved campus reports can be published",
                errors=[{"loc": ["publish_status"], "msg": "requires APPROVED review and CAMPUS visibility"}],
            )

    if status is not None and report.status == ReportStatus.CLOSED and status != ReportStatus.CLOSED:
        raise ValidationError(
            "Closed reports cannot be reopened",
            errors=[{"loc": ["status"], "msg": "report is CLOSED"}],
        )

    approved_now = review_status == ReviewStatus.APPROVED

    if review_status is not None:
        report.review_status = review_status
    if publish_status is not None:
        report.publish_status = publish_status
    if admin_note is not None:
        report.admin_note = admin_note

    if status == ReportStatus.CLOSED:
        close(report, now=now)
    elif status is not None:
        report.status = status

    enforce_publication(report, approved_now=approved_now)
    report.updated_at = now or utcnow()

    return approved_now


def mark_matched(report: LostReport, now: Optional[datetime] = None) -> bool:
    """OPEN/MATCHED -> MATCHED. Closed reports stay closed; returns False then."""
    if report.status == ReportStatus.CLOSED:
        return False

    report.status = ReportStatus.MATCHED
    report.updated_at = now or utcnow()
    enforce_publication(report)
    return True


def close(report: LostReport, now: Optional[datetime] = None) -> LostReport:
    # Re-closing keeps the original close time
    if report.status != ReportStatus.CLOSED or report.closed_at is None:
        report.closed_at = now or utcnow()
    report.status = ReportStatus.CLOSED
    report.updated_at = now or utcnow()
    return enforce_publication(report)


def feed_filter(now: Optional[datetime] = None) -> ColumnElement[bool]:
    """SQL condition for reports that belong in the nearby feed."""
    cutoff = (now or utcnow()) - timedelta(days=CLOSED_FEED_GRACE_DAYS)

    return and_(
        col(LostReport.publish_status) == PublishStatus.PUBLISHED,
        col(LostReport.visibility) == Visibility.CAMPUS,
        col(LostReport.review_status) == ReviewStatus.APPROVED,
        or_(
            col(LostReport.status).in_([ReportStatus.OPEN, ReportStatus.MATCHED]),
            and_(
                col(LostReport.status) == ReportStatus.CLOSED,
                col(LostReport.closed_at) >= cutoff,
            ),
        ),
    )


def is_feed_visible(report: LostReport, now: Optional[datetime] = None) -> bool:
    if not (report.publish_status == PublishStatus.PUBLISHED and can_publish(report)):
        return False

    if report.status in (ReportStatus.OPEN, ReportStatus.MATCHED):
        return True

    closed_at = as_utc(report.closed_at)
    if closed_at is None:
        return False

    return closed_at >= (now or utcnow()) - timedelta(days=CLOSED_FEED_GRACE_DAYS)
