import itertools
import uuid

import pytest
from sqlmodel import select

from conftest import ctx, days_ago, found_payload, lost_payload
from lostfound.models.comment import Comment
from lostfound.models.enums import (
    ItemType,
    NotificationType,
    PublishStatus,
    ReportStatus,
    ReviewStatus,
    Role,
    Visibility,
)
from lostfound.models.found_item import FoundItem
from lostfound.models.lost_report import LostReport
from lostfound.models.notification import Notification
from lostfound.services import lifecycle, workflow
from lostfound.services.errors import AuthorizationError, NotFoundError, ValidationError
from lostfound.utils.form_validator import CommentCreate, ModerateReportRequest


def create_report(session, user, **overrides):
    return workflow.create_lost_report(session, ctx(user), lost_payload(**overrides)).data


def approve(session, moderator, report_id):
    return workflow.moderate_report(
        session, ctx(moderator), report_id, ModerateReportRequest(review_status=ReviewStatus.APPROVED)
    )


def feed_ids(session, viewer, **kwargs):
    page = workflow.list_nearby(session, ctx(viewer), scope="all", **kwargs)
    return {item["id"] for item in page.items}


def test_admin_only_without_notification_is_auto_approved_and_never_in_feed(session, student, make_user):
    report = create_report(session, student, visibility=Visibility.ADMIN_ONLY, notify_requested=False)

    assert report["review_status"] == ReviewStatus.APPROVED
    assert report["publish_status"] == PublishStatus.DRAFT
    assert report["status"] == ReportStatus.OPEN

    viewer = make_user(Role.STUDENT)
    assert report["id"] not in feed_ids(session, viewer)


def test_campus_report_starts_pending_and_publishes_on_approval(session, student, staff, outbox):
    report = create_report(session, student)

    assert report["review_status"] == ReviewStatus.PENDING_REVIEW
    assert report["publish_status"] == PublishStatus.DRAFT

    result = approve(session, staff, report["id"])

    assert result.data["review_status"] == ReviewStatus.APPROVED
    assert result.data["publish_status"] == PublishStatus.PUBLISHED
    assert result.notifications[0].type == NotificationType.REPORT_CREATED
    assert outbox[-1]["to"] == student.email
    assert outbox[-1]["subject"] == "Lost Report Published: Blue Earbuds"


def test_admin_only_with_notification_needs_review_and_alerts_moderators(session, student, staff, admin):
    result = workflow.create_lost_report(
        session, ctx(student), lost_payload(visibility=Visibility.ADMIN_ONLY, notify_requested=True)
    )

    assert result.data["review_status"] == ReviewStatus.PENDING_REVIEW
    assert result.data["publish_status"] == PublishStatus.DRAFT
    assert {n.recipient_id for n in result.notifications} == {staff.id, admin.id}

    # Approval does not publish a private report
    approved = approve(session, admin, result.data["id"])
    assert approved.data["publish_status"] == PublishStatus.DRAFT


def test_students_cannot_moderate(session, student, make_user):
    report = create_report(session, student)
    other = make_user(Role.STUDENT)

    with pytest.raises(AuthorizationError):
        approve(session, other, report["id"])

    assert session.get(LostReport, report["id"]).review_status == ReviewStatus.PENDING_REVIEW


def test_unapproved_staff_cannot_moderate(session, student, make_user):
    report = create_report(session, student)
    pending_staff = make_user(Role.STAFF, is_approved=False)

    with pytest.raises(AuthorizationError):
        approve(session, pending_staff, report["id"])


def test_moderating_unknown_report_is_not_found(session, staff):
    with pytest.raises(NotFoundError):
        approve(session, staff, uuid.uuid4())


def test_publishing_without_approval_is_rejected(session, student, staff):
    report = create_report(session, student)

    with pytest.raises(ValidationError):
        workflow.moderate_report(
            session, ctx(staff), report["id"], ModerateReportRequest(publish_status=PublishStatus.PUBLISHED)
        )

    assert session.get(LostReport, report["id"]).publish_status == PublishStatus.DRAFT


def test_rejecting_a_published_report_unpublishes_it(session, student, staff):
    report = create_report(session, student)
    approve(session, staff, report["id"])

    result = workflow.moderate_report(
        session,
        ctx(staff),
        report["id"],
        ModerateReportRequest(review_status=ReviewStatus.REJECTED, admin_note="Duplicate report"),
    )

    assert result.data["review_status"] == ReviewStatus.REJECTED
    assert result.data["publish_status"] == PublishStatus.DRAFT
    assert result.data["admin_note"] == "Duplicate report"
    assert result.notifications == []


def test_moderator_can_unpublish_an_approved_report(session, student, staff):
    report = create_report(session, student)
    approve(session, staff, report["id"])

    result = workflow.moderate_report(
        session, ctx(staff), report["id"], ModerateReportRequest(publish_status=PublishStatus.DRAFT)
    )

    assert result.data["review_status"] == ReviewStatus.APPROVED
    assert result.data["publish_status"] == PublishStatus.DRAFT


@pytest.mark.parametrize(
    "review,publish,visibility",
    list(itertools.product(ReviewStatus, PublishStatus, Visibility)),
)
def test_enforce_publication_never_leaves_unapproved_reports_published(review, publish, visibility):
    report = LostReport(
        user_id=1,
        item_name="Keys",
        category="Keys",
        description="Bunch of keys on a red ring",
        date_lost=days_ago(1),
        location_lost="Gym",
        review_status=review,
        publish_status=publish,
        visibility=visibility,
    )

    lifecycle.enforce_publication(report)

    if report.publish_status == PublishStatus.PUBLISHED:
        assert report.review_status == ReviewStatus.APPROVED
        assert report.visibility == Visibility.CAMPUS


def test_owner_closes_report_and_thread_is_purged(session, student, staff, make_user):
    report = create_report(session, student)
    approve(session, staff, report["id"])

    other = make_user(Role.STUDENT)
    first = workflow.post_comment(
        session, ctx(other), ItemType.LOST_REPORT, report["id"], CommentCreate(text="Saw these at the gym")
    ).data
    workflow.post_comment(
        session,
        ctx(student),
        ItemType.LOST_REPORT,
        report["id"],
        CommentCreate(text="Thanks, checking now", parent_id=first.id),
    )

    result = workflow.close_report(session, ctx(student), report["id"])

    assert result.data["status"] == ReportStatus.CLOSED
    assert result.data["closed_at"] is not None
    remaining = session.exec(select(Comment).where(Comment.item_id == report["id"])).all()
    assert remaining == []


def test_closing_twice_keeps_report_closed(session, student):
    report = create_report(session, student)

    first = workflow.close_report(session, ctx(student), report["id"]).data
    second = workflow.close_report(session, ctx(student), report["id"]).data

    assert second["status"] == ReportStatus.CLOSED
    assert second["closed_at"] == first["closed_at"]


def test_only_owner_or_admin_may_close(session, student, staff, admin, make_user):
    report = create_report(session, student)
    other = make_user(Role.STUDENT)

    with pytest.raises(AuthorizationError):
        workflow.close_report(session, ctx(other), report["id"])

    with pytest.raises(AuthorizationError):
        workflow.close_report(session, ctx(staff), report["id"])

    assert session.get(LostReport, report["id"]).status == ReportStatus.OPEN

    result = workflow.close_report(session, ctx(admin), report["id"])
    assert result.data["status"] == ReportStatus.CLOSED


def test_closed_report_cannot_be_reopened(session, student, staff):
    report = create_report(session, student)
    workflow.close_report(session, ctx(student), report["id"])

    with pytest.raises(ValidationError):
        workflow.moderate_report(
            session, ctx(staff), report["id"], ModerateReportRequest(status=ReportStatus.OPEN)
        )

    assert session.get(LostReport, report["id"]).status == ReportStatus.CLOSED


def test_moderator_close_purges_thread(session, student, staff):
    report = create_report(session, student)
    workflow.post_comment(session, ctx(student), ItemType.LOST_REPORT, report["id"], CommentCreate(text="Any news?"))

    result = workflow.moderate_report(
        session, ctx(staff), report["id"], ModerateReportRequest(status=ReportStatus.CLOSED)
    )

    assert result.data["status"] == ReportStatus.CLOSED
    assert result.data["closed_at"] is not None
    assert session.exec(select(Comment).where(Comment.item_id == report["id"])).all() == []


def _published_closed_report(session, student, staff, closed_days_ago):
    report = create_report(session, student)
    approve(session, staff, report["id"])

    stored = session.get(LostReport, report["id"])
    stored.status = ReportStatus.CLOSED
    stored.closed_at = days_ago(closed_days_ago)
    session.add(stored)
    session.commit()
    return report["id"]


def test_recently_closed_reports_stay_in_feed_for_a_week(session, student, staff, make_user):
    recent = _published_closed_report(session, student, staff, 3)
    stale = _published_closed_report(session, student, staff, 10)

    ids = feed_ids(session, make_user(Role.STUDENT))

    assert recent in ids
    assert stale not in ids


def test_feed_shows_open_and_matched_but_not_pending_or_rejected(session, student, staff, make_user):
    published = create_report(session, student)
    approve(session, staff, published["id"])

    matched = create_report(session, student)
    approve(session, staff, matched["id"])
    workflow.create_found_item(session, ctx(staff), found_payload(linked_lost_report_id=matched["id"]))

    pending = create_report(session, student)

    rejected = create_report(session, student)
    workflow.moderate_report(
        session, ctx(staff), rejected["id"], ModerateReportRequest(review_status=ReviewStatus.REJECTED)
    )

    ids = feed_ids(session, make_user(Role.STUDENT))

    assert published["id"] in ids
    assert matched["id"] in ids
    assert pending["id"] not in ids
    assert rejected["id"] not in ids


def test_block_scope_limits_feed_to_the_viewers_block(session, staff, make_user):
    owner_a = make_user(Role.STUDENT, block="A")
    owner_b = make_user(Role.STUDENT, block="B")
    viewer = make_user(Role.STUDENT, block="A")

    in_a = create_report(session, owner_a)
    in_b = create_report(session, owner_b)
    approve(session, staff, in_a["id"])
    approve(session, staff, in_b["id"])

    block_ids = {i["id"] for i in workflow.list_nearby(session, ctx(viewer), scope="block").items}
    all_ids = {i["id"] for i in workflow.list_nearby(session, ctx(viewer), scope="all").items}

    assert block_ids == {in_a["id"]}
    assert all_ids == {in_a["id"], in_b["id"]}


def test_feed_hides_contact_details_from_other_users(session, student, staff, make_user):
    report = create_report(session, student)
    approve(session, staff, report["id"])

    item = workflow.list_nearby(session, ctx(make_user(Role.STUDENT)), scope="all").items[0]

    assert "contact_phone" not in item
    assert "email" not in item["owner"]


def test_report_detail_privacy(session, student, staff, admin, make_user):
    report = create_report(session, student)
    approve(session, staff, report["id"])
    other = make_user(Role.STUDENT)

    as_owner = workflow.get_report(session, ctx(student), report["id"])
    as_admin = workflow.get_report(session, ctx(admin), report["id"])
    as_staff = workflow.get_report(session, ctx(staff), report["id"])
    as_other = workflow.get_report(session, ctx(other), report["id"])

    assert as_owner["contact_phone"] == "9876543210"
    assert as_owner["owner"]["email"] == student.email
    assert as_admin["contact_phone"] == "9876543210"
    assert "contact_phone" not in as_staff
    assert "contact_phone" not in as_other
    assert "email" not in as_other["owner"]
    assert "phone" not in as_other["owner"]
    assert as_other["owner"]["name"] == student.name


def test_unpublished_report_is_hidden_from_other_students(session, student, make_user):
    report = create_report(session, student)

    with pytest.raises(NotFoundError):
        workflow.get_report(session, ctx(make_user(Role.STUDENT)), report["id"])


def test_linked_found_item_matches_report_and_injects_one_system_comment(session, student, staff, outbox):
    report = create_report(session, student)

    result = workflow.create_found_item(session, ctx(staff), found_payload(linked_lost_report_id=report["id"]))
    found_item = result.data

    stored = session.get(LostReport, report["id"])
    assert stored.status == ReportStatus.MATCHED

    system_comments = session.exec(
        select(Comment)
        .where(Comment.item_id == report["id"])
        .where(Comment.item_type == ItemType.LOST_REPORT)
        .where(Comment.is_system_message == True)  # noqa: E712
    ).all()
    assert len(system_comments) == 1
    assert str(found_item.id) in system_comments[0].text
    assert system_comments[0].user_id is None

    assert result.notifications[0].type == NotificationType.MATCH_FOUND
    assert outbox[-1]["subject"] == "Potential Match Found: Blue Earbuds"

    notification = session.exec(select(Notification).where(Notification.user_id == student.id)).one()
    assert notification.related_id == found_item.id


def test_match_applies_regardless_of_review_state(session, student, staff):
    report = create_report(session, student)
    workflow.moderate_report(
        session, ctx(staff), report["id"], ModerateReportRequest(review_status=ReviewStatus.REJECTED)
    )

    workflow.create_found_item(session, ctx(staff), found_payload(linked_lost_report_id=report["id"]))

    stored = session.get(LostReport, report["id"])
    assert stored.status == ReportStatus.MATCHED
    assert stored.publish_status == PublishStatus.DRAFT


def test_found_item_linked_to_missing_report_is_not_created(session, staff):
    with pytest.raises(NotFoundError):
        workflow.create_found_item(session, ctx(staff), found_payload(linked_lost_report_id=uuid.uuid4()))

    assert session.exec(select(FoundItem)).all() == []


def test_found_item_linked_to_closed_report_leaves_it_closed(session, student, staff):
    report = create_report(session, student)
    workflow.close_report(session, ctx(student), report["id"])

    result = workflow.create_found_item(session, ctx(staff), found_payload(linked_lost_report_id=report["id"]))

    assert result.data.linked_lost_report_id == report["id"]
    assert result.notifications == []
    assert session.get(LostReport, report["id"]).status == ReportStatus.CLOSED
