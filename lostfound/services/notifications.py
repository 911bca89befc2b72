"""
Notification sink.

Every user-facing side effect of the workflow goes through :class:`NotificationSink`.
A notification is a best-effort dual write: an in-app ``Notification`` row and an
email, each gated by ``NOTIFICATION_MODE`` and the email additionally by the
recipient's preferences. Failures are logged and reported back in a
:class:`NotificationResult`; they never raise.
"""
import html
import logging
import uuid
from typing import Optional
from pydantic import BaseModel
from sqlmodel import Session

from lostfound.config import DEFAULT_PICKUP_INSTRUCTIONS, PORTAL_BASE_URL, notification_mode
from lostfound.models.enums import NotificationType, NotifyScope
from lostfound.models.found_item import FoundItem
from lostfound.models.lost_report import LostReport
from lostfound.models.notification import Notification
from lostfound.models.user import User
from lostfound.utils import mailer

logger = logging.getLogger(__name__)


class NotificationResult(BaseModel):
    recipient_id: Optional[int] = None
    type: NotificationType
    in_app: Optional[dict] = None
    email: Optional[dict] = None


def email_permitted(user: User, is_match: bool) -> bool:
    if not user.email or not user.email_notifications_enabled:
        return False

    scope = user.notify_scope or NotifyScope.ALL
    if scope == NotifyScope.NONE:
        return False
    if scope == NotifyScope.MATCHES_ONLY:
        return is_match
    return True


def found_item_link(found_item: FoundItem) -> str:
    return f"{PORTAL_BASE_URL}/found/{found_item.id}"


class NotificationSink:
    def __init__(self, session: Session, mode: Optional[str] = None):
        self.session = session
        self.mode = (mode or notification_mode()).lower()

    @property
    def in_app_enabled(self) -> bool:
        return self.mode in ("inapp", "both")

    @property
    def email_enabled(self) -> bool:
        return self.mode in ("email", "both")

    def notify(
        self,
        user: User,
        type: NotificationType,
        message: str,
        related_id: Optional[uuid.UUID] = None,
        *,
        is_match: bool = False,
        email_subject: str,
        email_text: str,
        email_html: Optional[str] = None,
    ) -> NotificationResult:
        result = NotificationResult(recipient_id=user.id, type=type)

        if self.in_app_enabled and user.id is not None:
            try:
                notification = Notification(
                    user_id=user.id,
                    type=type,
                    message=message,
                    related_id=related_id,
                )
                self.session.add(notification)
                self.session.commit()
                result.in_app = {"success": True, "id": str(notification.id)}
            except Exception as e:
                self.session.rollback()
                logger.exception("In-app notification for user %s failed", user.id)
                result.in_app = {"success": False, "error": str(e)}

        if self.email_enabled and user.email:
            if email_permitted(user, is_match):
                try:
                    result.email = mailer.send_mail(
                        to=user.email,
                        subject=email_subject,
                        text=email_text,
                        html=email_html,
                    )
                except Exception as e:
                    logger.exception("Email notification to user %s failed", user.id)
                    result.email = {"success": False, "error": str(e)}
            else:
                scope = user.notify_scope.value if user.email_notifications_enabled else "disabled"
                logger.debug("Email to user %s filtered by scope %s", user.id, scope)
                result.email = {"success": False, "reason": f"Filtered by user scope: {scope}"}

        return result

    # Workflow events

    def report_published(self, user: User, report: LostReport) -> NotificationResult:
        name = report.item_name
        return self.notify(
            user,
            NotificationType.REPORT_CREATED,
            f'Your lost item report for "{name}" has been published.',
            report.id,
            email_subject=f"Lost Report Published: {name}",
            email_text=(
                f"Hello {user.name},\n\n"
                f'Your lost item report for "{name}" has been approved and published on the campus feed.'
            ),
            email_html=(
                f"<p>Hello <b>{html.escape(user.name)}</b>,</p>"
                f'<p>Your lost item report for "<b>{html.escape(name)}</b>" has been approved '
                "and published on the campus feed.</p>"
            ),
        )

    def private_report_submitted(self, moderator: User, owner: User, report: LostReport) -> NotificationResult:
        name = report.item_name
        return self.notify(
            moderator,
            NotificationType.REPORT_CREATED,
            f'A private report (ADMIN_ONLY) has been created by {owner.name} for "{name}".',
            report.id,
            email_subject=f"New Private Report: {name}",
            email_text=(
                f"Hello {moderator.name},\n\n"
                f"A new private lost report has been submitted by {owner.name} ({owner.email}).\n"
                f"Item: {name}.\nPlease review it in the admin portal."
            ),
            email_html=(
                f"<p>Hello <b>{html.escape(moderator.name)}</b>,</p>"
                f"<p>A new private lost report has been submitted by <b>{html.escape(owner.name)}</b> "
                f"({html.escape(owner.email)}).</p><p><b>Item:</b> {html.escape(name)}</p>"
                "<p>Please review it in the admin portal.</p>"
            ),
        )

    def found_match(self, user: User, report: LostReport, found_item: FoundItem) -> NotificationResult:
        link = found_item_link(found_item)
        return self.notify(
            user,
            NotificationType.MATCH_FOUND,
            f'A potential match for your lost "{report.item_name}" was found: "{found_item.item_name}"',
            found_item.id,
            is_match=True,
            email_subject=f"Potential Match Found: {report.item_name}",
            email_text=(
                f"Hello {user.name},\n\n"
                f'A potential match for your lost "{report.item_name}" has been found.\n'
                f'Found item: "{found_item.item_name}" at {found_item.location_found}.\n'
                f"View it here: {link}"
            ),
            email_html=(
                f"<p>Hello <b>{html.escape(user.name)}</b>,</p>"
                f'<p>A potential match for your lost "<b>{html.escape(report.item_name)}</b>" has been found.</p>'
                f"<p><b>Found Item:</b> {html.escape(found_item.item_name)} "
                f"({html.escape(found_item.location_found)})</p>"
                f'<p><a href="{html.escape(link)}">View it here</a> to claim it.</p>'
            ),
        )

    def claim_created(self, claimant: User, found_item: FoundItem) -> NotificationResult:
        name = found_item.item_name
        return self.notify(
            claimant,
            NotificationType.CLAIM_REQUESTED,
            f'You have successfully requested a claim for "{name}".',
            found_item.id,
            email_subject=f"Claim Request Submitted: {name}",
            email_text=(
                f"Hello {claimant.name},\n\n"
                f'Your claim request for "{name}" has been submitted successfully and is under review.'
            ),
            email_html=(
                f"<p>Hello <b>{html.escape(claimant.name)}</b>,</p>"
                f'<p>Your claim request for "<b>{html.escape(name)}</b>" has been submitted '
                "successfully and is under review.</p>"
            ),
        )

    def claim_submitted(self, owner: User, found_item: FoundItem, claimant: User) -> NotificationResult:
        name = found_item.item_name
        return self.notify(
            owner,
            NotificationType.CLAIM_REQUESTED,
            f'{claimant.name} has submitted a claim for the found item "{name}" matched to your report.',
            found_item.id,
            email_subject=f"New Claim Request: {name}",
            email_text=(
                f"Hello {owner.name},\n\n"
                f'{claimant.name} has submitted a claim for "{name}", which was matched to your lost report. '
                "Staff will review it."
            ),
            email_html=(
                f"<p>Hello <b>{html.escape(owner.name)}</b>,</p>"
                f'<p><b>{html.escape(claimant.name)}</b> has submitted a claim for "<b>{html.escape(name)}</b>", '
                "which was matched to your lost report.</p><p>Staff will review it.</p>"
            ),
        )

    def claim_approved(
        self,
        claimant: User,
        found_item: FoundItem,
        pickup_instructions: Optional[str],
    ) -> NotificationResult:
        name = found_item.item_name
        instructions = pickup_instructions or DEFAULT_PICKUP_INSTRUCTIONS
        return self.notify(
            claimant,
            NotificationType.CLAIM_APPROVED,
            f'Your claim for "{name}" has been approved! Pickup: {instructions}',
            found_item.id,
            email_subject=f"Claim Approved: {name}",
            email_text=(
                f"Hello {claimant.name},\n\n"
                f'Great news! Your claim for "{name}" has been approved.\n\n'
                f"Pickup Instructions: {instructions}"
            ),
            email_html=(
                f"<p>Hello <b>{html.escape(claimant.name)}</b>,</p>"
                f'<p>Great news! Your claim for "<b>{html.escape(name)}</b>" has been approved.</p>'
                f"<p><b>Pickup Instructions:</b> {html.escape(instructions)}</p>"
            ),
        )

    def claim_rejected(self, claimant: User, found_item: FoundItem) -> NotificationResult:
        name = found_item.item_name
        return self.notify(
            claimant,
            NotificationType.CLAIM_REJECTED,
            f'Your claim for "{name}" was not approved.',
            found_item.id,
            email_subject=f"Claim Update: {name}",
            email_text=(
                f"Hello {claimant.name},\n\n"
                f'We regret to inform you that your claim for "{name}" was not approved. '
                "If you have questions, please contact the administrator."
            ),
            email_html=(
                f"<p>Hello <b>{html.escape(claimant.name)}</b>,</p>"
                f'<p>We regret to inform you that your claim for "<b>{html.escape(name)}</b>" was not approved.</p>'
                "<p>If you have questions, please contact the administrator.</p>"
            ),
        )

    def new_comment(self, user: User, item_name: str, item_id: uuid.UUID, author_name: str) -> NotificationResult:
        return self.notify(
            user,
            NotificationType.NEW_COMMENT,
            f'{author_name} commented on your post "{item_name}".',
            item_id,
            email_subject=f"New Comment on: {item_name}",
            email_text=f'Hello {user.name},\n\n{author_name} has left a comment on your post "{item_name}".',
            email_html=(
                f"<p>Hello <b>{html.escape(user.name)}</b>,</p>"
                f'<p><b>{html.escape(author_name)}</b> has left a comment on your post '
                f'"<b>{html.escape(item_name)}</b>".</p>'
            ),
        )
