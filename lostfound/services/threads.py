import logging
import uuid
from typing import Optional, Union
from sqlmodel import Session, col, select

from lostfound.models.comment import Comment
from lostfound.models.enums import ItemType, ReportStatus
from lostfound.models.found_item import FoundItem
from lostfound.models.lost_report import LostReport
from lostfound.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ThreadTarget = Union[LostReport, FoundItem]

_TARGET_MODELS: dict[ItemType, type] = {
    ItemType.LOST_REPORT: LostReport,
    ItemType.FOUND_ITEM: FoundItem,
}


def get_target(session: Session, item_type: ItemType, item_id: uuid.UUID) -> ThreadTarget:
    target = session.get(_TARGET_MODELS[item_type], item_id)
    if not target:
        raise NotFoundError("Item not found")
    return target


def target_owner_id(target: ThreadTarget) -> Optional[int]:
    if isinstance(target, LostReport):
        return target.user_id
    return target.reporter_id


def list_comments(session: Session, item_type: ItemType, item_id: uuid.UUID) -> list[Comment]:
    # Flat, oldest first; readers group replies by parent_id
    return list(
        session.exec(
            select(Comment)
            .where(Comment.item_id == item_id)
            .where(Comment.item_type == item_type)
            .order_by(col(Comment.created_at).asc())
        ).all()
    )


def build_tree(comments: list[dict]) -> list[dict]:
    """Nest serialized comments under their parents. Orphans are promoted to the top level."""
    nodes = {c["id"]: {**c, "replies": []} for c in comments}
    roots = []

    for c in comments:
        node = nodes[c["id"]]
        parent = nodes.get(c["parent_id"]) if c["parent_id"] else None
        if parent is not None:
            parent["replies"].append(node)
        else:
            roots.append(node)

    return roots


def add_comment(
    session: Session,
    target: ThreadTarget,
    item_type: ItemType,
    author_id: int,
    text: str,
    parent_id: Optional[uuid.UUID] = None,
) -> Comment:
    text = text.strip()
    if not text:
        raise ValidationError(
            "Message text is required",
            errors=[{"loc": ["text"], "msg": "must not be empty"}],
        )

    if isinstance(target, LostReport) and target.status == ReportStatus.CLOSED:
        raise ValidationError("This report is closed")

    if parent_id is not None:
        parent = session.get(Comment, parent_id)
        if not parent or parent.item_id != target.id or parent.item_type != item_type:
            raise ValidationError(
                "Reply must reference a comment on the same item",
                errors=[{"loc": ["parent_id"], "msg": "unknown parent comment"}],
            )

    comment = Comment(
        item_id=target.id,
        item_type=item_type,
        user_id=author_id,
        text=text,
        parent_id=parent_id,
    )

    session.add(comment)
    session.commit()
    session.refresh(comment)

    return comment


def inject_match_message(session: Session, report: LostReport, found_item: FoundItem, link: str) -> Comment:
    comment = Comment(
        item_id=report.id,
        item_type=ItemType.LOST_REPORT,
        user_id=None,
        is_system_message=True,
        text=(
            f'Someone found this item and reported it as "{found_item.item_name}" '
            f"(found item {found_item.id}). View it here: {link}"
        ),
    )

    session.add(comment)
    session.commit()
    session.refresh(comment)

    return comment


def purge_thread(session: Session, item_type: ItemType, item_id: uuid.UUID) -> int:
    comments = list_comments(session, item_type, item_id)

    # Newest first so replies go before the comments they answer
    for comment in reversed(comments):
        session.delete(comment)
        session.flush()
    session.commit()

    logger.info("Purged %s comments from %s %s", len(comments), item_type.value, item_id)
    return len(comments)
