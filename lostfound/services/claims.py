import logging
import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from lostfound.models.claim import Claim
from lostfound.models.enums import ClaimStatus
from lostfound.models.found_item import FoundItem
from lostfound.services.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from lostfound.services.lifecycle import utcnow
from lostfound.utils.auth_helper import AuthContext
from lostfound.utils.form_validator import ClaimCreate, ClaimResolve

logger = logging.getLogger(__name__)


def get_found_item(session: Session, found_item_id: uuid.UUID) -> FoundItem:
    found_item = session.get(FoundItem, found_item_id)
    if not found_item:
        raise NotFoundError("Found item not found")
    return found_item


def get_claim(session: Session, claim_id: uuid.UUID) -> Claim:
    claim = session.get(Claim, claim_id)
    if not claim:
        raise NotFoundError("Claim not found")
    return claim


def find_existing(session: Session, user_id: int, found_item_id: uuid.UUID) -> Optional[Claim]:
    return session.exec(
        select(Claim)
        .where(Claim.user_id == user_id)
        .where(Claim.found_item_id == found_item_id)
    ).first()


def open_claim(session: Session, ctx: AuthContext, payload: ClaimCreate) -> tuple[Claim, FoundItem]:
    message = payload.message.strip()
    if not message:
        raise ValidationError(
            "Please provide a message describing why the item is yours",
            errors=[{"loc": ["message"], "msg": "must not be empty"}],
        )

    found_item = get_found_item(session, payload.found_item_id)

    # Any earlier claim counts, whatever its status
    if find_existing(session, ctx.user_id, found_item.id):
        raise ConflictError("You have already shown interest in this item")

    claim = Claim(
        user_id=ctx.user_id,
        found_item_id=found_item.id,
        message=message,
    )

    session.add(claim)
    try:
        session.commit()
    except IntegrityError:
        # lost the race against a concurrent claim from the same user
        session.rollback()
        raise ConflictError("You have already shown interest in this item")
    session.refresh(claim)

    logger.info("User %s claimed found item %s (claim %s)", ctx.user_id, found_item.id, claim.id)
    return claim, found_item


def decide_claim(
    session: Session,
    ctx: AuthContext,
    claim_id: uuid.UUID,
    payload: ClaimResolve,
    now: Optional[datetime] = None,
) -> Claim:
    if not ctx.is_privileged:
        raise AuthorizationError("Only staff or admins can resolve claims")

    claim = get_claim(session, claim_id)

    # A second decision simply overwrites the first
    claim.status = payload.status
    if payload.status == ClaimStatus.APPROVED:
        claim.pickup_instructions = payload.pickup_instructions
    else:
        claim.pickup_instructions = None
    claim.decided_at = now or utcnow()
    claim.decided_by = ctx.user_id

    session.add(claim)
    session.commit()
    session.refresh(claim)

    logger.info("Claim %s %s by user %s", claim.id, claim.status.value, ctx.user_id)
    return claim


def list_for_user(session: Session, user_id: int) -> list[tuple[Claim, FoundItem]]:
    return list(
        session.exec(
            select(Claim, FoundItem)
            .join(FoundItem, col(Claim.found_item_id) == col(FoundItem.id))
            .where(Claim.user_id == user_id)
            .order_by(col(Claim.created_at).desc())
        ).all()
    )


def list_for_found_item(session: Session, found_item_id: uuid.UUID) -> list[Claim]:
    return list(
        session.exec(
            select(Claim)
            .where(Claim.found_item_id == found_item_id)
            .order_by(col(Claim.created_at).desc())
        ).all()
    )


def list_all(
    session: Session,
    status: Optional[ClaimStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Claim], int]:
    query = select(Claim)
    count_query = select(func.count(Claim.id))

    if status:
        query = query.where(Claim.status == status)
        count_query = count_query.where(Claim.status == status)

    total = session.exec(count_query).one()
    claims = session.exec(
        query.order_by(col(Claim.created_at).desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return list(claims), total
