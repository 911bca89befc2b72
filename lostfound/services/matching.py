from datetime import datetime, timedelta
from typing import Optional
from sqlmodel import Session, and_, col, or_, select

from lostfound.config import MATCH_DESCRIPTION_PREFIX, MATCH_LIMIT, MATCH_WINDOW_DAYS
from lostfound.models.found_item import FoundItem
from lostfound.models.lost_report import LostReport
from lostfound.services.lifecycle import utcnow


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def ilike_contains(column, text: str):
    return col(column).ilike(_like_pattern(text), escape="\\")


def find_matches(
    session: Session,
    report: LostReport,
    now: Optional[datetime] = None,
    limit: int = MATCH_LIMIT,
) -> list[FoundItem]:
    """
    Suggest found items for a lost report.

    Same category, found within the match window, and either every word of the
    lost item's name appears in the found item's name, or the found description
    contains the start of the lost description. Newest first. Read only.
    """
    cutoff = (now or utcnow()) - timedelta(days=MATCH_WINDOW_DAYS)

    text_clauses = []

    name_tokens = report.item_name.split()
    if name_tokens:
        text_clauses.append(and_(*[ilike_contains(FoundItem.item_name, tok) for tok in name_tokens]))

    description_prefix = report.description[:MATCH_DESCRIPTION_PREFIX].strip()
    if description_prefix:
        text_clauses.append(ilike_contains(FoundItem.description, description_prefix))

    if not text_clauses:
        return []

    query = (
        select(FoundItem)
        .where(FoundItem.category == report.category)
        .where(col(FoundItem.date_found) >= cutoff)
        .where(or_(*text_clauses))
        .order_by(col(FoundItem.date_found).desc())
        .limit(limit)
    )

    return list(session.exec(query).all())
