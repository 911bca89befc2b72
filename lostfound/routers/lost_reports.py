import uuid
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from lostfound.db.db import get_session
from lostfound.models.enums import Category
from lostfound.services import workflow
from lostfound.utils.auth_helper import AuthContext, get_auth_context
from lostfound.utils.form_validator import LostReportCreate

router = APIRouter()


def paginated(page: workflow.Page) -> dict:
    return {
        "data": page.items,
        "pagination": {
            "page": page.page,
            "limit": page.limit,
            "total": page.total,
            "pages": page.pages,
        },
    }


@router.post("/", status_code=201)
def create_lost_report(
    payload: LostReportCreate,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    result = workflow.create_lost_report(session, ctx, payload)
    return {"data": result.data, "notifications": result.notifications}


@router.get("/mine")
def get_my_lost_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(5, ge=1, le=50),
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    return paginated(workflow.list_my_reports(session, ctx, page=page, limit=limit))


@router.get("/nearby")
def get_nearby_lost_reports(
    scope: Literal["block", "all"] = "block",
    category: Optional[Category] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=50),
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    return paginated(
        workflow.list_nearby(
            session,
            ctx,
            scope=scope,
            category=category,
            search=search,
            page=page,
            limit=limit,
        )
    )


@router.get("/{report_id}/matches")
def get_matches(
    report_id: uuid.UUID,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    matches = workflow.get_matches(session, ctx, report_id)

    return {
        "data": matches,
        "message": f"Found {len(matches)} potential matches",
    }


@router.get("/{report_id}")
def get_lost_report(
    report_id: uuid.UUID,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    return {"data": workflow.get_report(session, ctx, report_id)}


@router.post("/{report_id}/close")
def close_lost_report(
    report_id: uuid.UUID,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    result = workflow.close_report(session, ctx, report_id)
    return {"data": result.data}
