import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from lostfound.db.db import get_session
from lostfound.models.enums import ClaimStatus, ReportStatus, ReviewStatus, Visibility
from lostfound.routers.lost_reports import paginated
from lostfound.services import claims, workflow
from lostfound.utils.auth_helper import AuthContext, require_moderator
from lostfound.utils.form_validator import ClaimResolve, FoundItemCreate, ModerateReportRequest

router = APIRouter()


@router.get("/stats")
def get_admin_stats(
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(require_moderator),
):
    """Counts for the moderation dashboard"""
    return {"data": workflow.admin_stats(session, ctx)}


@router.get("/lost")
def get_all_lost_reports(
    status: Optional[ReportStatus] = None,
    visibility: Optional[Visibility] = None,
    review_status: Optional[ReviewStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(require_moderator),
):
    return paginated(
        workflow.list_lost_reports(
            session,
            ctx,
            status=status,
            visibility=visibility,
            review_status=review_status,
            page=page,
            limit=limit,
        )
    )


@router.patch("/lost/{report_id}")
def moderate_lost_report(
    report_id: uuid.UUID,
    payload: ModerateReportRequest,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(require_moderator),
):
    """Approve, reject, publish, annotate or close a lost report"""
    result = workflow.moderate_report(session, ctx, report_id, payload)

    return {
        "data": result.data,
        "message": "Lost report updated successfully",
        "notifications": result.notifications,
    }


@router.post("/found", status_code=201)
def create_found_item(
    payload: FoundItemCreate,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(require_moderator),
):
    result = workflow.create_found_item(session, ctx, payload)

    return {
        "data": result.data,
        "message": "Found item created successfully",
        "notifications": result.notifications,
    }


@router.get("/claims")
def get_all_claims(
    status: Optional[ClaimStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(require_moderator),
):
    """Claims for moderation, newest first"""
    items, total = claims.list_all(session, status=status, page=page, limit=limit)
    return paginated(workflow.Page(items=items, page=page, limit=limit, total=total))


@router.patch("/claims/{claim_id}")
def resolve_claim(
    claim_id: uuid.UUID,
    payload: ClaimResolve,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(require_moderator),
):
    result = workflow.resolve_claim(session, ctx, claim_id, payload)

    email = result.notifications[0].email if result.notifications else None
    message = f"Claim {result.data.status.value.lower()}."
    if email and email.get("success"):
        message += " User notified via email."

    return {
        "data": result.data,
        "message": message,
        "notifications": result.notifications,
    }
