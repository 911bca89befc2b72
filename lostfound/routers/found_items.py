import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from lostfound.db.db import get_session
from lostfound.models.enums import Category
from lostfound.routers.lost_reports import paginated
from lostfound.services import claims, workflow
from lostfound.utils.auth_helper import AuthContext, get_auth_context
from lostfound.utils.form_validator import FoundItemCreate

router = APIRouter()


@router.post("/", status_code=201)
def report_found_item(
    payload: FoundItemCreate,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    result = workflow.create_found_item(session, ctx, payload)
    return {"data": result.data, "notifications": result.notifications}


@router.get("/")
def get_found_items(
    search: Optional[str] = None,
    category: Optional[Category] = None,
    location: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=50),
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    return paginated(
        workflow.list_found_items(
            session,
            search=search,
            category=category,
            location=location,
            page=page,
            limit=limit,
        )
    )


@router.get("/{found_item_id}")
def get_found_item(
    found_item_id: uuid.UUID,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    return {"data": claims.get_found_item(session, found_item_id)}
