import uuid
from fastapi import APIRouter, Depends
from sqlmodel import Session

from lostfound.db.db import get_session
from lostfound.services import claims, workflow
from lostfound.utils.auth_helper import AuthContext, get_auth_context, require_moderator
from lostfound.utils.form_validator import ClaimCreate

router = APIRouter()


@router.post("/", status_code=201)
def create_claim(
    payload: ClaimCreate,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    result = workflow.create_claim(session, ctx, payload)

    email_sent = any(n.email and n.email.get("success") for n in result.notifications[:1])

    return {
        "data": result.data,
        "message": "Interest recorded successfully." + (" Email confirmation sent." if email_sent else ""),
        "notifications": result.notifications,
    }


@router.get("/mine")
def get_my_claims(
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    rows = claims.list_for_user(session, ctx.user_id)

    return {
        "data": [
            {
                **claim.model_dump(),
                "found_item": found_item.model_dump(include={"id", "item_name", "category", "location_found"}),
            }
            for claim, found_item in rows
        ]
    }


@router.get("/found/{found_item_id}")
def get_claims_for_found_item(
    found_item_id: uuid.UUID,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(require_moderator),
):
    return {"data": workflow.list_claims_for_found_item(session, ctx, found_item_id)}
