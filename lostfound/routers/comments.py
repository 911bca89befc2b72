import uuid
from fastapi import APIRouter, Depends
from sqlmodel import Session

from lostfound.db.db import get_session
from lostfound.models.enums import ItemType
from lostfound.services import threads, workflow
from lostfound.utils.auth_helper import AuthContext, get_auth_context
from lostfound.utils.form_validator import CommentCreate

router = APIRouter()


@router.get("/{item_type}/{item_id}")
def get_comments(
    item_type: ItemType,
    item_id: uuid.UUID,
    nested: bool = False,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    comments = workflow.list_comments(session, ctx, item_type, item_id)

    if nested:
        return {"data": threads.build_tree(comments)}

    return {"data": comments}


@router.post("/{item_type}/{item_id}", status_code=201)
def add_comment(
    item_type: ItemType,
    item_id: uuid.UUID,
    payload: CommentCreate,
    session: Session = Depends(get_session),
    ctx: AuthContext = Depends(get_auth_context),
):
    result = workflow.post_comment(session, ctx, item_type, item_id, payload)
    return {"data": result.data, "notifications": result.notifications}
