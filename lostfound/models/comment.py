from typing import Optional
import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

from lostfound.models.enums import ItemType


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Thread target
    item_id: uuid.UUID = Field(index=True)
    item_type: ItemType

    # None for system messages
    user_id: Optional[int] = Field(default=None, foreign_key="users.id")

    text: str
    is_system_message: bool = Field(default=False)
    parent_id: Optional[uuid.UUID] = Field(default=None, foreign_key="comments.id")
