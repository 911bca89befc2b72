from typing import Optional
import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

from lostfound.models.enums import NotificationType


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Ownership
    user_id: int = Field(foreign_key="users.id", index=True)

    type: NotificationType = Field(index=True)
    message: str

    # Lost report, found item or claim id
    related_id: Optional[uuid.UUID] = Field(default=None, index=True)

    is_read: bool = Field(default=False)
