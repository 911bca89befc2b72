from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

from lostfound.models.enums import NotifyScope, Role


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    name: str
    email: str = Field(index=True, unique=True)

    role: Role = Field(default=Role.STUDENT)
    is_approved: bool = Field(default=False)

    # Required for students, used to scope the nearby feed
    block: Optional[str] = Field(default=None, index=True)
    department: Optional[str] = Field(default=None)

    phone: Optional[str] = Field(default=None)
    alt_phone: Optional[str] = Field(default=None)

    # Notification preferences
    email_notifications_enabled: bool = Field(default=True)
    notify_scope: NotifyScope = Field(default=NotifyScope.ALL)
