from typing import Optional
import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

from lostfound.models.enums import Category, PublishStatus, ReportStatus, ReviewStatus, Visibility


class LostReport(SQLModel, table=True):
    __tablename__ = "lost_reports"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Owner info, never reassigned
    user_id: int = Field(foreign_key="users.id", index=True)

    # Item fields
    item_name: str
    category: Category = Field(index=True)
    description: str
    color: Optional[str] = None
    brand: Optional[str] = None
    unique_mark: Optional[str] = None

    date_lost: datetime
    location_lost: str

    # Shown only to the owner and admins
    contact_phone: Optional[str] = None

    # Moderation
    visibility: Visibility = Field(default=Visibility.CAMPUS, index=True)
    notify_requested: bool = Field(default=False)
    review_status: ReviewStatus = Field(default=ReviewStatus.PENDING_REVIEW, index=True)
    publish_status: PublishStatus = Field(default=PublishStatus.DRAFT, index=True)
    admin_note: Optional[str] = None

    # Lifecycle
    status: ReportStatus = Field(default=ReportStatus.OPEN, index=True)
    closed_at: Optional[datetime] = None
