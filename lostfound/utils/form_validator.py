import uuid
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from lostfound.models.enums import (
    Category,
    ClaimStatus,
    NotifyScope,
    PublishStatus,
    ReportStatus,
    ReviewStatus,
    Role,
    Visibility,
)


class StrictInput(BaseModel):
    # Only the fields declared on each struct may be set by a caller
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


def to_utc(value: datetime) -> datetime:
    # Naive values are taken as UTC; the database column keeps wall time only
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UserCreate(StrictInput):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    role: Role = Role.STUDENT
    block: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    alt_phone: Optional[str] = None
    is_approved: Optional[bool] = None
    email_notifications_enabled: bool = True
    notify_scope: NotifyScope = NotifyScope.ALL


class LostReportCreate(StrictInput):
    item_name: str = Field(min_length=1, max_length=100)
    category: Category
    description: str = Field(min_length=10, max_length=2000)
    color: Optional[str] = Field(default=None, max_length=50)
    brand: Optional[str] = Field(default=None, max_length=50)
    unique_mark: Optional[str] = Field(default=None, max_length=200)
    date_lost: datetime
    location_lost: str = Field(min_length=1, max_length=200)
    contact_phone: Optional[str] = Field(default=None, max_length=30)
    visibility: Visibility = Visibility.CAMPUS
    notify_requested: bool = False

    @field_validator("date_lost")
    @classmethod
    def date_lost_in_utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class FoundItemCreate(StrictInput):
    item_name: str = Field(min_length=1, max_length=100)
    category: Category
    description: str = Field(min_length=10, max_length=2000)
    color: Optional[str] = Field(default=None, max_length=50)
    brand: Optional[str] = Field(default=None, max_length=50)
    unique_mark: Optional[str] = Field(default=None, max_length=200)
    date_found: datetime
    location_found: str = Field(min_length=1, max_length=200)
    linked_lost_report_id: Optional[uuid.UUID] = None

    @field_validator("date_found")
    @classmethod
    def date_found_in_utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class ModerateReportRequest(StrictInput):
    review_status: Optional[ReviewStatus] = None
    publish_status: Optional[PublishStatus] = None
    admin_note: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[ReportStatus] = None


class ClaimCreate(StrictInput):
    found_item_id: uuid.UUID
    message: str = Field(min_length=1, max_length=1000)


class ClaimResolve(StrictInput):
    status: ClaimStatus
    pickup_instructions: Optional[str] = Field(default=None, max_length=500)

    @field_validator("status")
    @classmethod
    def status_must_be_decision(cls, v: ClaimStatus) -> ClaimStatus:
        if v == ClaimStatus.PENDING:
            raise ValueError("status must be APPROVED or REJECTED")
        return v


class CommentCreate(StrictInput):
    text: str = Field(min_length=1, max_length=1000)
    parent_id: Optional[uuid.UUID] = None

