from typing import Optional
import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

from lostfound.models.enums import Category


class FoundItem(SQLModel, table=True):
    __tablename__ = "found_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Finder info, absent when staff log the item
    reporter_id: Optional[int] = Field(default=None, foreign_key="users.id")

    # Item fields
    item_name: str
    category: Category = Field(index=True)
    description: str
    color: Optional[str] = None
    brand: Optional[str] = None
    unique_mark: Optional[str] = None

    date_found: datetime = Field(index=True)
    location_found: str

    # Set when reported against a specific lost report
    linked_lost_report_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="lost_reports.id",
        index=True
    )
