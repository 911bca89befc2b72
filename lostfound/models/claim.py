from typing import Optional
import uuid
from sqlmodel import Field, SQLModel, UniqueConstraint
from datetime import datetime, timezone

from lostfound.models.enums import ClaimStatus


class Claim(SQLModel, table=True):
    __tablename__ = "claims"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Claimant
    user_id: int = Field(foreign_key="users.id", index=True)

    found_item_id: uuid.UUID = Field(foreign_key="found_items.id", index=True)

    message: str
    status: ClaimStatus = Field(default=ClaimStatus.PENDING, index=True)
    pickup_instructions: Optional[str] = None

    decided_at: Optional[datetime] = None
    decided_by: Optional[int] = Field(default=None, foreign_key="users.id")

    __table_args__ = (
        # One claim per user per found item
        UniqueConstraint(
            "user_id",
            "found_item_id",
            name="uq_user_found_item_claim"
        ),
    )
