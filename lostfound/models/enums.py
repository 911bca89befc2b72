from enum import Enum


class Role(str, Enum):
    STUDENT = "STUDENT"
    STAFF = "STAFF"
    ADMIN = "ADMIN"


class NotifyScope(str, Enum):
    ALL = "all"
    MATCHES_ONLY = "matches-only"
    NONE = "none"


class Category(str, Enum):
    ID_CARD = "ID Card"
    PHONE = "Phone"
    WALLET = "Wallet"
    BAG = "Bag"
    KEYS = "Keys"
    BOOK = "Book"
    ELECTRONICS = "Electronics"
    OTHER = "Other"


class Visibility(str, Enum):
    CAMPUS = "CAMPUS"
    ADMIN_ONLY = "ADMIN_ONLY"


class ReviewStatus(str, Enum):
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PublishStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class ReportStatus(str, Enum):
    OPEN = "OPEN"
    MATCHED = "MATCHED"
    CLOSED = "CLOSED"


class ClaimStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ItemType(str, Enum):
    """Discriminator for anything a comment thread can hang off."""

    LOST_REPORT = "LostReport"
    FOUND_ITEM = "FoundItem"


class NotificationType(str, Enum):
    REPORT_CREATED = "REPORT_CREATED"
    CLAIM_REQUESTED = "CLAIM_REQUESTED"
    CLAIM_APPROVED = "CLAIM_APPROVED"
    CLAIM_REJECTED = "CLAIM_REJECTED"
    MATCH_FOUND = "MATCH_FOUND"
    NEW_COMMENT = "NEW_COMMENT"
