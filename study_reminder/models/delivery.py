from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class DeliveryStatusEnum(str, Enum):
    BOUNCED = "bounced"
    """The provider accepted the message, the recipient rejected it."""
    FAILED = "failed"
    """The provider could not send the message."""
    SENT = "sent"
    """The provider sent the message."""


class DeliveryLogEntryModel(BaseModel):
    # Immutable fields
    sent_at: datetime = Field(default_factory=lambda: datetime.now(UTC), frozen=True)
    # Editable fields
    day: date  # Calendar day of the occurrence, in the owner timezone
    error_message: str | None = None
    external_message_id: str | None = None
    owner_id: str
    reminder_id: str
    status: DeliveryStatusEnum


class DeliveryResultModel(BaseModel):
    error: str | None = None
    message_id: str | None = None
    success: bool
