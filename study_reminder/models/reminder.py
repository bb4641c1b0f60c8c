from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class FrequencyEnum(str, Enum):
    CUSTOM = "custom"
    """Fire on the weekdays listed in `custom_days`."""
    DAILY = "daily"
    """Fire every day."""
    WEEKLY = "weekly"
    """Fire every Monday."""


class ReminderConfigModel(BaseModel):
    """
    Study reminder, as configured by its owner.

    Frequency and time are kept as raw text, the store is owned by another service and values are checked with `validate` before use.
    """

    # Immutable fields
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), frozen=True)
    id: str = Field(frozen=True)
    owner_id: str = Field(frozen=True)
    # Editable fields
    custom_days: list[int] | None = None  # 0 is Sunday, 6 is Saturday
    enabled: bool = True
    frequency: str | None = None
    preferred_time: str | None = None  # HH:MM, in the owner timezone
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ValidationResultModel(BaseModel):
    errors: list[str] = []
    valid: bool
