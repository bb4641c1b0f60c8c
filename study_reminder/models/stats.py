from datetime import UTC, datetime

from pydantic import BaseModel, Field


class BatchStatsModel(BaseModel):
    """
    Outcome of a scheduler pass.

    Built for each pass, never shared between passes.
    """

    errors: list[str] = []
    failed: int = 0
    processed: int = 0
    sent: int = 0
    skipped: int = 0


class FrequencyCountModel(BaseModel):
    custom: int = 0
    daily: int = 0
    weekly: int = 0


class StatsSnapshotModel(BaseModel):
    by_frequency: FrequencyCountModel
    due_right_now: int
    total_active: int


class HealthModel(BaseModel):
    service: str = "reminder-scheduler"
    status: str = "healthy"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
