from pydantic import BaseModel, Field


class SchedulerModel(BaseModel):
    claim_ttl_sec: int = Field(default=600, ge=60)
    concurrency: int = Field(default=1, ge=1)
    default_display_name: str = "Usuario"
    default_language: str = "es"
    default_time: str = Field(default="09:00", pattern=r"^([01]\d|2[0-3]):([0-5]\d)$")
    delivery_timeout_sec: float = Field(default=30, gt=0)
    window_min: int = Field(default=5, ge=1, le=60)
