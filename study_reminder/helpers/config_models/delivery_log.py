from enum import Enum
from functools import cached_property
from os.path import abspath

from pydantic import BaseModel, Field, SecretStr, ValidationInfo, field_validator

from study_reminder.persistence.idelivery_log import IDeliveryLog


class ModeEnum(str, Enum):
    MEMORY = "memory"
    """Use memory log, deliveries are forgotten when the process exits. Only for tests and long-running processes, never for one-shot runs."""
    REDIS = "redis"
    """Use Redis log, safe with multiple scheduler instances."""
    SQLITE = "sqlite"
    """Use a local SQLite log, safe with scheduler instances sharing the file."""


class MemoryModel(BaseModel, frozen=True):
    @cached_property
    def instance(self) -> IDeliveryLog:
        from study_reminder.persistence.memory import (
            MemoryDeliveryLog,
        )

        return MemoryDeliveryLog()


class RedisModel(BaseModel, frozen=True):
    database: int = Field(default=0, ge=0)
    host: str
    password: SecretStr | None = None
    port: int = 6379
    retention_day: int = Field(default=90, ge=1)
    ssl: bool = True

    @cached_property
    def instance(self) -> IDeliveryLog:
        from study_reminder.persistence.redis import (
            RedisDeliveryLog,
        )

        return RedisDeliveryLog(self)


class SqliteModel(BaseModel, frozen=True):
    claim_table: str = "reminder_claims"
    path: str = ".local/study-reminder.db"
    table: str = "reminder_logs"

    def full_path(self) -> str:
        """
        Returns the absolute path of the database file.
        """
        return abspath(self.path)

    @cached_property
    def instance(self) -> IDeliveryLog:
        from study_reminder.persistence.sqlite import (
            SqliteDeliveryLog,
        )

        return SqliteDeliveryLog(self)


class DeliveryLogModel(BaseModel):
    memory: MemoryModel | None = MemoryModel()  # Object is fully defined by default
    mode: ModeEnum = ModeEnum.SQLITE
    redis: RedisModel | None = Field(default=None, validate_default=True)
    sqlite: SqliteModel | None = SqliteModel()  # Object is fully defined by default

    @field_validator("redis")
    @classmethod
    def _validate_redis(
        cls,
        redis: RedisModel | None,
        info: ValidationInfo,
    ) -> RedisModel | None:
        if not redis and info.data.get("mode", None) == ModeEnum.REDIS:
            raise ValueError("Redis config required")
        return redis

    @field_validator("sqlite")
    @classmethod
    def _validate_sqlite(
        cls,
        sqlite: SqliteModel | None,
        info: ValidationInfo,
    ) -> SqliteModel | None:
        if not sqlite and info.data.get("mode", None) == ModeEnum.SQLITE:
            raise ValueError("SQLite config required")
        return sqlite

    @cached_property
    def instance(self) -> IDeliveryLog:
        if self.mode == ModeEnum.MEMORY:
            assert self.memory
            return self.memory.instance

        if self.mode == ModeEnum.SQLITE:
            assert self.sqlite
            return self.sqlite.instance

        assert self.redis
        return self.redis.instance
