from enum import Enum
from functools import cached_property
from os.path import abspath

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from study_reminder.persistence.idirectory import IDirectory
from study_reminder.persistence.istore import IStore


class ModeEnum(str, Enum):
    MEMORY = "memory"
    """Use memory store, content is lost on restart."""
    SQLITE = "sqlite"
    """Use a local SQLite database."""


class MemoryModel(BaseModel, frozen=True):
    @cached_property
    def instance(self) -> IStore:
        from study_reminder.persistence.memory import (
            MemoryStore,
        )

        return MemoryStore()


class SqliteModel(BaseModel, frozen=True):
    owner_table: str = "users"
    path: str = ".local/study-reminder.db"
    reminder_table: str = "study_reminders"

    def full_path(self) -> str:
        """
        Returns the absolute path of the database file.
        """
        return abspath(self.path)

    @cached_property
    def instance(self) -> IStore:
        from study_reminder.persistence.sqlite import (
            SqliteStore,
        )

        return SqliteStore(self)


class DatabaseModel(BaseModel):
    memory: MemoryModel | None = MemoryModel()  # Object is fully defined by default
    mode: ModeEnum = ModeEnum.MEMORY
    sqlite: SqliteModel | None = Field(default=None, validate_default=True)

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
    def instance(self) -> IStore:
        if self.mode == ModeEnum.MEMORY:
            assert self.memory
            return self.memory.instance

        assert self.sqlite
        return self.sqlite.instance

    @cached_property
    def directory(self) -> IDirectory:
        """
        Owner directory, served by the same backend as the reminders.
        """
        instance = self.instance
        assert isinstance(instance, IDirectory)
        return instance
