from enum import Enum
from functools import cached_property

from pydantic import BaseModel

from study_reminder.persistence.idelivery import IDelivery


class ModeEnum(str, Enum):
    CONSOLE = "console"
    """Print the notifications in the logs, no transport is used."""


class ConsoleModel(BaseModel, frozen=True):
    app_url: str = "http://localhost:3000"

    @cached_property
    def instance(self) -> IDelivery:
        from study_reminder.persistence.console import (
            ConsoleDelivery,
        )

        return ConsoleDelivery(self)


class DeliveryModel(BaseModel):
    console: ConsoleModel | None = ConsoleModel()  # Object is fully defined by default
    mode: ModeEnum = ModeEnum.CONSOLE

    @cached_property
    def instance(self) -> IDelivery:
        assert self.console
        return self.console.instance
