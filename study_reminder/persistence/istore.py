from abc import ABC, abstractmethod

from study_reminder.helpers.monitoring import start_as_current_span
from study_reminder.models.readiness import ReadinessEnum
from study_reminder.models.reminder import ReminderConfigModel


class IStore(ABC):
    @abstractmethod
    @start_as_current_span("store_readiness")
    async def readiness(self) -> ReadinessEnum:
        pass

    @abstractmethod
    @start_as_current_span("store_reminder_list_enabled")
    async def reminder_list_enabled(self) -> list[ReminderConfigModel]:
        pass
