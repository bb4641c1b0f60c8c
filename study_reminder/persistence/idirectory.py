from abc import ABC, abstractmethod

from study_reminder.helpers.monitoring import start_as_current_span
from study_reminder.models.owner import OwnerModel
from study_reminder.models.readiness import ReadinessEnum


class IDirectory(ABC):
    @abstractmethod
    @start_as_current_span("directory_readiness")
    async def readiness(self) -> ReadinessEnum:
        pass

    @abstractmethod
    @start_as_current_span("directory_owner_get_by_ids")
    async def owner_get_by_ids(self, ids: list[str]) -> list[OwnerModel]:
        pass
