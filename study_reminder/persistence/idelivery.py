from abc import ABC, abstractmethod

from study_reminder.helpers.monitoring import start_as_current_span
from study_reminder.models.delivery import DeliveryResultModel
from study_reminder.models.readiness import ReadinessEnum


class IDelivery(ABC):
    @abstractmethod
    @start_as_current_span("delivery_readiness")
    async def readiness(self) -> ReadinessEnum:
        pass

    @abstractmethod
    @start_as_current_span("delivery_send")
    async def send(
        self,
        email: str,
        display_name: str,
        language: str,
    ) -> DeliveryResultModel:
        pass

    @abstractmethod
    @start_as_current_span("delivery_push")
    async def push(self, owner_id: str, language: str) -> bool:
        """
        Send the secondary notification, best-effort.
        """
        pass
