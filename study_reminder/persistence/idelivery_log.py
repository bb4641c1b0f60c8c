from abc import ABC, abstractmethod
from datetime import date

from study_reminder.helpers.monitoring import start_as_current_span
from study_reminder.models.delivery import DeliveryLogEntryModel, DeliveryStatusEnum
from study_reminder.models.readiness import ReadinessEnum


class IDeliveryLog(ABC):
    """
    Append-only record of delivery attempts.

    A `sent` entry for a reminder and a day is the only de-duplication signal. Claims are short-lived reservations taken before calling the provider, they close the gap between the check and the write.
    """

    @abstractmethod
    @start_as_current_span("delivery_log_readiness")
    async def readiness(self) -> ReadinessEnum:
        pass

    @abstractmethod
    @start_as_current_span("delivery_log_was_sent_today")
    async def was_sent_today(self, reminder_id: str, day: date) -> bool:
        pass

    @abstractmethod
    @start_as_current_span("delivery_log_claim")
    async def claim(self, reminder_id: str, day: date, ttl_sec: int) -> bool:
        """
        Reserve the delivery of a reminder for a day.

        Returns `True` only for the first caller, until the claim expires or is released.
        """
        pass

    @abstractmethod
    @start_as_current_span("delivery_log_release")
    async def release(self, reminder_id: str, day: date) -> bool:
        pass

    @abstractmethod
    @start_as_current_span("delivery_log_record")
    async def record(  # noqa: PLR0913
        self,
        reminder_id: str,
        owner_id: str,
        day: date,
        status: DeliveryStatusEnum,
        message_id: str | None = None,
        error: str | None = None,
    ) -> bool:
        pass

    @abstractmethod
    @start_as_current_span("delivery_log_entries")
    async def entries(self, reminder_id: str) -> list[DeliveryLogEntryModel]:
        pass

    def _claim_key(self, reminder_id: str, day: date) -> str:
        return f"{self.__class__.__name__}-claim-{reminder_id}-{day.isoformat()}"

    def _sent_key(self, reminder_id: str, day: date) -> str:
        return f"{self.__class__.__name__}-sent-{reminder_id}-{day.isoformat()}"

    def _entries_key(self, reminder_id: str) -> str:
        return f"{self.__class__.__name__}-entries-{reminder_id}"
