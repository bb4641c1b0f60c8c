from datetime import UTC, date, datetime, timedelta

from study_reminder.helpers.logging import logger
from study_reminder.models.delivery import DeliveryLogEntryModel, DeliveryStatusEnum
from study_reminder.models.owner import OwnerModel
from study_reminder.models.readiness import ReadinessEnum
from study_reminder.models.reminder import ReminderConfigModel
from study_reminder.persistence.idelivery_log import IDeliveryLog
from study_reminder.persistence.idirectory import IDirectory
from study_reminder.persistence.istore import IStore


class MemoryStore(IStore, IDirectory):
    """
    In-memory reminders and owners.

    Content is lost on restart. Useful for local runs and tests, the real data is owned by the account service.
    """

    _owners: dict[str, OwnerModel]
    _reminders: dict[str, ReminderConfigModel]

    def __init__(
        self,
        reminders: list[ReminderConfigModel] | None = None,
        owners: list[OwnerModel] | None = None,
    ):
        self._owners = {owner.id: owner for owner in owners or []}
        self._reminders = {reminder.id: reminder for reminder in reminders or []}

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the memory store.
        """
        return ReadinessEnum.OK  # Always ready, it's memory :)

    async def reminder_list_enabled(self) -> list[ReminderConfigModel]:
        # Dict keeps insertion order, which is the load order
        return [reminder for reminder in self._reminders.values() if reminder.enabled]

    async def owner_get_by_ids(self, ids: list[str]) -> list[OwnerModel]:
        return [self._owners[owner_id] for owner_id in ids if owner_id in self._owners]

    def reminder_set(self, reminder: ReminderConfigModel) -> None:
        self._reminders[reminder.id] = reminder

    def owner_set(self, owner: OwnerModel) -> None:
        self._owners[owner.id] = owner


class MemoryDeliveryLog(IDeliveryLog):
    """
    In-memory delivery log.

    Claims are atomic within the event loop, as check and set happen without awaiting in between. No guarantee across processes.
    """

    _claims: dict[str, datetime]
    _entries: dict[str, list[DeliveryLogEntryModel]]
    _sent: set[str]

    def __init__(self):
        self._claims = {}
        self._entries = {}
        self._sent = set()

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the memory log.
        """
        return ReadinessEnum.OK

    async def was_sent_today(self, reminder_id: str, day: date) -> bool:
        return self._sent_key(reminder_id, day) in self._sent

    async def claim(self, reminder_id: str, day: date, ttl_sec: int) -> bool:
        key = self._claim_key(reminder_id, day)
        now = datetime.now(UTC)

        # Drop stale claims, they are free anyway
        for expired in [k for k, v in self._claims.items() if v <= now]:
            del self._claims[expired]

        if key in self._claims:
            logger.debug("Claim %s already taken", key)
            return False

        self._claims[key] = now + timedelta(seconds=ttl_sec)
        return True

    async def release(self, reminder_id: str, day: date) -> bool:
        self._claims.pop(self._claim_key(reminder_id, day), None)
        return True

    async def record(  # noqa: PLR0913
        self,
        reminder_id: str,
        owner_id: str,
        day: date,
        status: DeliveryStatusEnum,
        message_id: str | None = None,
        error: str | None = None,
    ) -> bool:
        entry = DeliveryLogEntryModel(
            day=day,
            error_message=error,
            external_message_id=message_id,
            owner_id=owner_id,
            reminder_id=reminder_id,
            status=status,
        )
        logger.debug("Recording delivery %s for %s", status.value, reminder_id)
        self._entries.setdefault(self._entries_key(reminder_id), []).append(entry)
        if status == DeliveryStatusEnum.SENT:
            self._sent.add(self._sent_key(reminder_id, day))
        return True

    async def entries(self, reminder_id: str) -> list[DeliveryLogEntryModel]:
        return list(self._entries.get(self._entries_key(reminder_id), []))
