import asyncio
import json
from datetime import UTC, datetime
from os import environ, path
from tempfile import mkdtemp
from uuid import uuid4

# Tests run on the in-memory store and a throwaway delivery log, whatever the local config file says
environ["CONFIG_JSON"] = json.dumps(
    {
        "delivery_log": {
            "sqlite": {
                "path": path.join(mkdtemp(), "study-reminder.db"),
            },
        },
    }
)

import pytest

from study_reminder.helpers.config_models.scheduler import SchedulerModel
from study_reminder.helpers.scheduler import ReminderScheduler
from study_reminder.models.delivery import DeliveryResultModel
from study_reminder.models.owner import OwnerModel
from study_reminder.models.readiness import ReadinessEnum
from study_reminder.models.reminder import ReminderConfigModel
from study_reminder.persistence.idelivery import IDelivery
from study_reminder.persistence.memory import MemoryDeliveryLog, MemoryStore

# Monday, June 3rd 2024
MONDAY_9AM = datetime(2024, 6, 3, 9, 0, tzinfo=UTC)


class DeliveryMock(IDelivery):
    """
    Delivery provider recording its calls.

    Each send waits `delay_sec`, so concurrent passes actually overlap.
    """

    delay_sec: float
    error: str | None
    exception: Exception | None
    push_exception: Exception | None
    pushes: list[tuple[str, str]]
    readiness_status: ReadinessEnum
    sends: list[tuple[str, str, str]]

    def __init__(self) -> None:
        self.delay_sec = 0
        self.error = None
        self.exception = None
        self.push_exception = None
        self.pushes = []
        self.readiness_status = ReadinessEnum.OK
        self.sends = []

    async def readiness(self) -> ReadinessEnum:
        return self.readiness_status

    async def send(
        self,
        email: str,
        display_name: str,
        language: str,
    ) -> DeliveryResultModel:
        # Record the attempt first, timeouts are attempts too
        self.sends.append((email, display_name, language))
        await asyncio.sleep(self.delay_sec)
        if self.exception:
            raise self.exception
        if self.error:
            return DeliveryResultModel(
                error=self.error,
                success=False,
            )
        return DeliveryResultModel(
            message_id=str(uuid4()),
            success=True,
        )

    async def push(self, owner_id: str, language: str) -> bool:
        self.pushes.append((owner_id, language))
        if self.push_exception:
            raise self.push_exception
        return True


@pytest.fixture
def random_id() -> str:
    return str(uuid4())


@pytest.fixture
def owner(random_id: str) -> OwnerModel:
    return OwnerModel(
        display_name="Ada",
        email=f"{random_id}@example.com",
        id=random_id,
        language="en",
        timezone="UTC",
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def delivery() -> DeliveryMock:
    return DeliveryMock()


@pytest.fixture
def delivery_log() -> MemoryDeliveryLog:
    return MemoryDeliveryLog()


@pytest.fixture
def scheduler_config() -> SchedulerModel:
    return SchedulerModel()


@pytest.fixture
def scheduler(
    delivery: DeliveryMock,
    delivery_log: MemoryDeliveryLog,
    scheduler_config: SchedulerModel,
    store: MemoryStore,
) -> ReminderScheduler:
    return ReminderScheduler(
        config=scheduler_config,
        delivery=delivery,
        delivery_log=delivery_log,
        directory=store,
        store=store,
    )


def reminder_for(owner: OwnerModel, **kwargs) -> ReminderConfigModel:
    """
    Build a daily reminder at 09:00 for the owner, fields can be overridden.
    """
    return ReminderConfigModel(
        **{
            "frequency": "daily",
            "id": str(uuid4()),
            "owner_id": owner.id,
            "preferred_time": "09:00",
            **kwargs,
        }
    )
