from pathlib import Path

import pytest
from pytest_assume.plugin import assume

from study_reminder.helpers.config_models.database import SqliteModel
from study_reminder.models.owner import OwnerModel
from study_reminder.models.readiness import ReadinessEnum
from study_reminder.persistence.memory import MemoryStore
from study_reminder.persistence.sqlite import SqliteStore
from tests.conftest import reminder_for


@pytest.mark.asyncio(loop_scope="session")
async def test_sqlite(
    owner: OwnerModel,
    tmp_path: Path,
) -> None:
    """
    Test reminders and owners are read back from SQLite.

    Steps:
    1. Create the database
    2. Seed reminders, one disabled, and the owner
    3. Check only enabled reminders are listed, in insertion order
    4. Check owners are found by id
    """
    store = SqliteStore(SqliteModel(path=str(tmp_path / "store.db")))
    assume(await store.readiness() == ReadinessEnum.OK)

    # Empty
    assume(await store.reminder_list_enabled() == [])
    assume(await store.owner_get_by_ids([]) == [])

    # Seed
    first = reminder_for(owner)
    disabled = reminder_for(owner, enabled=False)
    last = reminder_for(owner, custom_days=[1, 3], frequency="custom")
    for reminder in (first, disabled, last):
        await store.reminder_set(reminder)
    await store.owner_set(owner)

    # Reminders
    assume(await store.reminder_list_enabled() == [first, last])

    # Update
    await store.reminder_set(first.model_copy(update={"enabled": False}))
    assume(await store.reminder_list_enabled() == [last])

    # Owners
    assume(await store.owner_get_by_ids([owner.id, "unknown"]) == [owner])
    assume(await store.owner_get_by_ids(["unknown"]) == [])


@pytest.mark.asyncio(loop_scope="session")
async def test_memory(owner: OwnerModel) -> None:
    """
    Test the memory store lists enabled reminders and finds owners.
    """
    first = reminder_for(owner)
    disabled = reminder_for(owner, enabled=False)
    store = MemoryStore(
        owners=[owner],
        reminders=[first, disabled],
    )

    assume(await store.readiness() == ReadinessEnum.OK)
    assume(await store.reminder_list_enabled() == [first])
    assume(await store.owner_get_by_ids([owner.id, "unknown"]) == [owner])
