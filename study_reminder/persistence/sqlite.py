import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, timedelta

from aiosqlite import Connection, Error as SqliteError, connect as sqlite_connect
from opentelemetry.instrumentation.sqlite3 import SQLite3Instrumentor
from pydantic import ValidationError

from study_reminder.helpers.config_models.database import (
    SqliteModel as DatabaseSqliteModel,
)
from study_reminder.helpers.config_models.delivery_log import (
    SqliteModel as DeliveryLogSqliteModel,
)
from study_reminder.helpers.logging import logger
from study_reminder.models.delivery import DeliveryLogEntryModel, DeliveryStatusEnum
from study_reminder.models.owner import OwnerModel
from study_reminder.models.readiness import ReadinessEnum
from study_reminder.models.reminder import ReminderConfigModel
from study_reminder.persistence.idelivery_log import IDeliveryLog
from study_reminder.persistence.idirectory import IDirectory
from study_reminder.persistence.istore import IStore

# Instrument sqlite
SQLite3Instrumentor().instrument()


class _SqliteClient:
    _db_path: str
    _init_done: bool

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._init_done = False

        # Create folder if does not exist
        db_folder = os.path.dirname(self._db_path)
        if db_folder:
            os.makedirs(name=db_folder, exist_ok=True)

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the SQLite database.

        This checks if the database is reachable and can be queried.
        """
        try:
            async with self._use_db() as db:
                await db.execute("SELECT 1")
            return ReadinessEnum.OK
        except SqliteError:
            logger.exception("Error requesting SQLite")
        except Exception:
            logger.exception("Unknown error while checking SQLite readiness")
        return ReadinessEnum.FAIL

    async def _init_db(self, db: Connection) -> None:
        raise NotImplementedError

    @asynccontextmanager
    async def _use_db(self) -> AsyncGenerator[Connection]:
        """
        Generate the SQLite client and close it after use.
        """
        async with sqlite_connect(
            database=self._db_path,
        ) as client:
            if not self._init_done:
                await self._init_db(client)
                self._init_done = True
            yield client


class SqliteStore(_SqliteClient, IStore, IDirectory):
    """
    Reminders and owners stored as JSON documents in SQLite.

    Content is written by the account service, this class reads it. The `*_set` methods are there to seed a local database.
    """

    _config: DatabaseSqliteModel

    def __init__(self, config: DatabaseSqliteModel):
        super().__init__(config.full_path())
        logger.info(
            "Using SQLite store at %s with tables %s and %s",
            config.path,
            config.reminder_table,
            config.owner_table,
        )
        self._config = config

    async def reminder_list_enabled(self) -> list[ReminderConfigModel]:
        reminders: list[ReminderConfigModel] = []
        async with self._use_db() as db:
            cursor = await db.execute(
                f"SELECT data FROM {self._config.reminder_table} WHERE JSON_EXTRACT(data, '$.enabled') = 1 ORDER BY rowid"
            )
            rows = await cursor.fetchall()
        for row in rows:
            try:
                reminders.append(ReminderConfigModel.model_validate_json(row[0]))
            except ValidationError as e:
                logger.warning("Skipping unreadable reminder: %s", e.errors())
        logger.debug("Loaded %s enabled reminders", len(reminders))
        return reminders

    async def owner_get_by_ids(self, ids: list[str]) -> list[OwnerModel]:
        if not ids:
            return []
        owners: list[OwnerModel] = []
        placeholders = ", ".join("?" for _ in ids)
        async with self._use_db() as db:
            cursor = await db.execute(
                f"SELECT data FROM {self._config.owner_table} WHERE id IN ({placeholders})",
                tuple(ids),
            )
            rows = await cursor.fetchall()
        for row in rows:
            try:
                owners.append(OwnerModel.model_validate_json(row[0]))
            except ValidationError as e:
                logger.warning("Skipping unreadable owner: %s", e.errors())
        return owners

    async def reminder_set(self, reminder: ReminderConfigModel) -> None:
        async with self._use_db() as db:
            await db.execute(
                f"INSERT OR REPLACE INTO {self._config.reminder_table} VALUES (?, ?)",
                (
                    reminder.id,  # id
                    reminder.model_dump_json(),  # data
                ),
            )
            await db.commit()

    async def owner_set(self, owner: OwnerModel) -> None:
        async with self._use_db() as db:
            await db.execute(
                f"INSERT OR REPLACE INTO {self._config.owner_table} VALUES (?, ?)",
                (
                    owner.id,  # id
                    owner.model_dump_json(),  # data
                ),
            )
            await db.commit()

    async def _init_db(self, db: Connection) -> None:
        """
        Initialize the database.

        See: https://sqlite.org/cgi/src/doc/wal2/doc/wal2.md
        """
        logger.info("First connection, init store tables")
        # Optimize performance for concurrent writes
        await db.execute("PRAGMA journal_mode=WAL")
        # Create tables
        await db.execute(
            f"CREATE TABLE IF NOT EXISTS {self._config.reminder_table} (id TEXT PRIMARY KEY, data TEXT)"
        )
        await db.execute(
            f"CREATE TABLE IF NOT EXISTS {self._config.owner_table} (id TEXT PRIMARY KEY, data TEXT)"
        )
        # Create indexes
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS {self._config.reminder_table}_data_enabled ON {self._config.reminder_table} (JSON_EXTRACT(data, '$.enabled'))"
        )
        # Write changes to disk
        await db.commit()


class SqliteDeliveryLog(_SqliteClient, IDeliveryLog):
    """
    Delivery log in SQLite.

    Entries are only inserted, never updated. Claims use the `(reminder_id, day)` primary key, `INSERT OR IGNORE` makes the reservation atomic across processes sharing the file.
    """

    _config: DeliveryLogSqliteModel

    def __init__(self, config: DeliveryLogSqliteModel):
        super().__init__(config.full_path())
        logger.info(
            "Using SQLite delivery log at %s with table %s", config.path, config.table
        )
        self._config = config

    async def was_sent_today(self, reminder_id: str, day: date) -> bool:
        try:
            async with self._use_db() as db:
                cursor = await db.execute(
                    f"SELECT 1 FROM {self._config.table} WHERE reminder_id = ? AND day = ? AND status = ? LIMIT 1",
                    (
                        reminder_id,
                        day.isoformat(),
                        DeliveryStatusEnum.SENT.value,
                    ),
                )
                row = await cursor.fetchone()
        except SqliteError:
            logger.exception("Error checking delivery log for %s", reminder_id)
            return False
        return row is not None

    async def claim(self, reminder_id: str, day: date, ttl_sec: int) -> bool:
        now = datetime.now(UTC)
        try:
            async with self._use_db() as db:
                # Free a stale claim, then reserve, in the same transaction
                await db.execute(
                    f"DELETE FROM {self._config.claim_table} WHERE reminder_id = ? AND day = ? AND expires_at <= ?",
                    (
                        reminder_id,
                        day.isoformat(),
                        now.isoformat(),
                    ),
                )
                cursor = await db.execute(
                    f"INSERT OR IGNORE INTO {self._config.claim_table} VALUES (?, ?, ?)",
                    (
                        reminder_id,  # reminder_id
                        day.isoformat(),  # day
                        (now + timedelta(seconds=ttl_sec)).isoformat(),  # expires_at
                    ),
                )
                claimed = cursor.rowcount == 1
                await db.commit()
        except SqliteError:
            logger.exception("Error claiming %s", reminder_id)
            return False
        if not claimed:
            logger.debug("Claim for %s on %s already taken", reminder_id, day)
        return claimed

    async def release(self, reminder_id: str, day: date) -> bool:
        try:
            async with self._use_db() as db:
                await db.execute(
                    f"DELETE FROM {self._config.claim_table} WHERE reminder_id = ? AND day = ?",
                    (
                        reminder_id,
                        day.isoformat(),
                    ),
                )
                await db.commit()
        except SqliteError:
            logger.exception("Error releasing claim for %s", reminder_id)
            return False
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
        try:
            async with self._use_db() as db:
                await db.execute(
                    f"INSERT INTO {self._config.table} (reminder_id, owner_id, day, status, sent_at, external_message_id, error_message) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        entry.reminder_id,
                        entry.owner_id,
                        entry.day.isoformat(),
                        entry.status.value,
                        entry.sent_at.isoformat(),
                        entry.external_message_id,
                        entry.error_message,
                    ),
                )
                await db.commit()
        except SqliteError:
            logger.exception("Error recording delivery for %s", reminder_id)
            return False
        return True

    async def entries(self, reminder_id: str) -> list[DeliveryLogEntryModel]:
        async with self._use_db() as db:
            cursor = await db.execute(
                f"SELECT reminder_id, owner_id, day, status, sent_at, external_message_id, error_message FROM {self._config.table} WHERE reminder_id = ? ORDER BY id",
                (reminder_id,),
            )
            rows = await cursor.fetchall()
        return [
            DeliveryLogEntryModel(
                day=date.fromisoformat(row[2]),
                error_message=row[6],
                external_message_id=row[5],
                owner_id=row[1],
                reminder_id=row[0],
                sent_at=datetime.fromisoformat(row[4]),
                status=DeliveryStatusEnum(row[3]),
            )
            for row in rows
        ]

    async def _init_db(self, db: Connection) -> None:
        """
        Initialize the database.

        See: https://sqlite.org/cgi/src/doc/wal2/doc/wal2.md
        """
        logger.info("First connection, init delivery log tables")
        # Optimize performance for concurrent writes
        await db.execute("PRAGMA journal_mode=WAL")
        # Create tables
        await db.execute(
            f"CREATE TABLE IF NOT EXISTS {self._config.table} (id INTEGER PRIMARY KEY AUTOINCREMENT, reminder_id TEXT NOT NULL, owner_id TEXT NOT NULL, day TEXT NOT NULL, status TEXT NOT NULL, sent_at TEXT NOT NULL, external_message_id TEXT, error_message TEXT)"
        )
        await db.execute(
            f"CREATE TABLE IF NOT EXISTS {self._config.claim_table} (reminder_id TEXT NOT NULL, day TEXT NOT NULL, expires_at TEXT NOT NULL, PRIMARY KEY (reminder_id, day))"
        )
        # Create indexes
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS {self._config.table}_reminder_day_status ON {self._config.table} (reminder_id, day, status)"
        )
        # Write changes to disk
        await db.commit()
