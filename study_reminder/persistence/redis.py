import hashlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date
from uuid import uuid4

from opentelemetry.instrumentation.redis import RedisInstrumentor
from pydantic import ValidationError
from redis.asyncio import Connection, ConnectionPool, Redis, SSLConnection
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import (
    BusyLoadingError,
    ConnectionError as RedisConnectionError,
    RedisError,
)

from study_reminder.helpers.cache import lru_acache
from study_reminder.helpers.config_models.delivery_log import RedisModel
from study_reminder.helpers.logging import logger
from study_reminder.models.delivery import DeliveryLogEntryModel, DeliveryStatusEnum
from study_reminder.models.readiness import ReadinessEnum
from study_reminder.persistence.idelivery_log import IDeliveryLog

# Instrument redis
RedisInstrumentor().instrument()


class RedisDeliveryLog(IDeliveryLog):
    """
    Delivery log in Redis.

    Entries are appended to a list per reminder. A `sent` entry also sets a marker key for its day, which is what `was_sent_today` reads. Claims use `SET NX`, which is atomic across scheduler instances.
    """

    _config: RedisModel

    def __init__(self, config: RedisModel):
        self._config = config

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the Redis log.

        This will validate the ACID properties of the database: Create, Read, Update, Delete.
        """
        test_name = str(uuid4())
        test_value = "test"
        try:
            async with self._use_client() as client:
                # Test the item does not exist
                assert await client.get(test_name) is None
                # Create a new item
                await client.set(test_name, test_value)
                # Test the item is the same
                assert (await client.get(test_name)).decode() == test_value
                # Delete the item
                await client.delete(test_name)
                # Test the item does not exist
                assert await client.get(test_name) is None
            return ReadinessEnum.OK
        except AssertionError:
            logger.exception("Readiness test failed")
        except RedisError:
            logger.exception("Error requesting Redis")
        except Exception:
            logger.exception("Unknown error while checking Redis readiness")
        return ReadinessEnum.FAIL

    async def was_sent_today(self, reminder_id: str, day: date) -> bool:
        """
        Check if a `sent` entry exists for the reminder and the day.

        If Redis is not reachable, return `False`, the claim still protects from a duplicate.
        """
        sha_key = self._key_to_hash(self._sent_key(reminder_id, day))
        try:
            async with self._use_client() as client:
                return bool(await client.exists(sha_key))
        except RedisError:
            logger.exception("Error checking delivery log for %s", reminder_id)
        return False

    async def claim(self, reminder_id: str, day: date, ttl_sec: int) -> bool:
        """
        Reserve the delivery with `SET NX`.

        If Redis is not reachable, return `False`, nothing is sent rather than risking a duplicate.
        """
        # Redis rejects a null expiry, such a claim would be stale right away
        if ttl_sec <= 0:
            return True
        sha_key = self._key_to_hash(self._claim_key(reminder_id, day))
        try:
            async with self._use_client() as client:
                res = await client.set(
                    ex=ttl_sec,
                    name=sha_key,
                    nx=True,
                    value="1",
                )
        except RedisError:
            logger.exception("Error claiming %s", reminder_id)
            return False
        return bool(res)

    async def release(self, reminder_id: str, day: date) -> bool:
        sha_key = self._key_to_hash(self._claim_key(reminder_id, day))
        try:
            async with self._use_client() as client:
                await client.delete(sha_key)
        except RedisError:
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
        retention_sec = self._config.retention_day * 24 * 60 * 60
        entries_key = self._key_to_hash(self._entries_key(reminder_id))
        try:
            async with self._use_client() as client:
                async with client.pipeline(transaction=True) as pipe:
                    pipe.rpush(entries_key, entry.model_dump_json())
                    pipe.expire(entries_key, retention_sec)
                    if status == DeliveryStatusEnum.SENT:
                        pipe.set(
                            ex=retention_sec,
                            name=self._key_to_hash(self._sent_key(reminder_id, day)),
                            value=entry.sent_at.isoformat(),
                        )
                    await pipe.execute()
        except RedisError:
            logger.exception("Error recording delivery for %s", reminder_id)
            return False
        return True

    async def entries(self, reminder_id: str) -> list[DeliveryLogEntryModel]:
        entries_key = self._key_to_hash(self._entries_key(reminder_id))
        async with self._use_client() as client:
            raws = await client.lrange(entries_key, 0, -1)
        res: list[DeliveryLogEntryModel] = []
        for raw in raws:
            try:
                res.append(DeliveryLogEntryModel.model_validate_json(raw))
            except ValidationError as e:
                logger.debug("Parsing error: %s", e.errors())
        return res

    @lru_acache()
    async def _use_connection_pool(self) -> ConnectionPool:
        """
        Generate the Redis connection pool.
        """
        logger.info(
            "Using Redis delivery log %s:%s", self._config.host, self._config.port
        )

        return ConnectionPool(
            # Database location
            db=self._config.database,
            # Reliability
            health_check_interval=10,  # Check the health of the connection every 10 secs
            retry_on_error=[BusyLoadingError, RedisConnectionError],
            retry_on_timeout=True,
            retry=Retry(backoff=ExponentialBackoff(), retries=3),
            socket_connect_timeout=5,  # Give the system sufficient time to connect even under higher CPU conditions
            socket_timeout=1,  # Respond quickly or abort
            # Deployment
            connection_class=SSLConnection if self._config.ssl else Connection,
            host=self._config.host,
            port=self._config.port,
            # Authentication
            password=self._config.password.get_secret_value()
            if self._config.password
            else None,
        )

    @asynccontextmanager
    async def _use_client(self) -> AsyncGenerator[Redis]:
        """
        Return a Redis connection.
        """
        async with Redis(
            connection_pool=await self._use_connection_pool(),
        ) as client:
            yield client

    @staticmethod
    def _key_to_hash(key: str) -> bytes:
        """
        Transform the key into a hash.

        SHA-256 lower the collision probability. Plus, it reduce the key size, which is useful for memory usage.
        """
        return hashlib.sha256(key.encode(), usedforsecurity=False).digest()
