import asyncio
import time
from datetime import UTC, datetime

from study_reminder.helpers.cache import get_scheduler
from study_reminder.helpers.config_models.scheduler import SchedulerModel
from study_reminder.helpers.logging import logger
from study_reminder.helpers.monitoring import (
    SpanAttributeEnum,
    counter_add,
    gauge_set,
    pass_latency,
    reminder_failed,
    reminder_sent,
    reminder_skipped,
    start_as_current_span,
)
from study_reminder.helpers.recurrence import (
    is_within_delivery_window,
    occurrence_day,
    should_fire_today,
    validate,
)
from study_reminder.models.delivery import DeliveryResultModel, DeliveryStatusEnum
from study_reminder.models.owner import OwnerModel
from study_reminder.models.readiness import ReadinessModel
from study_reminder.models.reminder import FrequencyEnum, ReminderConfigModel
from study_reminder.models.stats import (
    BatchStatsModel,
    FrequencyCountModel,
    HealthModel,
    StatsSnapshotModel,
)
from study_reminder.persistence.idelivery import IDelivery
from study_reminder.persistence.idelivery_log import IDeliveryLog
from study_reminder.persistence.idirectory import IDirectory
from study_reminder.persistence.istore import IStore


class ReminderScheduler:
    """
    Decide which reminders are due and deliver them, once per occurrence.

    A pass is meant to be triggered periodically, at least once per delivery window. Passes never overlap in the same process: a pass started while another one runs returns empty stats immediately.
    """

    _config: SchedulerModel
    _delivery: IDelivery
    _delivery_log: IDeliveryLog
    _directory: IDirectory
    _lock: asyncio.Lock
    _store: IStore

    def __init__(  # noqa: PLR0913
        self,
        store: IStore,
        directory: IDirectory,
        delivery: IDelivery,
        delivery_log: IDeliveryLog,
        config: SchedulerModel,
    ):
        self._config = config
        self._delivery = delivery
        self._delivery_log = delivery_log
        self._directory = directory
        self._lock = asyncio.Lock()
        self._store = store

    @start_as_current_span("scheduler_run_pass")
    async def run_pass(self, now: datetime | None = None) -> BatchStatsModel:
        """
        Process all the enabled reminders and deliver the due ones.

        Errors of a single reminder are counted and reported in the stats, they do not stop the pass. If reminders or owners cannot be loaded, the pass is aborted and the stats only contain the error.
        """
        # Skip, do not queue, if a pass is already running
        if self._lock.locked():
            logger.warning("Scheduler already running, skipping this pass")
            return BatchStatsModel()

        async with self._lock:
            return await self._run_pass(now or datetime.now(UTC))

    @start_as_current_span("scheduler_get_stats")
    async def get_stats(self, now: datetime | None = None) -> StatsSnapshotModel:
        """
        Count the enabled reminders and the ones due right now.

        Read-only, neither the delivery log nor the provider are used.
        """
        now = now or datetime.now(UTC)
        reminders, owners = await self._load()

        due_right_now = 0
        for reminder in reminders:
            owner = owners.get(reminder.owner_id)
            timezone = owner.timezone if owner else None
            # Delivery window check includes the day check
            if is_within_delivery_window(
                config=reminder,
                default_time=self._config.default_time,
                now=now,
                timezone=timezone,
                window_min=self._config.window_min,
            ):
                due_right_now += 1

        return StatsSnapshotModel(
            by_frequency=FrequencyCountModel(
                custom=sum(1 for r in reminders if r.frequency == FrequencyEnum.CUSTOM),
                daily=sum(1 for r in reminders if r.frequency == FrequencyEnum.DAILY),
                weekly=sum(1 for r in reminders if r.frequency == FrequencyEnum.WEEKLY),
            ),
            due_right_now=due_right_now,
            total_active=len(reminders),
        )

    def health(self) -> HealthModel:
        """
        Check if the scheduler is running.

        No dependency is tested.
        """
        return HealthModel()

    @start_as_current_span("scheduler_readiness")
    async def readiness(self) -> ReadinessModel:
        """
        Check if the dependencies are ready.

        Services tested are: store, directory, delivery, delivery log.
        """
        # Check all components in parallel
        (
            store_check,
            directory_check,
            delivery_check,
            delivery_log_check,
        ) = await asyncio.gather(
            self._store.readiness(),
            self._directory.readiness(),
            self._delivery.readiness(),
            self._delivery_log.readiness(),
        )
        return ReadinessModel.from_checks(
            {
                "store": store_check,
                "directory": directory_check,
                "delivery": delivery_check,
                "delivery_log": delivery_log_check,
            }
        )

    async def _run_pass(self, now: datetime) -> BatchStatsModel:
        logger.info("Starting reminder pass")
        start = time.monotonic()
        stats = BatchStatsModel()

        try:
            reminders, owners = await self._load()
            logger.info("Found %s active reminders", len(reminders))

            # Jobs run in load order, at most "concurrency" at the same time
            async with get_scheduler(limit=self._config.concurrency) as scheduler:
                jobs = [
                    await scheduler.spawn(
                        self._process(
                            now=now,
                            owner=owners.get(reminder.owner_id),
                            reminder=reminder,
                            stats=stats,
                        )
                    )
                    for reminder in reminders
                ]
                for job in jobs:
                    await job.wait()

        except Exception as e:
            logger.exception("Fatal error in reminder pass")
            stats = BatchStatsModel(errors=[f"Fatal error: {e}"])

        gauge_set(pass_latency, time.monotonic() - start)
        logger.info(
            "Reminder pass done, processed %s, sent %s, skipped %s, failed %s",
            stats.processed,
            stats.sent,
            stats.skipped,
            stats.failed,
        )
        for error in stats.errors:
            logger.warning("Pass error: %s", error)
        return stats

    async def _load(
        self,
    ) -> tuple[list[ReminderConfigModel], dict[str, OwnerModel]]:
        """
        Load the enabled reminders and their owners, in one batch.
        """
        reminders = [
            reminder
            for reminder in await self._store.reminder_list_enabled()
            if reminder.enabled
        ]
        owner_ids = list(dict.fromkeys(reminder.owner_id for reminder in reminders))
        owners = await self._directory.owner_get_by_ids(owner_ids) if owner_ids else []
        return reminders, {owner.id: owner for owner in owners}

    async def _process(  # noqa: PLR0911
        self,
        now: datetime,
        owner: OwnerModel | None,
        reminder: ReminderConfigModel,
        stats: BatchStatsModel,
    ) -> None:
        """
        Evaluate one reminder and deliver it if due.

        Run in its own job, so attributes bound to the logging context stay local to the reminder.
        """
        stats.processed += 1
        SpanAttributeEnum.REMINDER_ID.attribute(reminder.id)
        SpanAttributeEnum.OWNER_ID.attribute(reminder.owner_id)
        if reminder.frequency:
            SpanAttributeEnum.REMINDER_FREQUENCY.attribute(reminder.frequency)

        claimed_day = None
        try:
            if not owner:
                logger.warning(
                    "Owner %s not found, skipping reminder %s",
                    reminder.owner_id,
                    reminder.id,
                )
                self._skip(stats)
                return

            validation = validate(reminder)
            if not validation.valid:
                logger.warning(
                    "Invalid config for reminder %s: %s",
                    reminder.id,
                    validation.errors,
                )
                self._skip(stats)
                stats.errors.append(
                    f"Reminder {reminder.id}: {', '.join(validation.errors)}"
                )
                return

            if not should_fire_today(
                config=reminder,
                now=now,
                timezone=owner.timezone,
            ):
                logger.debug("Skipping reminder %s, not scheduled today", reminder.id)
                self._skip(stats)
                return

            if not is_within_delivery_window(
                config=reminder,
                default_time=self._config.default_time,
                now=now,
                timezone=owner.timezone,
                window_min=self._config.window_min,
            ):
                logger.debug("Skipping reminder %s, not the right time", reminder.id)
                self._skip(stats)
                return

            day = occurrence_day(owner.timezone, now)
            if await self._delivery_log.was_sent_today(reminder.id, day):
                logger.info("Reminder %s already sent today, skipping", reminder.id)
                self._skip(stats)
                return

            # Reserve the occurrence, another pass or instance may be delivering it
            if not await self._delivery_log.claim(
                reminder.id, day, self._config.claim_ttl_sec
            ):
                logger.info("Reminder %s claimed by another pass, skipping", reminder.id)
                self._skip(stats)
                return
            claimed_day = day

            language = owner.language or self._config.default_language
            logger.info(
                "Sending reminder %s to %s (%s)",
                reminder.id,
                owner.email,
                owner.timezone or "UTC",
            )
            result = await self._send(owner, language)

            if result.success:
                if not await self._delivery_log.record(
                    day=day,
                    message_id=result.message_id,
                    owner_id=owner.id,
                    reminder_id=reminder.id,
                    status=DeliveryStatusEnum.SENT,
                ):
                    logger.warning(
                        "Reminder %s sent but not logged, only the claim prevents a duplicate",
                        reminder.id,
                    )
                # Keep the claim, it expires by itself
                claimed_day = None
                await self._push(owner, language)
                stats.sent += 1
                counter_add(reminder_sent)
                logger.info("Reminder %s sent", reminder.id)

            else:
                await self._delivery_log.record(
                    day=day,
                    error=result.error,
                    owner_id=owner.id,
                    reminder_id=reminder.id,
                    status=DeliveryStatusEnum.FAILED,
                )
                stats.failed += 1
                stats.errors.append(f"Reminder {reminder.id}: {result.error}")
                counter_add(reminder_failed)
                logger.error("Failed to send reminder %s: %s", reminder.id, result.error)

        except Exception as e:
            stats.failed += 1
            stats.errors.append(f"Error processing reminder {reminder.id}: {e}")
            counter_add(reminder_failed)
            logger.exception("Error processing reminder %s", reminder.id)

        finally:
            # Free the occurrence so the next pass can retry
            if claimed_day is not None:
                await self._delivery_log.release(reminder.id, claimed_day)

    async def _send(self, owner: OwnerModel, language: str) -> DeliveryResultModel:
        """
        Call the provider, with a timeout.

        Timeouts and provider errors are returned as failed results.
        """
        timeout = self._config.delivery_timeout_sec
        try:
            return await asyncio.wait_for(
                self._delivery.send(
                    display_name=owner.display_name
                    or self._config.default_display_name,
                    email=owner.email,
                    language=language,
                ),
                timeout=timeout,
            )
        except TimeoutError:
            logger.warning("Delivery to %s timed out after %ss", owner.email, timeout)
            return DeliveryResultModel(
                error=f"Delivery timed out after {timeout}s",
                success=False,
            )
        except Exception as e:
            logger.exception("Error sending reminder to %s", owner.email)
            return DeliveryResultModel(
                error=str(e) or e.__class__.__name__,
                success=False,
            )

    async def _push(self, owner: OwnerModel, language: str) -> None:
        """
        Send the secondary notification.

        Best-effort, the outcome is only logged.
        """
        try:
            if not await asyncio.wait_for(
                self._delivery.push(owner.id, language),
                timeout=self._config.delivery_timeout_sec,
            ):
                logger.warning("Push notification failed for %s", owner.id)
        except Exception:
            logger.exception("Error sending push notification to %s", owner.id)

    @staticmethod
    def _skip(stats: BatchStatsModel) -> None:
        stats.skipped += 1
        counter_add(reminder_skipped)
