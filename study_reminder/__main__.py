"""
Run the reminder scheduler once, then exit.

Meant to be called by an external timer (cron, container job) at least once per delivery window:

    python -m study_reminder          Run a pass and print its stats
    python -m study_reminder stats    Print the due reminders, without sending anything
    python -m study_reminder health   Print the liveness status
    python -m study_reminder ready    Print the readiness of the dependencies

Reports are printed as JSON on stdout, logs go to stderr.
"""

import argparse
import asyncio
import sys
from datetime import datetime

from pydantic import BaseModel

from study_reminder.helpers.config import CONFIG
from study_reminder.helpers.config_models.delivery_log import (
    ModeEnum as DeliveryLogModeEnum,
)
from study_reminder.helpers.logging import logger
from study_reminder.helpers.scheduler import ReminderScheduler
from study_reminder.models.readiness import ReadinessEnum, ReadinessModel
from study_reminder.models.stats import BatchStatsModel


def _scheduler() -> ReminderScheduler:
    return ReminderScheduler(
        config=CONFIG.scheduler,
        delivery=CONFIG.delivery.instance,
        delivery_log=CONFIG.delivery_log.instance,
        directory=CONFIG.database.directory,
        store=CONFIG.database.instance,
    )


async def _run(command: str, now: datetime | None) -> BaseModel:
    scheduler = _scheduler()
    if command == "stats":
        return await scheduler.get_stats(now)
    if command == "health":
        return scheduler.health()
    if command == "ready":
        return await scheduler.readiness()
    return await scheduler.run_pass(now)


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="study_reminder",
        description="Deliver the due study reminders.",
    )
    parser.add_argument(
        "command",
        choices=["pass", "stats", "health", "ready"],
        default="pass",
        nargs="?",
    )
    parser.add_argument(
        "--now",
        help="Evaluate the reminders at this ISO 8601 time instead of the wall clock, naive values are UTC",
        type=datetime.fromisoformat,
    )
    args = parser.parse_args()

    # Each run is a new process, a memory log would forget the deliveries of the previous runs
    if (
        args.command == "pass"
        and CONFIG.delivery_log.mode == DeliveryLogModeEnum.MEMORY
    ):
        parser.error(
            f'delivery_log.mode "{DeliveryLogModeEnum.MEMORY.value}" cannot be used for a pass, use "{DeliveryLogModeEnum.SQLITE.value}" or "{DeliveryLogModeEnum.REDIS.value}"'
        )

    logger.info("study-reminder v%s", CONFIG.version)
    res = asyncio.run(_run(args.command, args.now))
    print(res.model_dump_json(indent=2))  # noqa: T201

    # Exit code lets the timer flag unhealthy runs
    if isinstance(res, ReadinessModel) and res.status != ReadinessEnum.OK:
        return 1
    if isinstance(res, BatchStatsModel) and any(
        error.startswith("Fatal error") for error in res.errors
    ):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
