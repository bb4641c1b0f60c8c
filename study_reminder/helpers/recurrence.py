"""
Recurrence rules of study reminders.

Functions are pure: no I/O, the current time is injected with `now` (defaults to the wall clock). Weekdays are indexed from 0 (Sunday) to 6 (Saturday) and always computed in the owner timezone.
"""

import re
from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta

from study_reminder.helpers.i18n import get_locale
from study_reminder.helpers.logging import logger
from study_reminder.models.owner import resolve_tz
from study_reminder.models.reminder import (
    FrequencyEnum,
    ReminderConfigModel,
    ValidationResultModel,
)

DEFAULT_TIME = "09:00"
DEFAULT_WINDOW_MIN = 5
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
WEEKLY_ANCHOR_DAY = 1  # Monday, weekly reminders cannot pick another day


def validate(config: ReminderConfigModel) -> ValidationResultModel:
    """
    Check a reminder configuration.

    All the violations are reported, not only the first one.
    """
    errors: list[str] = []

    # Frequency
    if not config.frequency:
        errors.append("Frequency is required")
    elif config.frequency not in _frequencies():
        errors.append("Invalid frequency")

    # Days, only meaningful for custom frequency
    if config.frequency == FrequencyEnum.CUSTOM:
        if not config.custom_days:
            errors.append("Custom frequency requires at least one day selected")
        invalid_days = [day for day in config.custom_days or [] if not 0 <= day <= 6]  # noqa: PLR2004
        if invalid_days:
            errors.append(
                f"Invalid days: {', '.join(str(day) for day in invalid_days)} (must be 0-6)"
            )

    # Time, checked for every frequency
    if config.preferred_time and not TIME_PATTERN.match(config.preferred_time):
        errors.append("Invalid time format (expected HH:MM in 24h format)")

    return ValidationResultModel(
        errors=errors,
        valid=not errors,
    )


def should_fire_today(
    config: ReminderConfigModel,
    timezone: str | None = None,
    now: datetime | None = None,
) -> bool:
    """
    Check if the reminder is due today, in the owner timezone.
    """
    if not config.enabled:
        return False

    weekday = local_weekday(local_now(timezone, now))

    if config.frequency == FrequencyEnum.DAILY:
        return True

    if config.frequency == FrequencyEnum.WEEKLY:
        return weekday == WEEKLY_ANCHOR_DAY

    if config.frequency == FrequencyEnum.CUSTOM:
        if not config.custom_days:
            logger.warning(
                "Reminder %s has custom frequency but no days set", config.id
            )
            return False
        return weekday in config.custom_days

    return False


def is_within_delivery_window(
    config: ReminderConfigModel,
    timezone: str | None = None,
    now: datetime | None = None,
    window_min: int = DEFAULT_WINDOW_MIN,
    default_time: str = DEFAULT_TIME,
) -> bool:
    """
    Check if the reminder is due today and now is in its delivery window.

    The window starts at the preferred time and lasts `window_min` minutes. It never crosses the hour: with 08:58, only minutes 58 and 59 match.
    """
    if not should_fire_today(config, timezone, now):
        return False

    preferred = parse_time(config.preferred_time, default_time)
    if not preferred:
        return False
    preferred_hour, preferred_minute = preferred

    local = local_now(timezone, now)
    return (
        local.hour == preferred_hour
        and preferred_minute <= local.minute < preferred_minute + window_min
    )


def next_fire_date(
    config: ReminderConfigModel,
    timezone: str | None = None,
    now: datetime | None = None,
    default_time: str = DEFAULT_TIME,
) -> datetime | None:
    """
    Get the next occurrence of the reminder, after today.

    Returned datetime is in the owner timezone. Returns `None` if the reminder will never fire.
    """
    if not config.enabled:
        return None

    preferred = parse_time(config.preferred_time, default_time)
    if not preferred:
        return None

    local = local_now(timezone, now)
    weekday = local_weekday(local)

    if config.frequency == FrequencyEnum.DAILY:
        days_until = 1

    elif config.frequency == FrequencyEnum.WEEKLY:
        days_until = (WEEKLY_ANCHOR_DAY - weekday) % 7 or 7

    elif config.frequency == FrequencyEnum.CUSTOM:
        days = sorted(day for day in config.custom_days or [] if 0 <= day <= 6)  # noqa: PLR2004
        if not days:
            return None
        next_day = next((day for day in days if day > weekday), None)
        if next_day is not None:
            days_until = next_day - weekday
        else:
            # Wrap to the first day of next week
            days_until = 7 - weekday + days[0]

    else:
        return None

    tz = resolve_tz(timezone)
    target = datetime.combine(
        local.date() + timedelta(days=days_until),
        time(hour=preferred[0], minute=preferred[1]),
    )
    return tz.normalize(tz.localize(target))  # pyright: ignore


def format_days(days: Iterable[int] | None, locale: str = "es") -> str:
    """
    Format weekdays for humans, like "Lunes, Miércoles y Viernes".

    Days are sorted, duplicates and values out of 0-6 are dropped.
    """
    strings = get_locale(locale)
    names = [
        strings.day_names[day]
        for day in sorted({day for day in days or [] if 0 <= day <= 6})  # noqa: PLR2004
    ]

    if not names:
        return strings.no_days

    if len(names) == 1:
        return names[0]

    return f"{', '.join(names[:-1])} {strings.conjunction} {names[-1]}"


def parse_time(value: str | None, default: str = DEFAULT_TIME) -> tuple[int, int] | None:
    """
    Parse a "HH:MM" time.

    Empty values use the default. Returns `None` if the value is malformed.
    """
    match = TIME_PATTERN.match(value or default)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def local_now(timezone: str | None = None, now: datetime | None = None) -> datetime:
    """
    Convert now to the owner timezone.

    Naive datetimes are considered as UTC.
    """
    now = now or datetime.now(UTC)
    if not now.tzinfo:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(resolve_tz(timezone))


def local_weekday(value: datetime) -> int:
    """
    Weekday index, 0 is Sunday and 6 is Saturday.
    """
    return value.isoweekday() % 7


def occurrence_day(timezone: str | None = None, now: datetime | None = None) -> date:
    """
    Calendar day of the occurrence, in the owner timezone.

    Used as the de-duplication key of deliveries.
    """
    return local_now(timezone, now).date()


def _frequencies() -> set[str]:
    return {frequency.value for frequency in FrequencyEnum}
