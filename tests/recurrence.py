from datetime import UTC, date, datetime, timedelta

import pytest
from pytest_assume.plugin import assume

from study_reminder.helpers.recurrence import (
    is_within_delivery_window,
    local_weekday,
    next_fire_date,
    occurrence_day,
    should_fire_today,
    validate,
)
from study_reminder.models.reminder import ReminderConfigModel
from tests.conftest import MONDAY_9AM

BOGOTA = "America/Bogota"  # UTC-5, no daylight saving


def _config(**kwargs) -> ReminderConfigModel:
    return ReminderConfigModel(
        **{
            "id": "reminder",
            "owner_id": "owner",
            **kwargs,
        }
    )


@pytest.mark.parametrize(
    "config, errors",
    [
        pytest.param(
            _config(frequency="daily"),
            [],
            id="daily",
        ),
        pytest.param(
            _config(frequency="weekly", preferred_time="23:59"),
            [],
            id="weekly",
        ),
        pytest.param(
            _config(custom_days=[0, 6], frequency="custom"),
            [],
            id="custom",
        ),
        pytest.param(
            _config(),
            ["Frequency is required"],
            id="missing_frequency",
        ),
        pytest.param(
            _config(frequency="monthly"),
            ["Invalid frequency"],
            id="unknown_frequency",
        ),
        pytest.param(
            _config(custom_days=[], frequency="custom"),
            ["Custom frequency requires at least one day selected"],
            id="custom_without_days",
        ),
        pytest.param(
            _config(custom_days=[1, 7, 8], frequency="custom"),
            ["Invalid days: 7, 8 (must be 0-6)"],
            id="custom_days_out_of_range",
        ),
        pytest.param(
            _config(frequency="daily", preferred_time="9:00"),
            ["Invalid time format (expected HH:MM in 24h format)"],
            id="time_without_padding",
        ),
        pytest.param(
            _config(frequency="daily", preferred_time="24:00"),
            ["Invalid time format (expected HH:MM in 24h format)"],
            id="time_out_of_range",
        ),
        pytest.param(
            _config(custom_days=[], frequency="custom", preferred_time="noon"),
            [
                "Custom frequency requires at least one day selected",
                "Invalid time format (expected HH:MM in 24h format)",
            ],
            id="all_errors",
        ),
    ],
)
def test_validate(
    config: ReminderConfigModel,
    errors: list[str],
) -> None:
    """
    Test the validation reports all the violations of a config.
    """
    res = validate(config)
    assume(res.errors == errors)
    assume(res.valid == (not errors))


def test_should_fire_today_frequencies() -> None:
    """
    Test the day rules of each frequency.

    Steps:
    1. Daily fires every day of the week
    2. Weekly only fires on Monday
    3. Custom fires on the selected days
    4. Disabled and malformed configs never fire
    """
    week = [MONDAY_9AM + timedelta(days=i) for i in range(7)]

    # Daily
    daily = _config(frequency="daily")
    assume(all(should_fire_today(daily, "UTC", now) for now in week))

    # Weekly, Monday only
    weekly = _config(frequency="weekly")
    assume(
        [should_fire_today(weekly, "UTC", now) for now in week]
        == [True, False, False, False, False, False, False]
    )

    # Custom, Sunday and Wednesday
    custom = _config(custom_days=[0, 3], frequency="custom")
    assume(
        {local_weekday(now) for now in week if should_fire_today(custom, "UTC", now)}
        == {0, 3}
    )

    # Never fire
    assume(not should_fire_today(_config(enabled=False, frequency="daily"), now=week[0]))
    assume(not should_fire_today(_config(custom_days=[], frequency="custom"), now=week[0]))
    assume(not should_fire_today(_config(frequency="monthly"), now=week[0]))
    assume(not should_fire_today(_config(), now=week[0]))


def test_owner_timezone_scenario() -> None:
    """
    Test a Saturday evening reminder of an owner in Bogota.

    Saturday 21:00 in Bogota is Sunday 02:00 UTC, the weekday must be the local one.
    """
    config = _config(custom_days=[6], frequency="custom", preferred_time="21:00")

    # Local Saturday 21:00
    saturday_9pm = datetime(2024, 6, 2, 2, 0, tzinfo=UTC)
    assume(should_fire_today(config, BOGOTA, saturday_9pm))
    assume(is_within_delivery_window(config, BOGOTA, saturday_9pm))

    # Local Saturday 23:00
    saturday_11pm = datetime(2024, 6, 2, 4, 0, tzinfo=UTC)
    assume(should_fire_today(config, BOGOTA, saturday_11pm))
    assume(not is_within_delivery_window(config, BOGOTA, saturday_11pm))

    # Local Friday 21:00
    friday_9pm = datetime(2024, 6, 1, 2, 0, tzinfo=UTC)
    assume(not should_fire_today(config, BOGOTA, friday_9pm))
    assume(not is_within_delivery_window(config, BOGOTA, friday_9pm))

    # Occurrence is the local Saturday, not the UTC Sunday
    assume(occurrence_day(BOGOTA, saturday_9pm) == date(2024, 6, 1))


@pytest.mark.parametrize(
    "minute, expected",
    [pytest.param(minute, minute < 5, id=f"09:{minute:02d}") for minute in range(10)],
)
def test_delivery_window(minute: int, expected: bool) -> None:
    """
    Test the window lasts five minutes from the preferred time.
    """
    config = _config(frequency="daily", preferred_time="09:00")
    now = MONDAY_9AM.replace(minute=minute)
    assume(is_within_delivery_window(config, "UTC", now) == expected)


def test_delivery_window_bounds() -> None:
    """
    Test the window edges.

    Steps:
    1. Window does not cross the hour
    2. Window is not opened before the preferred time
    3. Missing time uses the default one
    4. Malformed time never matches
    5. Window length is configurable
    """
    # Does not cross the hour
    late = _config(frequency="daily", preferred_time="08:58")
    assume(is_within_delivery_window(late, "UTC", MONDAY_9AM.replace(hour=8, minute=58)))
    assume(is_within_delivery_window(late, "UTC", MONDAY_9AM.replace(hour=8, minute=59)))
    assume(not is_within_delivery_window(late, "UTC", MONDAY_9AM))
    assume(not is_within_delivery_window(late, "UTC", MONDAY_9AM.replace(minute=2)))

    # Not before
    config = _config(frequency="daily", preferred_time="09:00")
    assume(
        not is_within_delivery_window(config, "UTC", MONDAY_9AM - timedelta(minutes=1))
    )

    # Default time
    no_time = _config(frequency="daily")
    assume(is_within_delivery_window(no_time, "UTC", MONDAY_9AM))
    assume(
        is_within_delivery_window(
            no_time, "UTC", MONDAY_9AM.replace(hour=7), default_time="07:00"
        )
    )

    # Malformed time
    malformed = _config(frequency="daily", preferred_time="9h")
    assume(not is_within_delivery_window(malformed, "UTC", MONDAY_9AM))

    # Window length
    assume(
        is_within_delivery_window(
            config, "UTC", MONDAY_9AM.replace(minute=9), window_min=10
        )
    )


def test_timezone_fallback() -> None:
    """
    Test missing, unknown timezones and naive datetimes are read as UTC.
    """
    config = _config(frequency="daily", preferred_time="09:00")
    naive = MONDAY_9AM.replace(tzinfo=None)

    assume(is_within_delivery_window(config, None, MONDAY_9AM))
    assume(is_within_delivery_window(config, "Mars/Olympus_Mons", MONDAY_9AM))
    assume(is_within_delivery_window(config, "UTC", naive))
    assume(occurrence_day("Mars/Olympus_Mons", MONDAY_9AM) == date(2024, 6, 3))


@pytest.mark.parametrize(
    "config, now, expected",
    [
        pytest.param(
            _config(frequency="daily", preferred_time="09:00"),
            MONDAY_9AM,
            datetime(2024, 6, 4, 9, 0, tzinfo=UTC),
            id="daily",
        ),
        pytest.param(
            _config(frequency="weekly", preferred_time="10:30"),
            MONDAY_9AM,
            datetime(2024, 6, 10, 10, 30, tzinfo=UTC),
            id="weekly_on_monday",
        ),
        pytest.param(
            _config(frequency="weekly"),
            MONDAY_9AM + timedelta(days=2),
            datetime(2024, 6, 10, 9, 0, tzinfo=UTC),
            id="weekly_on_wednesday",
        ),
        pytest.param(
            _config(custom_days=[1, 3, 5], frequency="custom", preferred_time="18:00"),
            MONDAY_9AM + timedelta(days=2),
            datetime(2024, 6, 7, 18, 0, tzinfo=UTC),
            id="custom_same_week",
        ),
        pytest.param(
            _config(custom_days=[1], frequency="custom", preferred_time="18:00"),
            MONDAY_9AM + timedelta(days=4),
            datetime(2024, 6, 10, 18, 0, tzinfo=UTC),
            id="custom_next_week",
        ),
        pytest.param(
            _config(custom_days=[3], frequency="custom", preferred_time="18:00"),
            MONDAY_9AM + timedelta(days=2),
            datetime(2024, 6, 12, 18, 0, tzinfo=UTC),
            id="custom_today_is_skipped",
        ),
    ],
)
def test_next_fire_date(
    config: ReminderConfigModel,
    now: datetime,
    expected: datetime,
) -> None:
    """
    Test the next occurrence is strictly after today.
    """
    assume(next_fire_date(config, "UTC", now) == expected)


def test_next_fire_date_local() -> None:
    """
    Test the next occurrence is computed and returned in the owner timezone.
    """
    config = _config(frequency="daily", preferred_time="21:00")
    # Saturday 23:00 in Bogota
    res = next_fire_date(config, BOGOTA, datetime(2024, 6, 2, 4, 0, tzinfo=UTC))

    assert res
    assume(res.date() == date(2024, 6, 2))
    assume((res.hour, res.minute) == (21, 0))
    assume(res.utcoffset() == timedelta(hours=-5))
    assume(res == datetime(2024, 6, 3, 2, 0, tzinfo=UTC))


def test_next_fire_date_never() -> None:
    """
    Test reminders that will never fire have no next occurrence.
    """
    assume(next_fire_date(_config(enabled=False, frequency="daily"), now=MONDAY_9AM) is None)
    assume(next_fire_date(_config(custom_days=[], frequency="custom"), now=MONDAY_9AM) is None)
    assume(next_fire_date(_config(custom_days=[9], frequency="custom"), now=MONDAY_9AM) is None)
    assume(next_fire_date(_config(frequency="monthly"), now=MONDAY_9AM) is None)
    assume(
        next_fire_date(
            _config(frequency="daily", preferred_time="25:00"), now=MONDAY_9AM
        )
        is None
    )
