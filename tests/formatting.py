import pytest
from pytest_assume.plugin import assume

from study_reminder.helpers.i18n import get_locale
from study_reminder.helpers.recurrence import format_days


@pytest.mark.parametrize(
    "days, locale, expected",
    [
        pytest.param(
            [1, 3, 5],
            "es",
            "Lunes, Miércoles y Viernes",
            id="es_three_days",
        ),
        pytest.param(
            [5, 1],
            "en",
            "Monday and Friday",
            id="en_unsorted",
        ),
        pytest.param(
            [0],
            "es",
            "Domingo",
            id="es_single_day",
        ),
        pytest.param(
            [6, 6, 0, 9, -1],
            "en",
            "Sunday and Saturday",
            id="en_duplicates_and_out_of_range",
        ),
        pytest.param(
            [],
            "en",
            "No days selected",
            id="en_empty",
        ),
        pytest.param(
            None,
            "es",
            "Ningún día seleccionado",
            id="es_none",
        ),
        pytest.param(
            [2, 4],
            "es-CO",
            "Martes y Jueves",
            id="region_suffix",
        ),
        pytest.param(
            [2, 4],
            "xx",
            "Tuesday and Thursday",
            id="unknown_locale",
        ),
    ],
)
def test_format_days(
    days: list[int] | None,
    locale: str,
    expected: str,
) -> None:
    """
    Test weekdays are formatted for humans, in the requested language.
    """
    assume(format_days(days, locale) == expected)


def test_format_days_default_locale() -> None:
    """
    Test Spanish is the default language.
    """
    assume(format_days([1, 3, 5]) == "Lunes, Miércoles y Viernes")


def test_get_locale() -> None:
    """
    Test language codes are resolved, English being the fallback.
    """
    assume(get_locale("es").short_code == "es")
    assume(get_locale("ES_mx").short_code == "es")
    assume(get_locale("en-GB").short_code == "en")
    assume(get_locale("fr").short_code == "en")
    assume(get_locale(None).short_code == "en")
