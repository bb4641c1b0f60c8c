from pydantic import BaseModel


class LocaleModel(BaseModel, frozen=True):
    """
    Localized strings for a language.

    Weekday names start on Sunday, to match the 0-6 weekday index of reminders.
    """

    conjunction: str
    day_names: tuple[str, str, str, str, str, str, str]
    no_days: str
    push_body: str
    push_title: str
    reminder_message: str
    reminder_subject: str
    short_code: str


LOCALES: dict[str, LocaleModel] = {
    "en": LocaleModel(
        conjunction="and",
        day_names=(
            "Sunday",
            "Monday",
            "Tuesday",
            "Wednesday",
            "Thursday",
            "Friday",
            "Saturday",
        ),
        no_days="No days selected",
        push_body="Don't forget your study session!",
        push_title="Time to study",
        reminder_message="Hi {name}! This is your reminder to continue preparing for your certification: {url}",
        reminder_subject="Time to study for your certification!",
        short_code="en",
    ),
    "es": LocaleModel(
        conjunction="y",
        day_names=(
            "Domingo",
            "Lunes",
            "Martes",
            "Miércoles",
            "Jueves",
            "Viernes",
            "Sábado",
        ),
        no_days="Ningún día seleccionado",
        push_body="¡No olvides tu sesión de estudio!",
        push_title="Hora de estudiar",
        reminder_message="¡Hola {name}! Este es tu recordatorio para continuar con tu preparación para la certificación: {url}",
        reminder_subject="¡Es hora de estudiar para tu certificación!",
        short_code="es",
    ),
}

DEFAULT_LOCALE = "en"


def get_locale(short_code: str | None) -> LocaleModel:
    """
    Get the strings for a language.

    Region suffixes are ignored ("es-CO" is "es"). Unknown languages fall back to English.
    """
    if short_code:
        base = short_code.split("-")[0].split("_")[0].lower()
        if base in LOCALES:
            return LOCALES[base]
    return LOCALES[DEFAULT_LOCALE]
