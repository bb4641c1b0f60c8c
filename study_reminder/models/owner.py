from datetime import tzinfo

from pydantic import BaseModel
from pytz import UnknownTimeZoneError, timezone, utc


class OwnerModel(BaseModel):
    """
    Owner of a reminder, as exposed by the identity service.
    """

    display_name: str | None = None
    email: str
    id: str
    language: str | None = None
    timezone: str | None = None  # IANA name, e.g. "America/Bogota"


def resolve_tz(name: str | None) -> tzinfo:
    """
    Return the pytz timezone for an IANA name, UTC if missing or unknown.
    """
    if not name:
        return utc
    try:
        return timezone(name)
    except UnknownTimeZoneError:
        from study_reminder.helpers.logging import logger

        logger.warning("Unknown timezone %s, using UTC", name)
        return utc
