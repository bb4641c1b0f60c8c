from uuid import uuid4

from study_reminder.helpers.config_models.delivery import ConsoleModel
from study_reminder.helpers.i18n import get_locale
from study_reminder.helpers.logging import logger
from study_reminder.models.delivery import DeliveryResultModel
from study_reminder.models.readiness import ReadinessEnum
from study_reminder.persistence.idelivery import IDelivery


class ConsoleDelivery(IDelivery):
    """
    Print notifications in the logs.

    Stands for the email and push transports, which are run by another service. Every send succeeds.
    """

    _config: ConsoleModel

    def __init__(self, config: ConsoleModel):
        logger.info("Using console delivery, notifications are only logged")
        self._config = config

    async def readiness(self) -> ReadinessEnum:
        return ReadinessEnum.OK

    async def send(
        self,
        email: str,
        display_name: str,
        language: str,
    ) -> DeliveryResultModel:
        locale = get_locale(language)
        message_id = str(uuid4())
        logger.info("Sending reminder to %s (%s)", email, locale.short_code)
        logger.info("Subject: %s", locale.reminder_subject)
        logger.info(
            "Content: %s",
            locale.reminder_message.format(
                name=display_name,
                url=self._config.app_url,
            ),
        )
        return DeliveryResultModel(
            message_id=message_id,
            success=True,
        )

    async def push(self, owner_id: str, language: str) -> bool:
        locale = get_locale(language)
        logger.info(
            "Push to %s: %s, %s", owner_id, locale.push_title, locale.push_body
        )
        return True
