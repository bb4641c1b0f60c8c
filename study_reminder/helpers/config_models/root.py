from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from study_reminder.helpers.config_models.database import DatabaseModel
from study_reminder.helpers.config_models.delivery import DeliveryModel
from study_reminder.helpers.config_models.delivery_log import DeliveryLogModel
from study_reminder.helpers.config_models.monitoring import MonitoringModel
from study_reminder.helpers.config_models.scheduler import SchedulerModel


class RootModel(BaseSettings):
    """
    Whole config of the scheduler.

    Every section has defaults, an empty config runs on the in-memory backends with the console delivery.
    """

    model_config = SettingsConfigDict(
        env_ignore_empty=True,
        env_nested_delimiter="__",
        env_prefix="",
    )

    # Immutable fields
    version: str = Field(default="0.0.0-unknown", frozen=True)
    # Editable fields
    database: DatabaseModel = DatabaseModel()
    delivery: DeliveryModel = DeliveryModel()
    delivery_log: DeliveryLogModel = DeliveryLogModel()
    monitoring: MonitoringModel = MonitoringModel()
    scheduler: SchedulerModel = SchedulerModel()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],  # noqa: ARG003
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Environment wins over the config file.

        Priority, highest first: environment variables, .env file, secrets folder, then the values from `CONFIG_JSON` or `config.yaml`.

        See: https://docs.pydantic.dev/latest/concepts/pydantic_settings/#changing-priority
        """
        return env_settings, dotenv_settings, file_secret_settings, init_settings
