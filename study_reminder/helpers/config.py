import json
import sys
from os import environ
from typing import Any

import yaml
from dotenv import find_dotenv
from pydantic import ValidationError

from study_reminder.helpers.config_models.root import RootModel

CONFIG_ENV = "CONFIG_JSON"
CONFIG_FILE = "config.yaml"


def _load_raw() -> dict[str, Any]:
    """
    Read the raw config, from the env or from the closest config file.

    The logger is not configured yet, messages are printed to stderr, stdout is kept for the command output.
    """
    if CONFIG_ENV in environ:
        print(f'Config loaded from env "{CONFIG_ENV}"', file=sys.stderr)  # noqa: T201
        return json.loads(environ[CONFIG_ENV])

    print(  # noqa: T201
        f'Cannot find env "{CONFIG_ENV}", trying to load from file',
        file=sys.stderr,
    )
    path = find_dotenv(filename=CONFIG_FILE, usecwd=True)
    if not path:
        raise ValueError(f'Cannot find config file "{CONFIG_FILE}"')

    with open(
        encoding="utf-8",
        file=path,
    ) as f:
        print(f'Config loaded from file "{path}"', file=sys.stderr)  # noqa: T201
        # Empty file is valid, all sections have defaults
        return yaml.safe_load(f) or {}


def load_config() -> RootModel:
    """
    Load and validate the config.

    Values are passed to the settings constructor, so environment variables like `SCHEDULER__WINDOW_MIN` override them.
    """
    try:
        return RootModel(**_load_raw())
    except ValidationError as e:
        lines = [
            f"{i + 1}. At {'.'.join(str(loc) for loc in error['loc'])}: {error['msg']} (input value: {error['input']})"
            for i, error in enumerate(e.errors())
        ]
        raise ValueError("Config values are not valid:\n" + "\n".join(lines)) from e


CONFIG = load_config()
