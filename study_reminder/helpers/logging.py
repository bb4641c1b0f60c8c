import sys
from logging import Logger, _nameToLevel, basicConfig

from structlog import (
    PrintLoggerFactory,
    configure_once,
    get_logger as structlog_get_logger,
    make_filtering_bound_logger,
)
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import (
    JSONRenderer,
    StackInfoRenderer,
    TimeStamper,
    UnicodeDecoder,
    add_log_level,
    dict_tracebacks,
)
from structlog.stdlib import PositionalArgumentsFormatter
from structlog.typing import Processor

from study_reminder.helpers.config import CONFIG
from study_reminder.helpers.config_models.monitoring import LoggingFormatEnum

# Default logging level for all the dependencies
basicConfig(level=CONFIG.monitoring.logging.sys_level.value)

# JSON lines for log collectors, as the scheduler runs as a job
_renderers: list[Processor] = (
    [
        # Serialize exceptions as dicts
        dict_tracebacks,
        JSONRenderer(),
    ]
    if CONFIG.monitoring.logging.format == LoggingFormatEnum.JSON
    else [
        # Pretty printing in a terminal session
        ConsoleRenderer(),
    ]
)

# Configure application console logging
configure_once(
    cache_logger_on_first_use=True,
    context_class=dict,
    # Stdout is kept for the command output
    logger_factory=PrintLoggerFactory(file=sys.stderr),
    wrapper_class=make_filtering_bound_logger(
        _nameToLevel[CONFIG.monitoring.logging.app_level.value]
    ),
    processors=[
        # Add contextvars support
        merge_contextvars,
        # Add log level
        add_log_level,
        # Enable %s-style formatting
        PositionalArgumentsFormatter(),
        # Add timestamp
        TimeStamper(fmt="iso", utc=True),
        # Add exceptions info
        StackInfoRenderer(),
        # Decode Unicode to str
        UnicodeDecoder(),
        *_renderers,
    ],
)

# Framework does not exactly expose Logger, but that's easier to work with
logger: Logger = structlog_get_logger("study-reminder")
