import sys
from enum import Enum
from functools import wraps
from inspect import iscoroutinefunction
from os import environ

from azure.monitor.opentelemetry import configure_azure_monitor
from opentelemetry import metrics, trace
from opentelemetry.metrics._internal.instrument import Counter, Gauge
from opentelemetry.semconv.attributes import service_attributes
from opentelemetry.trace.span import INVALID_SPAN
from opentelemetry.util.types import Attributes, AttributeValue
from structlog.contextvars import bind_contextvars, get_contextvars

MODULE_NAME = "com.github.study-reminder"
VERSION = environ.get("VERSION", "0.0.0-unknown")


class SpanAttributeEnum(str, Enum):
    """
    Attributes of the reminder being processed.

    Bound to both the logging context and the current span, so a reminder can be followed from the logs to the traces.
    """

    OWNER_ID = "reminder.owner_id"
    """Owner identifier of the reminder."""
    REMINDER_FREQUENCY = "reminder.frequency"
    """Configured frequency (e.g. daily, weekly, custom)."""
    REMINDER_ID = "reminder.id"
    """Technical reminder identifier."""

    def attribute(
        self,
        value: AttributeValue,
    ) -> None:
        bind_contextvars(**{self.value: value})
        span = trace.get_current_span()
        if span != INVALID_SPAN:
            span.set_attribute(self.value, value)


class SpanMeterEnum(str, Enum):
    PASS_LATENCY = "scheduler.pass.latency"
    """Scheduler pass latency in seconds."""
    REMINDER_FAILED = "reminder.failed"
    """Reminders which delivery failed."""
    REMINDER_SENT = "reminder.sent"
    """Reminders delivered."""
    REMINDER_SKIPPED = "reminder.skipped"
    """Reminders skipped (not due, already sent, invalid, orphaned)."""

    def counter(self, unit: str) -> Counter:
        return meter.create_counter(
            description=self.__doc__ or "",
            name=self.value,
            unit=unit,
        )

    def gauge(self, unit: str) -> Gauge:
        return meter.create_gauge(
            description=self.__doc__ or "",
            name=self.value,
            unit=unit,
        )


# Export to Application Insights, only if a connection string is set
try:
    configure_azure_monitor()
except ValueError as e:
    print(  # noqa: T201
        "Azure Application Insights export disabled, set APPLICATIONINSIGHTS_CONNECTION_STRING to enable it.",
        e,
        file=sys.stderr,
    )

_default_attributes = {
    service_attributes.SERVICE_NAME: MODULE_NAME,
    service_attributes.SERVICE_VERSION: VERSION,
}

tracer = trace.get_tracer(
    attributes=_default_attributes,
    instrumenting_module_name=MODULE_NAME,
)
meter = metrics.get_meter(
    name=MODULE_NAME,
)

pass_latency = SpanMeterEnum.PASS_LATENCY.gauge("s")
reminder_failed = SpanMeterEnum.REMINDER_FAILED.counter("reminders")
reminder_sent = SpanMeterEnum.REMINDER_SENT.counter("reminders")
reminder_skipped = SpanMeterEnum.REMINDER_SKIPPED.counter("reminders")


def _metric_attributes() -> dict:
    # Reminder attributes bound to the context override the service ones
    return {**_default_attributes, **get_contextvars()}


def gauge_set(
    metric: Gauge,
    value: float | int,
) -> None:
    metric.set(
        amount=value,
        attributes=_metric_attributes(),
    )


def counter_add(
    metric: Counter,
    value: float | int = 1,
) -> None:
    metric.add(
        amount=value,
        attributes=_metric_attributes(),
    )


def start_as_current_span(
    name: str,
    attributes: Attributes = None,
):
    """
    Decorator running the function in a new span, sync and async functions are both supported.
    """

    def _wrapper(func):
        if iscoroutinefunction(func):

            @wraps(func)
            async def _async_inner(*args, **kwargs):
                with tracer.start_as_current_span(attributes=attributes, name=name):
                    return await func(*args, **kwargs)

            return _async_inner

        @wraps(func)
        def _inner(*args, **kwargs):
            with tracer.start_as_current_span(attributes=attributes, name=name):
                return func(*args, **kwargs)

        return _inner

    return _wrapper
