import asyncio
from collections import OrderedDict
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import wraps

from aiojobs import Scheduler


@asynccontextmanager
async def get_scheduler(limit: int | None = None) -> AsyncGenerator[Scheduler]:
    """
    Get a job scheduler for the reminders of a pass.

    At most `limit` jobs run at the same time, the others wait in spawn order. On exit, running jobs get 45 secs to finish.
    """
    async with Scheduler(
        close_timeout=45,  # Longer than the default delivery timeout
        limit=limit,
    ) as scheduler:
        yield scheduler


def lru_acache(maxsize: int = 128):
    """
    Cache the result of an async function, per event loop.

    Resources like connection pools are bound to the loop they were created in, a new loop gets a new value. Least recently used values are dropped past `maxsize`.
    """

    def decorator(func):
        cache: OrderedDict[tuple, object] = OrderedDict()

        @wraps(func)
        async def wrapper(*args, **kwargs):
            key = (
                id(asyncio.get_running_loop()),
                args,
                frozenset(kwargs.items()),
            )
            if key in cache:
                cache.move_to_end(key)
                return cache[key]

            value = await func(*args, **kwargs)
            cache[key] = value
            if len(cache) > maxsize:
                cache.popitem(last=False)
            return value

        return wrapper

    return decorator
