import functools
import logging
import asyncio

import aiohttp

from core.exceptions import StoreError


def store_call(operation: str):
    """
    Turn transport failures of a coroutine into StoreError.

    Timeouts and aiohttp client errors are logged and re-raised as StoreError;
    HabitTrackerError subclasses raised inside pass through untouched. No retry
    happens here, the next activation is the retry point.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except asyncio.TimeoutError as e:
                logging.warning(f"⏱️ {operation}: timed out")
                raise StoreError(f"{operation} timed out") from e
            except aiohttp.ClientResponseError as e:
                logging.warning(f"❌ {operation}: HTTP {e.status} {e.message}")
                raise StoreError(f"{operation} failed: HTTP {e.status}", status=e.status) from e
            except aiohttp.ClientError as e:
                logging.warning(f"❌ {operation}: {e}")
                raise StoreError(f"{operation} failed: {e}") from e
        return wrapper
    return decorator
