"""
Deadlines for calls into shared backing stores.

Every Redis or relational round trip runs under a caller-supplied deadline.
Timeouts and connectivity failures surface as TransientError; nothing here
retries, retry policy belongs to the store clients.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy.exc import InterfaceError, OperationalError

from bookstore.exceptions import TransientError

logger = structlog.get_logger(__name__)

REDIS = "redis"
DATABASE = "database"


@asynccontextmanager
async def store_deadline(
    store: str,
    timeout: float | None,
    operation: str | None = None,
) -> AsyncIterator[None]:
    """
    Bound a block of store I/O by ``timeout`` seconds.

    Args:
        store: Name of the backing store, used in errors and logs
        timeout: Seconds before the block is cancelled, None for no bound
        operation: Operation name for diagnostics

    Raises:
        TransientError: On timeout or when the store is unreachable
    """
    try:
        async with asyncio.timeout(timeout):
            yield
    except TimeoutError as e:
        logger.warning("store.timeout", store=store, operation=operation, timeout=timeout)
        raise TransientError(
            f"The {store} did not respond in time.", store=store, operation=operation
        ) from e
    except (RedisConnectionError, RedisTimeoutError) as e:
        logger.error("store.unavailable", store=store, operation=operation, error=str(e))
        raise TransientError(
            f"The {store} is unavailable.", store=store, operation=operation
        ) from e
    except (OperationalError, InterfaceError) as e:
        logger.error("store.unavailable", store=store, operation=operation, error=str(e))
        raise TransientError(
            f"The {store} is unavailable.", store=store, operation=operation
        ) from e
