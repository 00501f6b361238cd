"""Bounded retries for infrastructure calls."""
import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from brewchat.core.errors import InfrastructureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retries(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    backoff: float,
    description: str,
    retry_on: Tuple[Type[Exception], ...] = (InfrastructureError,),
) -> T:
    """
    Run ``operation`` up to ``attempts`` times.

    Only exceptions listed in ``retry_on`` are retried; the last one is
    re-raised once attempts run out. The delay grows linearly with the
    attempt number.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            if attempt == attempts:
                logger.error(
                    f"[RETRY] {description} failed after {attempts} attempts: "
                    f"{type(e).__name__}: {e}"
                )
                raise
            logger.warning(
                f"[RETRY] {description} failed (attempt {attempt}/{attempts}): "
                f"{type(e).__name__}: {e}"
            )
            await asyncio.sleep(backoff * attempt)
    raise RuntimeError("unreachable")  # pragma: no cover
