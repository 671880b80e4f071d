import asyncio
import functools
import inspect
import logging
import random
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .errors import (
    ConfigurationError,
    ConversionError,
    StreamTerminationError,
    TransientBackendError,
    translate_error,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff with jitter.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        base_delay: Delay before the second attempt, in seconds.
        max_delay: Upper bound for the computed backoff, in seconds.
        jitter: Maximum random seconds added to each computed delay.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: float = 0.25

    def compute_backoff(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """
        Delay before the attempt following ``attempt`` (1-based).

        A backend ``Retry-After`` hint is honoured in preference to the
        computed value.
        """
        if retry_after is not None:
            return retry_after
        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1))) + random.random() * self.jitter


DEFAULT_RETRY_POLICY = RetryPolicy()

_NEVER_RETRY = (ConfigurationError, ConversionError, StreamTerminationError)


def _resolve_policy(policy: Optional[RetryPolicy], args: tuple) -> RetryPolicy:
    if policy is not None:
        return policy
    # Decorated handler methods pick up the handler's own policy
    owner_policy = getattr(args[0], "retry_policy", None) if args else None
    if isinstance(owner_policy, RetryPolicy):
        return owner_policy
    return DEFAULT_RETRY_POLICY


def _retry_delay(exc: Exception, attempt: int, policy: RetryPolicy, name: str) -> float:
    """
    Return the delay before the next attempt, or raise the classified error
    when ``exc`` must not be retried.
    """
    if isinstance(exc, _NEVER_RETRY):
        raise exc
    error = translate_error(exc)
    if not isinstance(error, TransientBackendError) or attempt >= policy.max_attempts:
        if error is exc:
            raise exc
        raise error from exc

    delay = policy.compute_backoff(attempt, error.retry_after)
    logger.warning(
        "%s failed (attempt %d/%d), retrying in %.2fs: %s",
        name, attempt, policy.max_attempts, delay, exc,
    )
    return delay


def with_retry(policy: Optional[RetryPolicy] = None) -> Callable:
    """
    Retry a network-issuing coroutine function or async generator function.

    Transient backend failures are retried with backoff up to
    ``policy.max_attempts``; everything else propagates at once. For async
    generators, a failure after the first chunk has been yielded is raised
    as ``StreamTerminationError`` and never retried, since a retry would
    duplicate output the caller already has.

    Usage:
        class MyHandler(BaseHandler):
            @with_retry()
            async def create_message(self, system_prompt, messages, tools=None):
                ...
    """

    def decorator(func: Callable) -> Callable:
        if inspect.isasyncgenfunction(func):

            @functools.wraps(func)
            async def stream_wrapper(*args, **kwargs):
                active = _resolve_policy(policy, args)
                attempt = 0
                while True:
                    attempt += 1
                    delivered = False
                    try:
                        async with aclosing(func(*args, **kwargs)) as stream:
                            async for chunk in stream:
                                delivered = True
                                yield chunk
                        return
                    except Exception as exc:
                        if delivered:
                            raise StreamTerminationError(
                                f"Stream failed after partial delivery: {exc}"
                            ) from exc
                        delay = _retry_delay(exc, attempt, active, func.__qualname__)
                    await asyncio.sleep(delay)

            return stream_wrapper

        @functools.wraps(func)
        async def call_wrapper(*args, **kwargs) -> Any:
            active = _resolve_policy(policy, args)
            attempt = 0
            while True:
                attempt += 1
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    delay = _retry_delay(exc, attempt, active, func.__qualname__)
                await asyncio.sleep(delay)

        return call_wrapper

    return decorator
