"""
Bounded retrying with the exponential backoff.

The retried function decides on its own whether it is finished (``True``),
or should be retried (``False``). Any exception escapes immediately:
those are the non-retryable errors by definition. The retrying ends either
when the function is finished, or when the attempts are exhausted, or when
the stopper is set (or the task is cancelled, as usual in asyncio).
"""
import asyncio
import random
from collections.abc import Awaitable, Callable

from wfclient._cogs.aiokits import aiotime
from wfclient._cogs.clients import errors
from wfclient._cogs.helpers import typedefs


class RetryFailed(errors.ClientError):
    """ The retrying has ended without the retried function being finished. """


class RetryAttemptsExhausted(RetryFailed):
    def __init__(self, message: str = "reached max attempts") -> None:
        super().__init__(message)


class RetryCancelled(RetryFailed):
    def __init__(self, message: str = "operation has been cancelled") -> None:
        super().__init__(message)


def is_retry_failed(exc: BaseException | None) -> bool:
    return isinstance(exc, RetryFailed)


class Backoff:
    """
    The delays growing exponentially from ``min`` to ``max`` with every call.

    With the jitter, the delays are randomised between ``min`` and the current
    exponential delay, so that multiple clients do not retry in sync.
    """

    def __init__(
            self,
            *,
            min: float,
            max: float,
            factor: float = 1.5,
            jitter: bool = False,
    ) -> None:
        super().__init__()
        self.min = min
        self.max = max
        self.factor = factor
        self.jitter = jitter
        self.attempt = 0

    def for_attempt(self, attempt: int) -> float:
        if self.min >= self.max:
            return self.max
        delay = self.min * self.factor ** attempt
        if self.jitter:
            delay = random.random() * (delay - self.min) + self.min
        return min(max(delay, self.min), self.max)

    def duration(self) -> float:
        delay = self.for_attempt(self.attempt)
        self.attempt += 1
        return delay

    def reset(self) -> None:
        self.attempt = 0


async def retry(
        fn: Callable[[], Awaitable[bool]],
        *,
        attempts: int,
        min_interval: float = 0,
        factor: float = 1.5,
        jitter: bool = False,
        stopper: asyncio.Event | None = None,
        logger: typedefs.Logger | None = None,
) -> None:
    """
    Call the function until it is finished, but at most ``attempts`` times.

    Between the attempts, sleep as per :class:`Backoff` (from ``min_interval``
    up to its double). The sleep is interrupted by the stopper, if any.
    There is no sleep after the last attempt.
    """
    backoff = Backoff(min=min_interval, max=min_interval * 2, factor=factor, jitter=jitter)
    for attempt in range(1, attempts + 1):
        if stopper is not None and stopper.is_set():
            raise RetryCancelled()

        if await fn():
            return

        if attempt < attempts:
            delay = backoff.duration()
            if logger is not None:
                logger.debug(f"Attempt #{attempt}/{attempts} is not finished; retrying in {delay:.2f}s.")
            if delay > 0:
                await aiotime.sleep_or_wait(delay, stopper)

    raise RetryAttemptsExhausted()
