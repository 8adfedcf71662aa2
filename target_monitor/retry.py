"""
Retry utilities with linear or exponential backoff, built on tenacity.

A RetryPolicy describes how many attempts to make and how long to wait
between them; ``retry_with_backoff`` applies a policy to a function and
adds structured logging plus a single RetryError on exhaustion.
"""
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_incrementing,
    wait_random,
)
from tenacity import RetryError as _TenacityRetryError

from .constants import DEFAULT_RETRY_DELAY, MAX_RETRY_ATTEMPTS, MAX_RETRY_DELAY
from .logger import logger

BACKOFF_STRATEGIES = ("linear", "exponential")


class RetryError(Exception):
    """Raised when all retry attempts fail."""
    def __init__(self, message: str, last_exception: Exception | None = None):
        super().__init__(message)
        self.last_exception = last_exception


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt budget and backoff schedule.

    ``max_attempts`` counts the first call, so a policy of 3 means one
    call plus two retries. Delays before retry ``n``:

    linear:      base * n               (1s, 2s, 3s, ...)
    exponential: base * exp_base**(n-1) (1s, 2s, 4s, ...)

    both capped at ``max_delay``; jitter adds up to half a base delay.
    """

    max_attempts: int = MAX_RETRY_ATTEMPTS
    base_delay: float = DEFAULT_RETRY_DELAY
    max_delay: float = MAX_RETRY_DELAY
    backoff: str = "exponential"
    exponential_base: float = 2.0
    jitter: bool = True

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff not in BACKOFF_STRATEGIES:
            raise ValueError(f"Unknown backoff strategy: {self.backoff}")

    def wait_strategy(self):
        if self.backoff == "linear":
            wait = wait_incrementing(start=self.base_delay, increment=self.base_delay, max=self.max_delay)
        else:
            wait = wait_exponential(multiplier=self.base_delay, exp_base=self.exponential_base,
                                    max=self.max_delay)
        if self.jitter:
            wait = wait + wait_random(0, self.base_delay / 2)
        return wait


def retry_with_backoff(
    max_attempts: int = MAX_RETRY_ATTEMPTS,
    base_delay: float = DEFAULT_RETRY_DELAY,
    max_delay: float = MAX_RETRY_DELAY,
    backoff: str = "exponential",
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    on_retry: Callable[[int, Exception, float], None] | None = None,
    sleep: Callable[[float], None] | None = None,
    policy: RetryPolicy | None = None,
):
    """
    Decorator for retry with backoff.

    Args:
        max_attempts, base_delay, max_delay, backoff, exponential_base, jitter:
            Build a RetryPolicy when ``policy`` is not given
        retryable_exceptions: Exceptions that trigger a retry; others propagate
        on_retry: Optional callback(attempt, exception, delay) called before retry
        sleep: Delay function, ``time.sleep`` unless a test injects a fake
        policy: Explicit RetryPolicy

    Raises:
        RetryError: After the last attempt fails, with ``last_exception`` set

    Usage:
        @retry_with_backoff(policy=RetryPolicy(max_attempts=3, backoff="linear", jitter=False),
                            retryable_exceptions=(TransientUpstreamError,))
        def call_api():
            return session.get(url)
    """
    if policy is None:
        policy = RetryPolicy(
            max_attempts=max_attempts,
            base_delay=base_delay,
            max_delay=max_delay,
            backoff=backoff,
            exponential_base=exponential_base,
            jitter=jitter,
        )

    def decorator(func: Callable):
        name = getattr(func, "__name__", repr(func))

        def before_sleep(state: RetryCallState):
            error = state.outcome.exception()
            delay = state.next_action.sleep
            logger.warning(
                "retry.attempting",
                function=name,
                attempt=state.attempt_number,
                max_attempts=policy.max_attempts,
                delay=round(delay, 2),
                error=str(error)[:50]
            )
            if on_retry:
                on_retry(state.attempt_number, error, delay)

        @wraps(func)
        def wrapper(*args, **kwargs):
            retrying = Retrying(
                stop=stop_after_attempt(policy.max_attempts),
                wait=policy.wait_strategy(),
                retry=retry_if_exception_type(retryable_exceptions),
                before_sleep=before_sleep,
                sleep=sleep or time.sleep,
            )
            try:
                return retrying(func, *args, **kwargs)
            except _TenacityRetryError as e:
                error = e.last_attempt.exception()
                logger.error("retry.exhausted", function=name,
                             attempts=policy.max_attempts, error=str(error)[:100])
                raise RetryError(
                    f"{name} failed after {policy.max_attempts} attempts: {error}",
                    last_exception=error,
                ) from error

        return wrapper
    return decorator


def is_retryable_http_status(status_code: int) -> bool:
    """
    Check if HTTP status code is retryable.

    Retryable: 429 (rate limit), 500, 502, 503, 504 (server errors)
    Not retryable: 400, 401, 403, 404 (client errors)
    """
    return status_code in (429, 500, 502, 503, 504)
