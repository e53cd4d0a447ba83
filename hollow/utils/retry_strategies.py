"""
Retry Strategies for Provider Dispatch

Exponential backoff with jitter, driven by tenacity, over classified
HollowError outcomes. Transient failures are retried up to the policy's
attempt budget; terminal ones end the run on first occurrence.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception

from hollow.errors import HollowError, InvocationTimeout, RateLimited, TransportError
from hollow.models.config import RetryPolicy
from hollow.models.enums import ErrorKind, RetryState

logger = logging.getLogger(__name__)

T = TypeVar("T")


def exponential_backoff_with_jitter(
    base_delay: float, attempt: int, max_delay: float = 60.0, jitter: bool = True
) -> float:
    """
    Calculate delay with exponential backoff and optional jitter.

    Args:
        base_delay: Base delay in seconds
        attempt: Current attempt number (0-indexed)
        max_delay: Maximum delay in seconds
        jitter: Whether to add jitter

    Returns:
        Delay in seconds, never above max_delay
    """
    delay = min(base_delay * (2**attempt), max_delay)

    if jitter and delay > 0:
        # Add random jitter: +/-20% of delay
        jitter_amount = delay * 0.2 * random.uniform(-1, 1)
        delay = min(max(0.0, delay + jitter_amount), max_delay)

    return delay


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, HollowError) and exc.retryable


@dataclass
class AttemptRecord:
    attempt: int
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    delay_s: float = 0.0


class RetryController:
    """
    Drives dispatch attempts for one invocation.

    States: IDLE -> DISPATCHING -> (SUCCEEDED | RETRYING | EXHAUSTED).
    A controller is single-use; build a new one per invocation.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        label: str = "",
    ):
        self.policy = policy
        self.state = RetryState.IDLE
        self.attempts = 0
        self.history: List[AttemptRecord] = []
        self.last_error: Optional[HollowError] = None
        self._sleep = sleep
        self._clock = clock
        self._label = label or "invocation"
        self._deadline: Optional[float] = None
        self._deadline_exceeded = False
        self._planned_delays: Dict[int, float] = {}

    async def run(
        self,
        attempt_fn: Callable[[int], Awaitable[T]],
        *,
        deadline: Optional[float] = None,
    ) -> T:
        """
        Call ``attempt_fn(attempt_number)`` until it succeeds or the policy gives up.

        Args:
            attempt_fn: Coroutine factory for one attempt; receives the 1-based attempt number
            deadline: Absolute clock() value bounding all attempts and backoff

        Raises:
            HollowError: The last classified failure once exhausted, or
                InvocationTimeout when the overall deadline cuts retries short.
        """
        if self.state != RetryState.IDLE:
            raise RuntimeError("RetryController instances are single-use")
        self._deadline = deadline

        retrying = AsyncRetrying(
            stop=self._should_stop,
            wait=self._wait,
            retry=retry_if_exception(is_retryable),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._dispatch(attempt_fn, attempt.retry_state.attempt_number)
        except HollowError as exc:
            self.state = RetryState.EXHAUSTED
            self.last_error = exc
            if self._deadline_exceeded and exc.retryable:
                raise InvocationTimeout(
                    f"Overall deadline reached after {self.attempts} attempt(s); last error: {exc.message}",
                    raw_text=exc.raw_text,
                ) from exc
            raise
        self.state = RetryState.SUCCEEDED
        return result

    async def _dispatch(self, attempt_fn: Callable[[int], Awaitable[T]], attempt_number: int) -> T:
        self.state = RetryState.DISPATCHING
        self.attempts = attempt_number
        timeout = self.policy.per_attempt_timeout_s
        bounded_by_deadline = False
        if self._deadline is not None:
            remaining = self._deadline - self._clock()
            if remaining <= 0:
                raise InvocationTimeout("Overall deadline reached before dispatch")
            if remaining < timeout:
                timeout = remaining
                bounded_by_deadline = True
        try:
            result = await asyncio.wait_for(attempt_fn(attempt_number), timeout=timeout)
        except asyncio.TimeoutError as exc:
            if bounded_by_deadline:
                error: HollowError = InvocationTimeout(
                    f"Overall deadline reached during attempt {attempt_number}"
                )
            else:
                error = TransportError(f"Attempt {attempt_number} timed out after {timeout:.2f}s")
            self._record(attempt_number, error)
            raise error from exc
        except HollowError as exc:
            self._record(attempt_number, exc)
            raise
        self.history.append(AttemptRecord(attempt=attempt_number))
        return result

    def _record(self, attempt_number: int, exc: HollowError) -> None:
        self.last_error = exc
        self.history.append(
            AttemptRecord(attempt=attempt_number, error_kind=exc.kind, message=exc.message)
        )

    def _planned_delay(self, attempt_number: int) -> float:
        if attempt_number not in self._planned_delays:
            delay = exponential_backoff_with_jitter(
                self.policy.base_delay_s,
                attempt_number - 1,
                self.policy.max_delay_s,
                self.policy.jitter,
            )
            if isinstance(self.last_error, RateLimited) and self.last_error.retry_after_s:
                delay = max(delay, min(self.last_error.retry_after_s, self.policy.max_delay_s))
            self._planned_delays[attempt_number] = delay
        return self._planned_delays[attempt_number]

    def _should_stop(self, retry_state: RetryCallState) -> bool:
        if retry_state.attempt_number >= self.policy.max_attempts:
            return True
        if self._deadline is not None:
            delay = self._planned_delay(retry_state.attempt_number)
            if self._clock() + delay >= self._deadline:
                self._deadline_exceeded = True
                return True
        return False

    def _wait(self, retry_state: RetryCallState) -> float:
        return self._planned_delay(retry_state.attempt_number)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        self.state = RetryState.RETRYING
        delay = self._planned_delay(retry_state.attempt_number)
        if self.history:
            self.history[-1].delay_s = delay
        logger.warning(
            "Attempt %d/%d for %s failed: %s. Retrying in %.2fs...",
            retry_state.attempt_number,
            self.policy.max_attempts,
            self._label,
            self.last_error.message if self.last_error else "unknown error",
            delay,
        )
