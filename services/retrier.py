"""
Backoff Retrier for database operations

Every data operation is handed over as a zero-argument coroutine function.
The retrier:
1. waits for connectivity if the database is known to be unreachable
2. runs the operation; a raised exception or a returned {"error": ...} is a failure
3. retries classifier-approved failures after min(initial * 2^attempt, max)
4. turns terminal errors and exhausted retries into a DbResult - it never raises

There is no idempotency guarantee here: a write whose acknowledgement was
lost may be sent again. Inserts carry a request id for that reason.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple

from models.result import DbResult, ErrorKind
from services.connectivity import ConnectivityMonitor
from services.error_classifier import ErrorClassifier, default_classifier, error_message
from services.error_messages import (
    OFFLINE_MESSAGE,
    RETRIES_EXHAUSTED_MESSAGE,
    describe_error,
)

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 1.0  # seconds
    max_delay: float = 5.0      # seconds

    def delay_for(self, attempt: int) -> float:
        """Wait before the retry that follows attempt number `attempt` (0-based)"""
        return min(self.initial_delay * (2 ** attempt), self.max_delay)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            initial_delay=settings.retry_initial_delay,
            max_delay=settings.retry_max_delay,
        )


STRUCTURED_RESULT_KEYS = {"data", "error"}


def _unpack(value: Any) -> Tuple[Any, Any]:
    """
    Split an operation's return value into (data, error).

    Operations may signal failure by raising or by returning a
    {"data": ..., "error": ...} mapping; a returned error is classified and
    retried like a raised one.
    """
    if isinstance(value, dict) and value and set(value) <= STRUCTURED_RESULT_KEYS:
        if value.get("error") is not None:
            return None, value["error"]
        return value.get("data"), None
    return value, None


class Retrier:
    """Runs data operations with exponential backoff"""

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
        classifier: Optional[ErrorClassifier] = None,
        describe: Callable[[Any], Tuple[str, ErrorKind]] = describe_error,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        offline_timeout: Optional[float] = None,
    ):
        self.policy = policy or RetryPolicy()
        self.connectivity = connectivity or ConnectivityMonitor()
        self.classifier = classifier or default_classifier
        self.describe = describe
        self._sleep = sleep
        self.offline_timeout = offline_timeout

    async def run(self, operation: Operation, description: str = "database operation") -> DbResult:
        last_error: Any = None
        max_attempts = max(1, self.policy.max_attempts)

        for attempt in range(max_attempts):
            if not self.connectivity.is_online:
                logger.warning(f"Offline, waiting for connection before {description}")
                if not await self.connectivity.wait_until_online(self.offline_timeout):
                    return DbResult.failure(OFFLINE_MESSAGE, ErrorKind.UNAVAILABLE)

            try:
                value = await operation()
                if isinstance(value, DbResult):
                    # Already classified and described by a nested run
                    return value
                data, returned_error = _unpack(value)
                if returned_error is None:
                    return DbResult.success(data)
                last_error = returned_error
            except Exception as e:
                last_error = e

            if not self.classifier.is_retryable(last_error, self.connectivity.is_online):
                message, kind = self.describe(last_error)
                logger.error(f"{description} failed: {last_error}")
                return DbResult.failure(message, kind)

            if attempt < max_attempts - 1:
                delay = self.policy.delay_for(attempt)
                logger.warning(
                    f"Retrying {description}, attempt {attempt + 1}/{max_attempts}. "
                    f"Waiting {delay:.1f}s. Error: {last_error}"
                )
                await self._sleep(delay)

        logger.error(f"{description} failed after {max_attempts} attempts: {last_error}")
        return DbResult.failure(
            RETRIES_EXHAUSTED_MESSAGE.format(error=error_message(last_error) or "An unknown error occurred"),
            ErrorKind.UNAVAILABLE,
        )
