from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


def is_gateway_transient(status_code: int) -> bool:
    # 429: per-minute rate limit of the application exceeded.
    return status_code == 429 or 500 <= status_code <= 599


def is_chunk_transient(status_code: int) -> bool:
    return 100 <= status_code <= 199 or status_code == 429 or 500 <= status_code <= 599


@dataclass(frozen=True)
class RetryPolicy:
    """Retry schedule for one HTTP call.

    ``delays[i]`` is the wait after the (i+1)-th failed attempt, so a policy makes
    ``len(delays) + 1`` attempts in total.
    """

    delays: tuple[float, ...]
    retryable: Callable[[int], bool]
    name: str = "request"

    @property
    def max_attempts(self) -> int:
        return len(self.delays) + 1

    def run(
        self,
        send: Callable[[], httpx.Response],
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> httpx.Response:
        """Call ``send`` until it returns a non-retryable response or the schedule is used up.

        The last response is returned as-is (the caller decides whether it is an error);
        a transport error on the last attempt is re-raised with ``last_status_code`` set
        to the status of the last response received before it (None if there was none).
        """
        last_status: int | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = send()
            except httpx.RequestError as exc:
                if attempt >= self.max_attempts:
                    exc.last_status_code = last_status
                    raise
                self._wait(attempt=attempt, reason=type(exc).__name__, sleep=sleep)
                continue

            last_status = response.status_code
            if not self.retryable(response.status_code) or attempt >= self.max_attempts:
                return response
            self._wait(attempt=attempt, reason=f"HTTP {response.status_code}", sleep=sleep)

        raise RuntimeError(f"{self.name} failed after retries")

    def _wait(self, *, attempt: int, reason: str, sleep: Callable[[float], None]) -> None:
        delay = self.delays[attempt - 1]
        logger.warning(
            "%s attempt %d/%d failed (%s); retrying in %.0fs",
            self.name,
            attempt,
            self.max_attempts,
            reason,
            delay,
        )
        sleep(delay)


def last_status_code(exc: BaseException) -> int | None:
    """HTTP status behind ``exc``: the error response itself, or the last one seen before a transport error."""
    status_code = getattr(exc, "status_code", None)
    if status_code is None:
        status_code = getattr(exc, "last_status_code", None)
    return status_code


def gateway_retry_policy(name: str = "signeds3upload") -> RetryPolicy:
    """3 attempts, 1 minute apart, on 429 and 5xx."""
    return RetryPolicy(delays=(60.0, 60.0), retryable=is_gateway_transient, name=name)


def chunk_retry_policy() -> RetryPolicy:
    """Backoff schedule for raw chunk PUTs: 1s, 3s, 10s."""
    return RetryPolicy(delays=(1.0, 3.0, 10.0), retryable=is_chunk_transient, name="chunk upload")
