"""Rate-limit aware retry state machine.

A request moves through ATTEMPT -> (WAIT -> RETRY -> ATTEMPT)* -> DONE | FAIL.
The machine only decides; the client performs requests and sleeps.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum

from .errors import ExportCancelledError, ExporterError, NetworkError, RateLimitExceededError


class RetryState(Enum):
    ATTEMPT = "attempt"
    WAIT = "wait"
    RETRY = "retry"
    DONE = "done"
    FAIL = "fail"


class WaitStrategy(Enum):
    # Sleep until the window resets (x-ratelimit-reset / retry-after)
    UNTIL_RESET = "until_reset"
    # base_delay * backoff_factor ** n, raised to retry-after when larger
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    network_retries: int = 1
    strategy: WaitStrategy = WaitStrategy.UNTIL_RESET
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_wait: float = 3600.0

    def backoff(self, attempt: int) -> float:
        return self.base_delay * self.backoff_factor**attempt


# Tree listing waits out the window; content fetches back off exponentially
LISTING_POLICY = RetryPolicy()
CONTENT_POLICY = RetryPolicy(max_retries=5, strategy=WaitStrategy.EXPONENTIAL)


def parse_rate_limit_headers(headers, now: float | None = None) -> float | None:
    """Seconds the server asks us to wait, or None if it does not say."""
    now = time.time() if now is None else now

    retry_after = headers.get("retry-after")
    if retry_after is not None:
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            pass

    if headers.get("x-ratelimit-remaining") == "0":
        reset = headers.get("x-ratelimit-reset")
        if reset is not None:
            try:
                # +1 to land after the window has actually rolled over
                return max(0.0, float(reset) - now + 1)
            except ValueError:
                pass
    return None


class RetryMachine:
    """Tracks attempts for a single request and yields the next state."""

    def __init__(self, policy: RetryPolicy, description: str):
        self.policy = policy
        self.description = description
        self.state = RetryState.ATTEMPT
        self.rate_limit_retries = 0
        self.network_retries = 0
        self.wait = 0.0
        self.error: ExporterError | None = None

    def succeeded(self) -> RetryState:
        self.state = RetryState.DONE
        return self.state

    def rate_limited(self, server_wait: float | None, status: int | None = None) -> RetryState:
        """Register a rate-limit response and decide whether to wait or fail."""
        policy = self.policy
        if self.rate_limit_retries >= policy.max_retries:
            return self._fail(
                RateLimitExceededError(
                    f"GitHub API rate limit exceeded for {self.description} "
                    f"(HTTP {status}) after {self.rate_limit_retries} retries",
                    status=status,
                    endpoint=self.description,
                )
            )

        if policy.strategy is WaitStrategy.UNTIL_RESET and server_wait is not None:
            wait = server_wait
        else:
            wait = max(policy.backoff(self.rate_limit_retries), server_wait or 0.0)

        if wait > policy.max_wait:
            return self._fail(
                RateLimitExceededError(
                    f"GitHub API rate limit exceeded for {self.description} (HTTP {status}); "
                    f"reset is {int(wait)}s away, more than the {int(policy.max_wait)}s limit",
                    status=status,
                    endpoint=self.description,
                )
            )

        self.rate_limit_retries += 1
        self.wait = wait
        self.state = RetryState.WAIT
        return self.state

    def network_failed(self, detail: str) -> RetryState:
        """Register a transport error or 5xx; one retry by default."""
        if self.network_retries >= self.policy.network_retries:
            return self._fail(NetworkError(f"Network error for {self.description}: {detail}"))
        self.network_retries += 1
        self.wait = self.policy.backoff(0)
        self.state = RetryState.WAIT
        return self.state

    def waited(self) -> RetryState:
        self.state = RetryState.RETRY
        return self.state

    def retry(self) -> RetryState:
        self.state = RetryState.ATTEMPT
        return self.state

    def _fail(self, error: ExporterError) -> RetryState:
        self.error = error
        self.state = RetryState.FAIL
        return self.state


class RateLimitGate:
    """Reset deadline shared by every thread using the same client.

    When one worker gets rate limited, the others hold off too instead of
    burning their own retries against the same closed window. ``cancel()``
    wakes every waiting thread so Ctrl-C does not sit out a long reset.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._reset_at = 0.0
        self.hits = 0

    def block_for(self, seconds: float) -> None:
        with self._lock:
            self.hits += 1
            self._reset_at = max(self._reset_at, time.time() + seconds)

    @property
    def waiting(self) -> int:
        """Seconds until the gate opens, 0 if open."""
        return max(0, int(self._reset_at - time.time()))

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def pause(self, seconds: float) -> None:
        """Sleep up to ``seconds``; raises as soon as the gate is cancelled."""
        if self._cancelled.wait(seconds):
            raise ExportCancelledError("Export cancelled")

    def wait(self) -> None:
        if self.cancelled:
            raise ExportCancelledError("Export cancelled")
        with self._lock:
            remaining = self._reset_at - time.time()
        if remaining > 0:
            self.pause(remaining)
