"""Unit tests for the retry state machine and rate-limit gate."""

import threading
import time
from unittest.mock import patch

import pytest

from .errors import ExportCancelledError, NetworkError, RateLimitExceededError
from .retry import (
    RateLimitGate,
    RetryMachine,
    RetryPolicy,
    RetryState,
    WaitStrategy,
    parse_rate_limit_headers,
)


def describe_parse_rate_limit_headers():
    def it_reads_retry_after():
        assert parse_rate_limit_headers({"retry-after": "30"}) == 30.0

    def it_reads_reset_when_exhausted():
        headers = {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1100"}
        assert parse_rate_limit_headers(headers, now=1000.0) == 101.0

    def it_ignores_reset_while_requests_remain():
        headers = {"x-ratelimit-remaining": "12", "x-ratelimit-reset": "1100"}
        assert parse_rate_limit_headers(headers, now=1000.0) is None

    def it_never_goes_negative():
        headers = {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "900"}
        assert parse_rate_limit_headers(headers, now=1000.0) == 0.0

    def it_returns_none_for_garbage():
        assert parse_rate_limit_headers({"retry-after": "soon"}) is None
        assert parse_rate_limit_headers({}) is None


def describe_RetryMachine():
    def describe_until_reset():
        def it_waits_for_the_server_reset():
            machine = RetryMachine(RetryPolicy(), "/repos/o/r")
            assert machine.rate_limited(42.0, 403) is RetryState.WAIT
            assert machine.wait == 42.0

        def it_falls_back_to_backoff_without_headers():
            machine = RetryMachine(RetryPolicy(base_delay=1.0, backoff_factor=2.0), "/x")
            machine.rate_limited(None, 429)
            assert machine.wait == 1.0

        def it_fails_after_max_retries():
            machine = RetryMachine(RetryPolicy(max_retries=3), "/repos/o/r")
            for _ in range(3):
                assert machine.rate_limited(0.0, 429) is RetryState.WAIT
                machine.waited()
                machine.retry()
            assert machine.rate_limited(0.0, 429) is RetryState.FAIL
            assert isinstance(machine.error, RateLimitExceededError)
            assert machine.error.status == 429
            assert "after 3 retries" in str(machine.error)

        def it_fails_when_reset_is_too_far_away():
            machine = RetryMachine(RetryPolicy(max_wait=60), "/repos/o/r")
            assert machine.rate_limited(3000.0, 403) is RetryState.FAIL
            assert "more than the 60s limit" in str(machine.error)

    def describe_exponential():
        def it_doubles_the_wait():
            policy = RetryPolicy(max_retries=5, strategy=WaitStrategy.EXPONENTIAL, base_delay=1.0)
            machine = RetryMachine(policy, "/c")
            waits = []
            for _ in range(4):
                machine.rate_limited(None, 429)
                waits.append(machine.wait)
                machine.waited()
                machine.retry()
            assert waits == [1.0, 2.0, 4.0, 8.0]

        def it_honours_a_longer_retry_after():
            policy = RetryPolicy(strategy=WaitStrategy.EXPONENTIAL, base_delay=1.0)
            machine = RetryMachine(policy, "/c")
            machine.rate_limited(10.0, 429)
            assert machine.wait == 10.0

    def describe_network_errors():
        def it_retries_once_then_fails():
            machine = RetryMachine(RetryPolicy(), "/c")
            assert machine.network_failed("ConnectError") is RetryState.WAIT
            machine.waited()
            machine.retry()
            assert machine.network_failed("ConnectError") is RetryState.FAIL
            assert isinstance(machine.error, NetworkError)
            assert "ConnectError" in str(machine.error)

    def it_walks_the_states_in_order():
        machine = RetryMachine(RetryPolicy(), "/c")
        assert machine.state is RetryState.ATTEMPT
        assert machine.rate_limited(1.0, 429) is RetryState.WAIT
        assert machine.waited() is RetryState.RETRY
        assert machine.retry() is RetryState.ATTEMPT
        assert machine.succeeded() is RetryState.DONE


def describe_RateLimitGate():
    def it_is_open_by_default():
        gate = RateLimitGate()
        assert gate.waiting == 0
        with patch.object(gate, "pause") as pause:
            gate.wait()
        pause.assert_not_called()

    def it_sleeps_until_the_reset():
        gate = RateLimitGate()
        gate.block_for(30)
        assert gate.hits == 1
        assert 28 <= gate.waiting <= 30
        with patch.object(gate, "pause") as pause:
            gate.wait()
        assert 29 < pause.call_args[0][0] <= 30

    def it_keeps_the_latest_deadline():
        gate = RateLimitGate()
        gate.block_for(60)
        gate.block_for(5)
        assert gate.hits == 2
        assert gate.waiting >= 58

    def it_pauses_without_cancellation():
        gate = RateLimitGate()
        started = time.monotonic()
        gate.pause(0.01)
        assert time.monotonic() - started >= 0.005

    def it_refuses_to_wait_once_cancelled():
        gate = RateLimitGate()
        gate.cancel()
        assert gate.cancelled
        with pytest.raises(ExportCancelledError):
            gate.wait()
        with pytest.raises(ExportCancelledError):
            gate.pause(60)

    def it_wakes_a_blocked_waiter_on_cancel():
        gate = RateLimitGate()
        gate.block_for(3600)
        errors = []

        def waiter():
            try:
                gate.wait()
            except ExportCancelledError as e:
                errors.append(e)

        thread = threading.Thread(target=waiter)
        thread.start()
        time.sleep(0.05)
        gate.cancel()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert len(errors) == 1
