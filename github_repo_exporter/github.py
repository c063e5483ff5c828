"""GitHub REST API client using httpx with throttling and rate-limit retry."""

import logging
import threading
import time
from urllib.parse import quote

import httpx

from .errors import (
    AccessDeniedError,
    EmptyRepositoryError,
    GitHubApiError,
    NotFoundError,
)
from .models import GITHUB_API
from .retry import LISTING_POLICY, RateLimitGate, RetryMachine, RetryPolicy, RetryState, parse_rate_limit_headers
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

USER_AGENT = "github-repo-exporter"

# Steady-state throttle shared by all workers; avoids bursts that trigger
# GitHub's secondary rate limits
REQUESTS_PER_SECOND = 10.0


class _RateLimited(Exception):
    def __init__(self, status, wait):
        self.status = status
        self.wait = wait


class _Retryable(Exception):
    pass


def is_rate_limited(resp: httpx.Response) -> bool:
    """429, or 403 carrying GitHub's rate-limit signals."""
    if resp.status_code == 429:
        return True
    if resp.status_code != 403:
        return False
    if resp.headers.get("x-ratelimit-remaining") == "0" or "retry-after" in resp.headers:
        return True
    return "rate limit" in resp.text.lower()


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return str(body.get("message", ""))
    return ""


def _expect_object(endpoint: str, data) -> dict:
    if not isinstance(data, dict):
        raise GitHubApiError(
            f"Unexpected response from {endpoint}: expected an object, got {type(data).__name__}",
            endpoint=endpoint,
        )
    return data


class GitHubClient:
    """Thin client for the GitHub v3 REST endpoints the exporter uses.

    Safe to share between threads: httpx.Client is thread-safe and the
    throttle and rate-limit gate are lock-guarded.
    """

    def __init__(
        self,
        token: str | None = None,
        timeout: float = 30.0,
        requests_per_second: float = REQUESTS_PER_SECOND,
        gate: RateLimitGate | None = None,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(base_url=GITHUB_API, headers=headers, timeout=timeout)
        self.authenticated = bool(token)
        self.gate = gate or RateLimitGate()
        self.api_retries = 0  # count of transient errors that were retried
        self._stats_lock = threading.Lock()
        self._throttle_lock = threading.Lock()
        self._last_request_time = 0.0
        self._min_interval = 1.0 / requests_per_second if requests_per_second > 0 else 0.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "GitHubClient":
        settings = settings or get_settings()
        token = settings.github_token.get_secret_value() if settings.github_token else None
        return cls(
            token=token,
            timeout=settings.request_timeout,
            requests_per_second=settings.requests_per_second,
        )

    @property
    def rate_limit_waiting(self) -> int:
        """Seconds until rate limit resets, 0 if not limited."""
        return self.gate.waiting

    def _throttle(self) -> None:
        """Wait if needed to maintain steady request rate."""
        with self._throttle_lock:
            now = time.time()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval:
                time.sleep(self._min_interval - elapsed)
            self._last_request_time = time.time()

    def _send(self, endpoint: str, params: dict | None) -> httpx.Response:
        """One GET; classifies the response, no retry logic."""
        try:
            resp = self._client.request("GET", endpoint, params=params)
        except httpx.RequestError as e:
            # Transport failures, undecodable bodies and redirect loops alike
            raise _Retryable(f"{type(e).__name__}: {e}") from e

        status = resp.status_code
        if 200 <= status < 300:
            return resp
        if is_rate_limited(resp):
            raise _RateLimited(status, parse_rate_limit_headers(resp.headers))
        if status >= 500:
            raise _Retryable(f"HTTP {status}")

        message = _error_message(resp)
        detail = f"{endpoint} (HTTP {status})" + (f": {message}" if message else "")
        if status in (404, 422):
            raise NotFoundError(f"Not found: {detail}", status=status, endpoint=endpoint)
        if status == 409:
            raise EmptyRepositoryError(f"Repository is empty: {detail}", status=status, endpoint=endpoint)
        if status in (401, 403):
            raise AccessDeniedError(f"Access denied: {detail}", status=status, endpoint=endpoint)
        raise GitHubApiError(f"GitHub API error: {detail}", status=status, endpoint=endpoint)

    def get(self, endpoint: str, params: dict | None = None, policy: RetryPolicy = LISTING_POLICY):
        """GET an API endpoint and return the decoded JSON body.

        Rate-limit and transient failures are retried per ``policy``;
        RateLimitExceededError or NetworkError is raised once it gives up.
        Other client errors raise immediately.
        """
        machine = RetryMachine(policy, endpoint)
        while True:
            if machine.state is RetryState.FAIL:
                raise machine.error
            if machine.state is RetryState.WAIT:
                self.gate.wait()
                machine.waited()
            if machine.state is RetryState.RETRY:
                machine.retry()

            self.gate.wait()
            self._throttle()
            try:
                resp = self._send(endpoint, params)
            except _RateLimited as e:
                if machine.rate_limited(e.wait, e.status) is RetryState.WAIT:
                    logger.warning(
                        "Rate limited on %s (HTTP %s), waiting %.0fs (retry %d/%d)",
                        endpoint, e.status, machine.wait,
                        machine.rate_limit_retries, policy.max_retries,
                    )
                    self.gate.block_for(machine.wait)
                continue
            except _Retryable as e:
                if machine.network_failed(str(e)) is RetryState.WAIT:
                    with self._stats_lock:
                        self.api_retries += 1
                    logger.info("Transient error on %s (%s), retrying", endpoint, e)
                    self.gate.pause(machine.wait)
                continue

            machine.succeeded()
            if not resp.content:
                return {}
            try:
                return resp.json()
            except ValueError as e:
                raise GitHubApiError(
                    f"Invalid JSON from {endpoint} (HTTP {resp.status_code})",
                    status=resp.status_code, endpoint=endpoint,
                ) from e

    def _get_object(self, endpoint: str, params: dict | None, policy: RetryPolicy) -> dict:
        return _expect_object(endpoint, self.get(endpoint, params, policy))

    # Endpoints

    def get_repo(self, owner: str, repo: str, policy: RetryPolicy = LISTING_POLICY) -> dict:
        return self._get_object(f"/repos/{owner}/{repo}", None, policy)

    def get_tree(
        self, owner: str, repo: str, tree_sha: str, recursive: bool = True,
        policy: RetryPolicy = LISTING_POLICY,
    ) -> dict:
        params = {"recursive": "1"} if recursive else None
        return self._get_object(f"/repos/{owner}/{repo}/git/trees/{quote(tree_sha)}", params, policy)

    def get_contents(
        self, owner: str, repo: str, path: str, ref: str | None = None,
        policy: RetryPolicy = LISTING_POLICY,
    ) -> dict | list:
        params = {"ref": ref} if ref else None
        endpoint = f"/repos/{owner}/{repo}/contents/{quote(path)}"
        data = self.get(endpoint, params, policy)
        # A directory lists its children; anything else must be an object
        if isinstance(data, list):
            return data
        return _expect_object(endpoint, data)

    def get_blob(self, owner: str, repo: str, sha: str, policy: RetryPolicy = LISTING_POLICY) -> dict:
        return self._get_object(f"/repos/{owner}/{repo}/git/blobs/{sha}", None, policy)

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
