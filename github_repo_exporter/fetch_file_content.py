"""Fetch file contents from GitHub with a bounded worker pool."""

import base64
import binascii
import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from .errors import ExporterError
from .filters import looks_binary
from .github import GitHubClient
from .models import FetchResult, RepoRef, SkipReason, TreeEntry
from .retry import CONTENT_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

MAX_WORKERS = 10

ProgressCallback = Callable[[int, int, FetchResult], None]


def decode_content(data: dict) -> bytes | None:
    """Decode a contents/blobs API payload; None when it has no inline content."""
    if data.get("encoding") != "base64" or data.get("content") is None:
        return None
    # GitHub wraps base64 at 60 columns; b64decode drops the newlines
    return base64.b64decode(data["content"])


def to_text(path: str, raw: bytes) -> FetchResult:
    if looks_binary(raw):
        return FetchResult.skipped(path, SkipReason.BINARY)
    return FetchResult.ok(path, raw.decode("utf-8", errors="replace"))


def fetch_one(
    client: GitHubClient, repo: RepoRef, entry: TreeEntry, policy: RetryPolicy = CONTENT_POLICY
) -> FetchResult:
    """Fetch and decode one file. API errors become a failed result."""
    try:
        data = client.get_contents(repo.owner, repo.name, entry.path, ref=repo.ref, policy=policy)
        if isinstance(data, list):
            return FetchResult.failed(entry.path, "path is a directory")
        if data.get("type") == "submodule":
            return FetchResult.skipped(entry.path, SkipReason.NOT_A_FILE)

        raw = decode_content(data)
        if raw is None:
            # Files over 1MB come back without inline content; the blobs API has them
            sha = data.get("sha") or entry.sha
            logger.debug("No inline content for %s, reading blob %s", entry.path, sha)
            raw = decode_content(client.get_blob(repo.owner, repo.name, sha, policy=policy))
        if raw is None:
            return FetchResult.failed(entry.path, "no content returned")
    except ExporterError as e:
        logger.info("Failed to fetch %s: %s", entry.path, e)
        return FetchResult.failed(entry.path, e)
    except (binascii.Error, ValueError) as e:
        return FetchResult.failed(entry.path, f"could not decode content: {e}")

    return to_text(entry.path, raw)


def fetch_contents(
    client: GitHubClient,
    repo: RepoRef,
    entries: Sequence[TreeEntry],
    max_workers: int = MAX_WORKERS,
    policy: RetryPolicy = CONTENT_POLICY,
    on_result: ProgressCallback | None = None,
) -> list[FetchResult]:
    """Fetch every entry; the i-th result always belongs to the i-th entry.

    Workers write into their own pre-allocated slot, so completion order
    does not matter and no results list is shared.
    """
    results: list[FetchResult | None] = [None] * len(entries)
    if not entries:
        return []

    total = len(entries)
    done = 0
    done_lock = threading.Lock()

    def process_one(index: int) -> None:
        nonlocal done
        entry = entries[index]
        result = fetch_one(client, repo, entry, policy)
        results[index] = result
        if on_result is not None:
            with done_lock:
                done += 1
                on_result(done, total, result)

    executor = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        futures = [executor.submit(process_one, i) for i in range(total)]
        for future in futures:
            # Re-raises anything fetch_one did not turn into a result
            future.result()
    except BaseException:
        # Ctrl-C or an unexpected bug: drop whatever has not started yet and
        # wake workers parked on the rate-limit gate
        client.gate.cancel()
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown()

    return [r for r in results if r is not None]
