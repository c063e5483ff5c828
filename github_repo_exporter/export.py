"""End-to-end export: walk -> filter -> fetch -> assemble."""

import logging
from datetime import datetime
from pathlib import Path

from .export_markdown import render_markdown, write_export
from .fetch_file_content import MAX_WORKERS, ProgressCallback, fetch_contents
from .fetch_tree import resolve_ref, walk_tree
from .filters import DEFAULT_FILTER, FileFilter
from .github import GitHubClient
from .models import EntryType, ExportReport, FetchResult, RepoRef, TreeEntry
from .retry import CONTENT_POLICY, LISTING_POLICY, RetryPolicy

logger = logging.getLogger(__name__)


def plan_export(
    entries: list[TreeEntry], file_filter: FileFilter = DEFAULT_FILTER
) -> tuple[list[FetchResult | None], list[TreeEntry]]:
    """Split file entries into skip notices and entries to fetch.

    Returns one slot per file entry in tree order (a skipped result, or None
    where the fetched result goes) and the eligible entries in the same order.
    """
    slots: list[FetchResult | None] = []
    eligible: list[TreeEntry] = []
    for entry in entries:
        if entry.type is not EntryType.FILE:
            continue
        decision = file_filter.classify(entry)
        if decision.include:
            slots.append(None)
            eligible.append(entry)
        else:
            slots.append(FetchResult.skipped(entry.path, decision.reason))
    return slots, eligible


def merge_results(
    slots: list[FetchResult | None], fetched: list[FetchResult]
) -> list[FetchResult]:
    """Fill the empty slots with fetched results, in order."""
    pending = iter(fetched)
    return [slot if slot is not None else next(pending) for slot in slots]


def export_repository(
    client: GitHubClient,
    repo: RepoRef,
    output_dir: Path | None = None,
    file_filter: FileFilter = DEFAULT_FILTER,
    max_workers: int = MAX_WORKERS,
    show_skipped: bool = True,
    listing_policy: RetryPolicy = LISTING_POLICY,
    content_policy: RetryPolicy = CONTENT_POLICY,
    on_result: ProgressCallback | None = None,
    now: datetime | None = None,
) -> ExportReport:
    """Export ``repo`` to a Markdown file.

    Listing errors propagate and abort the run. Per-file errors end up as
    failed results in the report. No file is written when nothing could be
    exported.
    """
    repo = resolve_ref(client, repo, listing_policy)
    entries = walk_tree(client, repo, listing_policy)

    slots, eligible = plan_export(entries, file_filter)
    logger.info(
        "%s@%s: %d files, %d eligible", repo.full_name, repo.ref, len(slots), len(eligible)
    )

    fetched = fetch_contents(
        client, repo, eligible, max_workers=max_workers, policy=content_policy, on_result=on_result
    )
    report = ExportReport(repo=repo, results=merge_results(slots, fetched))

    if report.exported == 0:
        logger.warning("Nothing to export from %s", repo.full_name)
        return report

    document = render_markdown(repo, report.results, show_skipped=show_skipped)
    report.output_path = write_export(document, repo.name, output_dir, now)
    return report
