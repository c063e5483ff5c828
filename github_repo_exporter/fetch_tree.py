"""Walk a repository's git tree into an ordered list of entries."""

import logging
from collections import deque

from .errors import EmptyRepositoryError
from .github import GitHubClient
from .models import EntryType, RepoRef, TreeEntry
from .retry import LISTING_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

_ENTRY_TYPES = {"blob": EntryType.FILE, "tree": EntryType.DIR}


def resolve_ref(client: GitHubClient, repo: RepoRef, policy: RetryPolicy = LISTING_POLICY) -> RepoRef:
    """Fill in the default branch when no ref was given."""
    if repo.ref:
        return repo
    data = client.get_repo(repo.owner, repo.name, policy=policy)
    branch = data.get("default_branch")
    if not branch:
        raise EmptyRepositoryError(f"Repository {repo.full_name} has no default branch")
    logger.debug("Resolved default branch of %s: %s", repo.full_name, branch)
    return repo.with_ref(branch)


def _to_entry(item: dict, prefix: str = "") -> TreeEntry | None:
    entry_type = _ENTRY_TYPES.get(item.get("type"))
    if entry_type is None:
        # "commit" entries are submodules, which live in other repositories
        logger.debug("Skipping %s entry %s", item.get("type"), item.get("path"))
        return None
    path = f"{prefix}{item['path']}"
    return TreeEntry(path=path, type=entry_type, size=item.get("size") or 0, sha=item.get("sha", ""))


def _walk_truncated(client: GitHubClient, repo: RepoRef, policy: RetryPolicy) -> list[TreeEntry]:
    """List a tree too large for one recursive call, one sub-tree at a time."""
    entries: list[TreeEntry] = []
    pending = deque([(repo.ref, "")])
    while pending:
        tree_sha, prefix = pending.popleft()
        data = client.get_tree(repo.owner, repo.name, tree_sha, recursive=False, policy=policy)
        if data.get("truncated"):
            logger.warning("Sub-tree %s is still truncated, some entries are missing", prefix or "/")
        for item in data.get("tree", []):
            entry = _to_entry(item, prefix)
            if entry is None:
                continue
            entries.append(entry)
            if entry.type is EntryType.DIR:
                pending.append((entry.sha, f"{entry.path}/"))
    # Match the recursive listing's order: git sorts trees as if named "dir/"
    entries.sort(key=lambda e: f"{e.path}/" if e.type is EntryType.DIR else e.path)
    return entries


def dedupe_entries(entries: list[TreeEntry]) -> list[TreeEntry]:
    """Keep the first occurrence of each path, preserving order."""
    seen: set[str] = set()
    unique = []
    for entry in entries:
        if entry.path in seen:
            logger.warning("Duplicate path in tree listing, keeping first: %s", entry.path)
            continue
        seen.add(entry.path)
        unique.append(entry)
    return unique


def walk_tree(
    client: GitHubClient, repo: RepoRef, policy: RetryPolicy = LISTING_POLICY
) -> list[TreeEntry]:
    """Return every file and directory of ``repo`` at its ref.

    Without a ref the repository's default branch is listed.

    Raises:
        NotFoundError: repository or ref does not exist.
        RateLimitExceededError: still rate limited after ``policy.max_retries``.
        NetworkError: transport failure that survived its retry.
    """
    if not repo.ref:
        repo = resolve_ref(client, repo, policy)
    data = client.get_tree(repo.owner, repo.name, repo.ref, recursive=True, policy=policy)

    if data.get("truncated"):
        logger.warning(
            "Tree listing for %s is truncated, walking sub-trees individually", repo.full_name
        )
        return dedupe_entries(_walk_truncated(client, repo, policy))

    entries = []
    for item in data.get("tree", []):
        entry = _to_entry(item)
        if entry is not None:
            entries.append(entry)
    return dedupe_entries(entries)
