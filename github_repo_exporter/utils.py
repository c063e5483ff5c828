"""Parsing of user-supplied repository references."""

import re
from urllib.parse import urlparse

from .errors import InputInvalidError
from .models import RepoRef

GITHUB_HOSTS = ("github.com", "www.github.com")

# GitHub owner/repo names: letters, digits, '-', '_' and '.'
_NAME_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")
_SSH_RE = re.compile(r"^git@github\.com:([^/]+)/([^/]+?)(?:\.git)?/?$")


def parse_owner_repo(path: str, ref: str | None = None) -> RepoRef:
    """Parse "owner/repo" (optionally ending in ".git") into a RepoRef."""
    parts = [p.strip() for p in path.strip().strip("/").split("/")]
    if len(parts) != 2:
        raise InputInvalidError(
            f"Invalid repository format: '{path}'. Expected 'owner/repo' or a GitHub URL"
        )
    owner, name = parts[0], parts[1].removesuffix(".git")
    return make_repo_ref(owner, name, ref)


def make_repo_ref(owner: str, name: str, ref: str | None = None) -> RepoRef:
    """Validate owner and repository name separately (e.g. from two prompts)."""
    owner, name = owner.strip(), name.strip()
    if not owner or not name:
        raise InputInvalidError("Owner and repository name cannot be empty")
    for label, value in (("owner", owner), ("repository name", name)):
        if not _NAME_RE.match(value) or value in (".", ".."):
            raise InputInvalidError(f"Invalid {label}: '{value}'")
    return RepoRef(owner=owner, name=name, ref=ref or None)


def parse_github_url(url: str, ref: str | None = None) -> RepoRef:
    """Parse a GitHub URL into a RepoRef.

    Supports:
    - https://github.com/owner/repo (http, www, trailing .git or slash)
    - https://github.com/owner/repo/tree/<ref>
    - github.com/owner/repo
    - git@github.com:owner/repo.git

    An explicit ``ref`` wins over one embedded in the URL.
    """
    url = url.strip()

    if url.startswith("git@"):
        match = _SSH_RE.match(url)
        if not match:
            raise InputInvalidError(f"Invalid GitHub SSH URL: '{url}'")
        return make_repo_ref(match.group(1), match.group(2), ref)

    if "://" not in url:
        url = f"https://{url}"
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or parsed.netloc.lower() not in GITHUB_HOSTS:
        raise InputInvalidError(
            f"Not a GitHub URL: '{url}'. Expected format: https://github.com/owner/repo"
        )

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        raise InputInvalidError(f"Invalid GitHub URL (missing owner/repo): '{url}'")

    url_ref = None
    if len(parts) >= 4 and parts[2] in ("tree", "blob", "commit"):
        # Refs containing '/' are ambiguous in URLs; take the whole remainder
        url_ref = "/".join(parts[3:]) if parts[2] == "tree" else parts[3]
    elif len(parts) > 2:
        raise InputInvalidError(f"Invalid GitHub URL: '{url}'")

    return make_repo_ref(parts[0], parts[1].removesuffix(".git"), ref or url_ref)


def parse_repo_input(text: str, ref: str | None = None) -> RepoRef:
    """Parse any supported repository reference: URL, SSH URL or owner/repo."""
    text = text.strip()
    if not text:
        raise InputInvalidError("Repository reference cannot be empty")
    lowered = text.lower()
    if (
        lowered.startswith(("http://", "https://", "git@"))
        or lowered.startswith(tuple(f"{h}/" for h in GITHUB_HOSTS))
    ):
        return parse_github_url(text, ref)
    if "/" in text:
        return parse_owner_repo(text, ref)
    raise InputInvalidError(
        f"Invalid repository reference: '{text}'. Expected 'owner/repo' or a GitHub URL"
    )


def format_duration(seconds: float) -> str:
    """Human readable wait time, e.g. '42s' or '12m 5s'."""
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}m {secs}s"
