"""Unit tests for repository reference parsing."""

import pytest

from .errors import InputInvalidError
from .models import RepoRef
from .utils import format_duration, make_repo_ref, parse_github_url, parse_owner_repo, parse_repo_input


def describe_parse_github_url():
    def it_parses_https_urls():
        assert parse_github_url("https://github.com/owner/repo") == RepoRef("owner", "repo")

    def it_strips_git_suffix_and_trailing_slash():
        assert parse_github_url("https://github.com/owner/repo.git") == RepoRef("owner", "repo")
        assert parse_github_url("https://github.com/owner/repo/") == RepoRef("owner", "repo")

    def it_accepts_urls_without_scheme():
        assert parse_github_url("github.com/tidynest/security_toolkit") == RepoRef(
            "tidynest", "security_toolkit"
        )

    def it_accepts_http_and_www():
        assert parse_github_url("http://www.github.com/owner/repo") == RepoRef("owner", "repo")

    def it_reads_ref_from_tree_urls():
        assert parse_github_url("https://github.com/owner/repo/tree/develop").ref == "develop"

    def it_keeps_slashes_in_tree_refs():
        assert parse_github_url("https://github.com/owner/repo/tree/feature/x").ref == "feature/x"

    def it_prefers_explicit_ref():
        repo = parse_github_url("https://github.com/owner/repo/tree/develop", ref="v1.0")
        assert repo.ref == "v1.0"

    def it_parses_ssh_urls():
        assert parse_github_url("git@github.com:owner/repo.git") == RepoRef("owner", "repo")

    def it_rejects_other_hosts():
        with pytest.raises(InputInvalidError, match="Not a GitHub URL"):
            parse_github_url("https://gitlab.com/owner/repo")

    def it_rejects_missing_repo():
        with pytest.raises(InputInvalidError, match="missing owner/repo"):
            parse_github_url("https://github.com/owner")

    def it_rejects_unknown_subpaths():
        with pytest.raises(InputInvalidError):
            parse_github_url("https://github.com/owner/repo/issues")


def describe_parse_owner_repo():
    def it_parses_owner_repo():
        assert parse_owner_repo("tidynest/repo_exporter") == RepoRef("tidynest", "repo_exporter")

    def it_rejects_single_segment():
        with pytest.raises(InputInvalidError):
            parse_owner_repo("invalid")

    def it_rejects_extra_segments():
        with pytest.raises(InputInvalidError):
            parse_owner_repo("a/b/c")


def describe_make_repo_ref():
    def it_trims_whitespace():
        assert make_repo_ref("  owner ", " repo\n") == RepoRef("owner", "repo")

    def it_rejects_empty_parts():
        with pytest.raises(InputInvalidError, match="cannot be empty"):
            make_repo_ref("owner", "")

    def it_rejects_invalid_characters():
        with pytest.raises(InputInvalidError, match="Invalid owner"):
            make_repo_ref("own er", "repo")

    def it_treats_empty_ref_as_none():
        assert make_repo_ref("o", "r", "").ref is None


def describe_parse_repo_input():
    def it_dispatches_urls():
        assert parse_repo_input("https://github.com/o/r") == RepoRef("o", "r")

    def it_dispatches_owner_repo():
        assert parse_repo_input("o/r", ref="main") == RepoRef("o", "r", "main")

    def it_rejects_bare_names():
        with pytest.raises(InputInvalidError, match="Expected 'owner/repo'"):
            parse_repo_input("tidynest")

    def it_rejects_empty_input():
        with pytest.raises(InputInvalidError):
            parse_repo_input("   ")


def describe_format_duration():
    def it_formats_seconds():
        assert format_duration(42.7) == "42s"

    def it_formats_minutes():
        assert format_duration(725) == "12m 5s"

    def it_clamps_negative():
        assert format_duration(-3) == "0s"
