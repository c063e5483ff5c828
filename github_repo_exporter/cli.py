"""CLI for exporting a GitHub repository to Markdown."""

import argparse
import logging
import sys
from pathlib import Path

from .errors import ExporterError, InputInvalidError, PartialFailureError
from .export import export_repository
from .filters import FileFilter
from .github import GitHubClient
from .models import FetchResult, Outcome, RepoRef
from .retry import RetryPolicy, WaitStrategy
from .settings import Settings, get_settings
from .utils import format_duration, make_repo_ref, parse_repo_input

EXIT_ERROR = 1
EXIT_PARTIAL = 2
EXIT_INTERRUPTED = 130


def _progress(msg: str):
    sys.stdout.write(f"\033[2K\r{msg}")
    sys.stdout.flush()


def _log(msg: str):
    sys.stderr.write(f"\033[2K\r{msg}\n")
    sys.stderr.flush()


def prompt_repository(ref: str | None = None) -> RepoRef:
    """Ask for owner and repository separately.

    A full URL or owner/repo typed at the first prompt is accepted as is.
    """
    try:
        owner = input("GitHub username/organization (or owner/repo, or URL): ").strip()
        if "/" in owner:
            return parse_repo_input(owner, ref)
        name = input("Repository name: ").strip()
    except EOFError as e:
        raise InputInvalidError("No repository given") from e
    return make_repo_ref(owner, name, ref)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="github-export",
        description="Export a GitHub repository's files into a single Markdown document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  github-export https://github.com/owner/repo\n"
            "  github-export owner/repo --ref v1.2.0\n"
            "  github-export            (prompts for owner and repository)\n"
            "\n"
            "Set GITHUB_TOKEN (environment or .env) to raise the API rate limit."
        ),
    )
    parser.add_argument(
        "repo",
        nargs="?",
        help="GitHub URL or owner/repo (prompted for when omitted)",
    )
    parser.add_argument(
        "--ref",
        default=None,
        help="Branch, tag or commit SHA (default: the repository's default branch)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the Markdown file (default: current directory)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Concurrent content requests (default: 10)",
    )
    parser.add_argument(
        "--max-file-size",
        type=int,
        default=None,
        help="Skip files larger than this many bytes (default: 1000000)",
    )
    parser.add_argument(
        "--hide-skipped",
        action="store_true",
        help="Leave skipped files out of the document instead of listing them",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 2 if any file could not be fetched",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="More logging (-v info, -vv debug)",
    )
    return parser


def configure_logging(settings: Settings, verbosity: int) -> None:
    level = {0: settings.log_level.upper(), 1: "INFO"}.get(verbosity, "DEBUG")
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def print_error_suggestions():
    _log("\nPossible causes:")
    _log("  • Repository doesn't exist (check for typos)")
    _log("  • Repository is private (check your GITHUB_TOKEN permissions)")
    _log("  • Network issues or GitHub API is down")
    _log("  • Rate limit exceeded (set GITHUB_TOKEN for a higher limit)")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings, args.verbose)

    file_filter = FileFilter(
        max_file_size=args.max_file_size if args.max_file_size is not None else settings.max_file_size,
        extra_ignored_dirs=frozenset(settings.extra_ignored_dirs),
    )
    listing_policy = RetryPolicy(
        max_retries=settings.max_retries,
        max_wait=settings.max_rate_limit_wait,
    )
    content_policy = RetryPolicy(
        max_retries=settings.content_max_retries,
        strategy=WaitStrategy.EXPONENTIAL,
        max_wait=settings.max_rate_limit_wait,
    )

    try:
        if args.repo:
            repo = parse_repo_input(args.repo, args.ref)
        else:
            repo = prompt_repository(args.ref)
    except InputInvalidError as e:
        _log(f"❌ {e}")
        return EXIT_ERROR

    with GitHubClient.from_settings(settings) as client:
        if not client.authenticated:
            _log("⚠️  GITHUB_TOKEN is not set; using the unauthenticated rate limit (60 requests/hour)")

        def on_result(done: int, total: int, result: FetchResult):
            retries = f", {client.api_retries} retries" if client.api_retries else ""
            rate = f", rate limited ({format_duration(client.rate_limit_waiting)})" if client.rate_limit_waiting else ""
            _progress(f"  [{done}/{total}] {result.path}{retries}{rate}")

        print(f"📂 Fetching repository contents for {repo.full_name}...", flush=True)
        try:
            report = export_repository(
                client,
                repo,
                output_dir=args.output_dir,
                file_filter=file_filter,
                max_workers=args.workers if args.workers is not None else settings.max_workers,
                show_skipped=settings.show_skipped and not args.hide_skipped,
                listing_policy=listing_policy,
                content_policy=content_policy,
                on_result=on_result,
            )
        except KeyboardInterrupt:
            _log("Interrupted")
            return EXIT_INTERRUPTED
        except ExporterError as e:
            _log(f"❌ Failed to fetch repository: {e}")
            print_error_suggestions()
            return EXIT_ERROR

    sys.stdout.write("\n")
    print(
        f"Done: {report.exported} exported, {report.skipped} skipped, {report.failed} failed"
        + (f", {client.api_retries} retries" if client.api_retries else ""),
        flush=True,
    )
    for result in report.results:
        if result.outcome is Outcome.FAILED:
            _log(f"  ✗ {result.path}: {result.reason}")

    if report.output_path is None:
        print("⚠️  No files found in the repository or all files were skipped.")
    else:
        print(f"✅ Export complete: {report.output_path}")

    if args.strict and report.failed:
        _log(f"❌ {PartialFailureError(report.failed_paths)}")
        return EXIT_PARTIAL
    return 0


if __name__ == "__main__":
    sys.exit(main())
