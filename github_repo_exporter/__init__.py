"""Export a GitHub repository into a single Markdown document.

Walks the repository tree through the REST API, filters out binaries,
build artifacts and oversized files, fetches the rest concurrently and
renders them as Markdown.
"""

from .cli import main
from .export import export_repository
from .github import GitHubClient
from .models import ExportReport, FetchResult, Outcome, RepoRef, TreeEntry
from .utils import parse_repo_input

__all__ = [
    "main",
    "export_repository",
    "GitHubClient",
    "ExportReport",
    "FetchResult",
    "Outcome",
    "RepoRef",
    "TreeEntry",
    "parse_repo_input",
]

if __name__ == "__main__":
    main()
