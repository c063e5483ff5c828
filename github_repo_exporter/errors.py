"""Exception hierarchy for the exporter.

Listing-stage errors are fatal and surface through the CLI. Fetch-stage
errors are caught per file and recorded as failed results.
"""


class ExporterError(Exception):
    """Base exception for the whole package."""


class InputInvalidError(ExporterError):
    """The repository reference could not be parsed."""


class GitHubApiError(ExporterError):
    """GitHub answered with a status we do not handle otherwise."""

    def __init__(self, message: str, status: int | None = None, endpoint: str | None = None):
        super().__init__(message)
        self.status = status
        self.endpoint = endpoint


class NotFoundError(GitHubApiError):
    """Repository, ref or path does not exist (404 / 422)."""


class EmptyRepositoryError(NotFoundError):
    """Repository exists but has no commits (409)."""


class AccessDeniedError(GitHubApiError):
    """Bad credentials or a private repository (401 / 403)."""


class RateLimitExceededError(GitHubApiError):
    """Still rate limited after the retry budget was spent."""


class NetworkError(ExporterError):
    """Transport failure or server error that survived its retry."""


class PartialFailureError(ExporterError):
    """Some files could not be fetched."""

    def __init__(self, failed_paths: list[str]):
        super().__init__(
            f"{len(failed_paths)} file(s) could not be fetched: {', '.join(failed_paths)}"
        )
        self.failed_paths = failed_paths


class ExportCancelledError(ExporterError):
    """The run was cancelled (Ctrl-C) while a request was waiting."""
