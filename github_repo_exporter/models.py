"""Data models and constants for repository export."""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

GITHUB_API = "https://api.github.com"
MAX_FILE_SIZE = 1_000_000  # 1MB, also the contents API inline limit


class EntryType(str, Enum):
    FILE = "file"
    DIR = "dir"


class Outcome(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    """Why an entry was left out of the export."""

    NOT_A_FILE = "not a file"
    IGNORED_DIRECTORY = "ignored directory"
    TOO_LARGE = "file too large"
    BINARY = "binary file"


@dataclass(frozen=True)
class RepoRef:
    """A repository at an optional ref (branch, tag or commit SHA)."""

    owner: str
    name: str
    ref: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def with_ref(self, ref: str) -> "RepoRef":
        return replace(self, ref=ref)


@dataclass(frozen=True)
class TreeEntry:
    """One node of a git tree listing."""

    path: str
    type: EntryType
    size: int = 0
    sha: str = ""


@dataclass(frozen=True)
class FilterDecision:
    include: bool
    reason: SkipReason | None = None


@dataclass(frozen=True)
class FetchResult:
    """Outcome of exporting a single path."""

    path: str
    outcome: Outcome
    content: str | None = None
    reason: str | None = None

    @classmethod
    def ok(cls, path: str, content: str) -> "FetchResult":
        return cls(path=path, outcome=Outcome.OK, content=content)

    @classmethod
    def skipped(cls, path: str, reason: SkipReason | str) -> "FetchResult":
        text = reason.value if isinstance(reason, SkipReason) else reason
        return cls(path=path, outcome=Outcome.SKIPPED, reason=text)

    @classmethod
    def failed(cls, path: str, error: BaseException | str) -> "FetchResult":
        return cls(path=path, outcome=Outcome.FAILED, reason=str(error))


@dataclass
class ExportReport:
    """Summary of one export run."""

    repo: RepoRef
    results: list[FetchResult] = field(default_factory=list)
    output_path: Path | None = None

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def exported(self) -> int:
        return self._count(Outcome.OK)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED)

    @property
    def failed_paths(self) -> list[str]:
        return [r.path for r in self.results if r.outcome is Outcome.FAILED]
