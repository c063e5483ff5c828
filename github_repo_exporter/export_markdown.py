"""Render fetch results as a single Markdown document."""

import re
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path, PurePosixPath

from .models import FetchResult, Outcome, RepoRef

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

LANGUAGES = {
    ".py": "python",
    ".pyi": "python",
    ".rs": "rust",
    ".go": "go",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".java": "java",
    ".kt": "kotlin",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".scala": "scala",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "zsh",
    ".ps1": "powershell",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".vue": "vue",
    ".md": "markdown",
    ".rst": "rst",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".ini": "ini",
    ".xml": "xml",
    ".proto": "protobuf",
    ".graphql": "graphql",
    ".tf": "hcl",
    ".lua": "lua",
    ".r": "r",
    ".dart": "dart",
    ".ex": "elixir",
    ".exs": "elixir",
    ".hs": "haskell",
}

SPECIAL_FILES = {
    "Dockerfile": "dockerfile",
    "Makefile": "makefile",
    "CMakeLists.txt": "cmake",
}

_BACKTICK_RUN = re.compile(r"`{3,}")


def language_for(path: str) -> str:
    p = PurePosixPath(path)
    if p.name in SPECIAL_FILES:
        return SPECIAL_FILES[p.name]
    return LANGUAGES.get(p.suffix.lower(), "text")


def fence_for(content: str) -> str:
    """A backtick fence longer than any run inside the content."""
    longest = max((len(m) for m in _BACKTICK_RUN.findall(content)), default=0)
    return "`" * max(3, longest + 1)


def render_file(result: FetchResult) -> str:
    content = result.content or ""
    fence = fence_for(content)
    if not content.endswith("\n"):
        content += "\n"
    return f"## {result.path}\n\n{fence}{language_for(result.path)}\n{content}{fence}\n"


def render_notice(result: FetchResult) -> str:
    label = "Skipped" if result.outcome is Outcome.SKIPPED else "Failed"
    return f"> {label} `{result.path}`: {result.reason}\n"


def render_markdown(
    repo: RepoRef, results: Sequence[FetchResult], show_skipped: bool = True
) -> str:
    """Render results in the given order.

    Deterministic: the same repo and results always give the same string.
    Failed files are always listed; skipped ones only with ``show_skipped``.
    """
    exported = sum(1 for r in results if r.outcome is Outcome.OK)
    skipped = sum(1 for r in results if r.outcome is Outcome.SKIPPED)
    failed = sum(1 for r in results if r.outcome is Outcome.FAILED)

    lines = [f"# Repository Export: {repo.full_name}\n"]
    if repo.ref:
        lines.append(f"- Ref: `{repo.ref}`")
    lines.append(f"- Files exported: {exported}")
    lines.append(f"- Files skipped: {skipped}")
    lines.append(f"- Files failed: {failed}")
    parts = ["\n".join(lines) + "\n"]

    for result in results:
        if result.outcome is Outcome.OK:
            parts.append(render_file(result))
        elif result.outcome is Outcome.FAILED or show_skipped:
            parts.append(render_notice(result))

    return "\n".join(parts)


def export_filename(repo_name: str, now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"{repo_name}_repo_export_{now.strftime(TIMESTAMP_FORMAT)}.md"


def write_export(
    document: str, repo_name: str, output_dir: Path | None = None, now: datetime | None = None
) -> Path:
    """Write the document to ``{repo_name}_repo_export_{timestamp}.md``."""
    output_dir = Path(output_dir) if output_dir is not None else Path.cwd()
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / export_filename(repo_name, now)
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(document)
    return path
