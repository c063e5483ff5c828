"""Decide which tree entries make it into the export.

Rules, first match wins:

1. not a file
2. inside an ignored directory (build output, dependencies, VCS metadata)
3. larger than the size threshold
4. binary by extension
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath

from .models import MAX_FILE_SIZE, EntryType, FilterDecision, SkipReason, TreeEntry

IGNORED_DIRS: frozenset[str] = frozenset(
    {
        # Version control
        ".git",
        ".svn",
        ".hg",
        # Build outputs
        "target",
        "dist",
        "build",
        "out",
        "_build",
        ".next",
        ".nuxt",
        # Dependencies
        "node_modules",
        "bower_components",
        ".venv",
        "venv",
        "__pycache__",
        ".eggs",
        ".tox",
        ".nox",
        # Caches
        ".cache",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".gradle",
        # IDE/Editor
        ".idea",
        ".vscode",
        ".vs",
        # Coverage
        "coverage",
        "htmlcov",
    }
)

# OS metadata files, treated like ignored directories
IGNORED_FILES: frozenset[str] = frozenset({".DS_Store", "Thumbs.db"})

BINARY_EXTENSIONS: frozenset[str] = frozenset(
    {
        # Executables and libraries
        ".exe", ".dll", ".so", ".dylib", ".bin", ".o", ".obj", ".a", ".lib",
        ".class", ".jar", ".war", ".pyc", ".pyo", ".pyd", ".wasm", ".elf",
        # Archives
        ".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".7z", ".rar", ".zst",
        ".whl", ".deb", ".rpm", ".dmg", ".iso", ".apk",
        # Images
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".icns", ".tif", ".tiff",
        ".webp", ".psd", ".heic",
        # Fonts
        ".ttf", ".otf", ".woff", ".woff2", ".eot",
        # Media
        ".mp3", ".mp4", ".wav", ".ogg", ".flac", ".avi", ".mov", ".mkv", ".webm",
        # Documents and data
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
        ".sqlite", ".db", ".pkl", ".npy", ".npz", ".parquet", ".h5",
        ".pt", ".onnx", ".safetensors",
    }
)

# Bytes sampled by the content heuristic
BINARY_SAMPLE_SIZE = 8192


@dataclass(frozen=True)
class FileFilter:
    """Exclusion rules; pure and deterministic."""

    max_file_size: int = MAX_FILE_SIZE
    ignored_dirs: frozenset[str] = IGNORED_DIRS
    binary_extensions: frozenset[str] = BINARY_EXTENSIONS
    extra_ignored_dirs: frozenset[str] = field(default_factory=frozenset)

    def classify(self, entry: TreeEntry) -> FilterDecision:
        if entry.type is not EntryType.FILE:
            return FilterDecision(False, SkipReason.NOT_A_FILE)

        path = PurePosixPath(entry.path)
        ignored = self.ignored_dirs | self.extra_ignored_dirs
        if any(part in ignored for part in path.parts[:-1]) or path.name in IGNORED_FILES:
            return FilterDecision(False, SkipReason.IGNORED_DIRECTORY)

        if entry.size > self.max_file_size:
            return FilterDecision(False, SkipReason.TOO_LARGE)

        if path.suffix.lower() in self.binary_extensions:
            return FilterDecision(False, SkipReason.BINARY)

        return FilterDecision(True)


DEFAULT_FILTER = FileFilter()


def classify(entry: TreeEntry) -> FilterDecision:
    """Classify an entry with the default rules."""
    return DEFAULT_FILTER.classify(entry)


def looks_binary(data: bytes) -> bool:
    """Content check for files whose extension did not give them away.

    A null byte, or more than 30% control characters, in the first 8 KiB.
    Bytes >= 0x80 count as text so UTF-8 documents pass.
    """
    sample = data[:BINARY_SAMPLE_SIZE]
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    control = sum(1 for b in sample if b < 32 and b not in (9, 10, 12, 13, 27))
    return control / len(sample) > 0.30
