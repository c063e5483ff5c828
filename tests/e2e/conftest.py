"""E2E test fixtures: real API, isolated temp directories."""

import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def run_cli(*args, output_dir=None, timeout=300):
    """Run the github-export CLI and return CompletedProcess."""
    cmd = [sys.executable, "-m", "github_repo_exporter"]
    if output_dir:
        cmd.extend(["--output-dir", str(output_dir)])
    cmd.extend(args)
    return subprocess.run(
        cmd, capture_output=True, text=True, timeout=timeout, cwd=PROJECT_ROOT,
    )


@pytest.fixture
def e2e_output_dir(tmp_path):
    """Isolated output dir for CLI invocations."""
    d = tmp_path / "results"
    d.mkdir()
    return d
