"""Shared fixtures: a fake GitHub API behind a real GitHubClient.

Only httpx is mocked; routing, retries, filtering and rendering are real.
"""

import base64
import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from github_repo_exporter.github import GitHubClient


def mock_response(status_code=200, json_body=None, headers=None):
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.content = json.dumps(json_body).encode() if json_body is not None else b""
    resp.json.return_value = json_body
    resp.text = json.dumps(json_body) if json_body is not None else ""
    resp.headers = httpx.Headers(headers or {})
    return resp


class FakeGitHub:
    """Serves one repository from an in-memory {path: bytes} mapping."""

    def __init__(self, owner="owner", name="repo", branch="main", files=None, sizes=None):
        self.owner = owner
        self.name = name
        self.branch = branch
        self.files = files or {}
        self.sizes = sizes or {}
        # endpoint -> list of responses served before the real one
        self.queued: dict[str, list] = {}
        self.calls: list[str] = []

    def queue(self, endpoint, *responses):
        self.queued.setdefault(endpoint, []).extend(responses)

    def _tree(self):
        items, dirs = [], set()
        for path in sorted(self.files):
            parts = path.split("/")
            for i in range(1, len(parts)):
                d = "/".join(parts[:i])
                if d not in dirs:
                    dirs.add(d)
                    items.append({"path": d, "type": "tree", "sha": f"t-{d}"})
            size = self.sizes.get(path, len(self.files[path]))
            items.append({"path": path, "type": "blob", "size": size, "sha": f"b-{path}"})
        return {"sha": "root", "truncated": False, "tree": items}

    def __call__(self, method, url, params=None):
        self.calls.append(url)
        if self.queued.get(url):
            item = self.queued[url].pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        base = f"/repos/{self.owner}/{self.name}"
        if url == base:
            return mock_response(200, {"full_name": f"{self.owner}/{self.name}", "default_branch": self.branch})
        if url == f"{base}/git/trees/{self.branch}":
            return mock_response(200, self._tree())
        if url.startswith(f"{base}/contents/"):
            path = url[len(f"{base}/contents/"):]
            if path in self.files:
                data = self.files[path]
                return mock_response(200, {
                    "type": "file",
                    "path": path,
                    "encoding": "base64",
                    "content": base64.b64encode(data).decode(),
                    "sha": f"b-{path}",
                })
        return mock_response(404, {"message": "Not Found"})


@pytest.fixture(autouse=True)
def _no_sleep():
    # Rate-limit and transient-error waits go through the gate's pause
    with patch("github_repo_exporter.github.time.sleep"), \
            patch("github_repo_exporter.retry.RateLimitGate.pause") as pause:
        yield pause


@pytest.fixture
def make_client():
    def _make(fake: FakeGitHub) -> GitHubClient:
        client = GitHubClient(token="test-token")
        client._min_interval = 0
        client._client.request = MagicMock(side_effect=fake)
        return client

    return _make
