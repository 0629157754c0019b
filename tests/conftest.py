"""Shared fixtures: an in-memory GitHub served through ``httpx.MockTransport``.

Provides:
  - FakeGitHub: enough of the git data and Actions REST API to publish
    commits, with real ETag / ``If-None-Match`` behaviour on reads
  - Pytest fixtures wiring it to a cache-enabled ``httpx.AsyncClient``
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import json
import re
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
import pytest_asyncio

from dex_publisher.infrastructure.conditional_cache import ConditionalCacheTransport
from dex_publisher.infrastructure.etag_cache import CacheStore
from dex_publisher.infrastructure.github_rest_adapter import GitHubRestAdapter
from dex_publisher.services.blob_builder import git_blob_id

API = "https://api.github.test"
OWNER = "dex-org"
REPO = "my-dex"

README_CONTENT = b"# My DEX\n"

_REPO_RE = re.compile(r"^/repos/(?P<owner>[^/]+)/(?P<repo>[^/]+)(?P<rest>/.*)$")


def _sha(*parts: object) -> str:
    return hashlib.sha1("\0".join(str(p) for p in parts).encode()).hexdigest()


class FakeGitHub:
    """In-memory single-repository GitHub.

    Trees are flat ``{path: blob_sha}`` maps; commits are
    ``{"tree": sha, "parents": [...], "message": str}``.
    """

    def __init__(self, owner: str = OWNER, repo: str = REPO) -> None:
        self.owner = owner
        self.repo = repo
        self.blobs: dict[str, bytes] = {}
        self.trees: dict[str, dict[str, str]] = {}
        self.commits: dict[str, dict[str, Any]] = {}
        self.refs: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self.not_modified = 0
        self.blob_posts = 0
        self.fail_blob_post: int | None = None
        self.status_overrides: dict[tuple[str, str], tuple[int, dict[str, Any], dict[str, str]]] = {}
        self.yield_control = False
        self.workflows: list[dict[str, Any]] = []
        self.runs: list[dict[str, Any]] = []
        self.jobs: dict[int, list[dict[str, Any]]] = {}

        readme_sha = self._store_blob(README_CONTENT)
        tree_sha = self._store_tree({"README.md": readme_sha})
        self.initial_commit = self._store_commit(tree_sha, [], "Initial commit")
        self.refs["heads/main"] = self.initial_commit
        self.readme_sha = readme_sha

    # ── State helpers ───────────────────────────────────────────────────

    def _store_blob(self, content: bytes) -> str:
        sha = git_blob_id(content)
        self.blobs[sha] = content
        return sha

    def _store_tree(self, entries: dict[str, str]) -> str:
        sha = _sha("tree", *sorted(entries.items()))
        self.trees[sha] = dict(entries)
        return sha

    def _store_commit(self, tree: str, parents: list[str], message: str) -> str:
        sha = _sha("commit", tree, *parents, message, len(self.commits))
        self.commits[sha] = {"tree": tree, "parents": parents, "message": message}
        return sha

    def head(self, branch: str = "main") -> str:
        return self.refs[f"heads/{branch}"]

    def tree_of(self, commit_sha: str) -> dict[str, str]:
        return self.trees[self.commits[commit_sha]["tree"]]

    def file_at_head(self, path: str, branch: str = "main") -> bytes:
        return self.blobs[self.tree_of(self.head(branch))[path]]

    def advance_head(self, message: str = "external change", branch: str = "main") -> str:
        """Simulate another writer committing directly to the branch."""
        parent = self.head(branch)
        tree = dict(self.tree_of(parent))
        tree["EXTERNAL.md"] = self._store_blob(message.encode())
        sha = self._store_commit(self._store_tree(tree), [parent], message)
        self.refs[f"heads/{branch}"] = sha
        return sha

    def count(self, method: str, fragment: str) -> int:
        return sum(
            1 for r in self.requests if r.method == method and fragment in r.url.path
        )

    # ── Transport ───────────────────────────────────────────────────────

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if self.yield_control:
            await asyncio.sleep(0)
        self.requests.append(request)

        override = self.status_overrides.get((request.method, request.url.path))
        if override is not None:
            status, payload, headers = override
            return _json(status, payload, headers=headers)

        match = _REPO_RE.match(request.url.path)
        if not match or (match["owner"], match["repo"]) != (self.owner, self.repo):
            return _json(404, {"message": "Not Found"})
        rest = match["rest"]
        body = json.loads(request.content) if request.content else {}

        if request.method == "GET":
            return self._get(request, rest)
        if request.method == "POST" and rest == "/git/blobs":
            return self._post_blob(body)
        if request.method == "POST" and rest == "/git/trees":
            return self._post_tree(body)
        if request.method == "POST" and rest == "/git/commits":
            return self._post_commit(body)
        if request.method == "PATCH" and rest.startswith("/git/refs/"):
            return self._patch_ref(rest.removeprefix("/git/refs/"), body)
        return _json(404, {"message": "Not Found"})

    def _get(self, request: httpx.Request, rest: str) -> httpx.Response:
        payload: dict[str, Any] | None = None
        if rest.startswith("/git/ref/"):
            name = rest.removeprefix("/git/ref/")
            if name in self.refs:
                payload = {"ref": f"refs/{name}", "object": {"sha": self.refs[name], "type": "commit"}}
        elif rest.startswith("/git/commits/"):
            sha = rest.removeprefix("/git/commits/")
            if sha in self.commits:
                commit = self.commits[sha]
                payload = {
                    "sha": sha,
                    "tree": {"sha": commit["tree"]},
                    "parents": [{"sha": p} for p in commit["parents"]],
                    "message": commit["message"],
                }
        elif rest == "/actions/workflows":
            payload = {"total_count": len(self.workflows), "workflows": self.workflows}
        elif rest == "/actions/runs":
            payload = {"total_count": len(self.runs), "workflow_runs": self.runs}
        elif m := re.fullmatch(r"/actions/workflows/(\d+)/runs", rest):
            runs = [r for r in self.runs if r.get("workflow_id") == int(m[1])]
            payload = {"total_count": len(runs), "workflow_runs": runs}
        elif m := re.fullmatch(r"/actions/runs/(\d+)/jobs", rest):
            jobs = self.jobs.get(int(m[1]), [])
            payload = {"total_count": len(jobs), "jobs": jobs}
        elif m := re.fullmatch(r"/actions/runs/(\d+)", rest):
            payload = next((r for r in self.runs if r["id"] == int(m[1])), None)

        if payload is None:
            return _json(404, {"message": "Not Found"})

        etag = '"' + _sha(json.dumps(payload, sort_keys=True)) + '"'
        if request.headers.get("if-none-match") == etag:
            self.not_modified += 1
            return httpx.Response(304, headers={"ETag": etag})
        return _json(200, payload, headers={"ETag": etag})

    def _post_blob(self, body: dict[str, Any]) -> httpx.Response:
        self.blob_posts += 1
        if self.fail_blob_post is not None and self.blob_posts == self.fail_blob_post:
            return _json(502, {"message": "Server Error"})
        if body.get("encoding") != "base64":
            return _json(422, {"message": "encoding must be base64"})
        sha = self._store_blob(base64.b64decode(body["content"]))
        return _json(201, {"sha": sha, "url": f"{API}/blobs/{sha}"})

    def _post_tree(self, body: dict[str, Any]) -> httpx.Response:
        base = body.get("base_tree")
        entries = dict(self.trees.get(base, {})) if base else {}
        if base and base not in self.trees:
            return _json(422, {"message": "Invalid base_tree"})
        for item in body["tree"]:
            if item["sha"] not in self.blobs:
                return _json(422, {"message": f"Invalid sha {item['sha']}"})
            entries[item["path"]] = item["sha"]
        return _json(201, {"sha": self._store_tree(entries)})

    def _post_commit(self, body: dict[str, Any]) -> httpx.Response:
        if body["tree"] not in self.trees:
            return _json(422, {"message": "Invalid tree"})
        sha = self._store_commit(body["tree"], list(body["parents"]), body["message"])
        commit = self.commits[sha]
        return _json(
            201,
            {
                "sha": sha,
                "tree": {"sha": commit["tree"]},
                "parents": [{"sha": p} for p in commit["parents"]],
                "message": commit["message"],
            },
        )

    def _patch_ref(self, name: str, body: dict[str, Any]) -> httpx.Response:
        if name not in self.refs:
            return _json(422, {"message": "Reference does not exist"})
        new_sha = body["sha"]
        if new_sha not in self.commits:
            return _json(422, {"message": "Object does not exist"})
        if not body.get("force") and not self._is_ancestor(self.refs[name], new_sha):
            return _json(422, {"message": "Update is not a fast forward"})
        self.refs[name] = new_sha
        return _json(200, {"ref": f"refs/{name}", "object": {"sha": new_sha, "type": "commit"}})

    def _is_ancestor(self, ancestor: str, sha: str) -> bool:
        pending = [sha]
        while pending:
            current = pending.pop()
            if current == ancestor:
                return True
            pending.extend(self.commits.get(current, {}).get("parents", []))
        return False


def _json(
    status: int, payload: dict[str, Any], headers: dict[str, str] | None = None
) -> httpx.Response:
    return httpx.Response(status, json=payload, headers=headers)


def make_http_client(fake: FakeGitHub, store: CacheStore) -> httpx.AsyncClient:
    """A cache-enabled client whose network is *fake*."""
    transport = ConditionalCacheTransport(store, httpx.MockTransport(fake.handler))
    return httpx.AsyncClient(transport=transport)


# ── Fixtures ────────────────────────────────────────────────────────────────


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def cache_store() -> CacheStore:
    return CacheStore()


@pytest_asyncio.fixture
async def http_client(
    fake_github: FakeGitHub, cache_store: CacheStore
) -> AsyncIterator[httpx.AsyncClient]:
    client = make_http_client(fake_github, cache_store)
    yield client
    await client.aclose()


@pytest.fixture
def adapter(http_client: httpx.AsyncClient) -> GitHubRestAdapter:
    return GitHubRestAdapter(client=http_client, token="test-token", base_url=API)
