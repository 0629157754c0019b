"""GitHub REST API adapter — implements the GitStore and WorkflowReader ports."""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from typing import Any, Sequence

import httpx

from dex_publisher.domain.entities import Commit, Ref, TreeEntry
from dex_publisher.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TransientError,
    UnknownError,
    ValidationError,
)
from dex_publisher.domain.value_objects import RepoCoordinates

logger = logging.getLogger(__name__)

_GITHUB_API = "https://api.github.com"
_USER_AGENT = "dex-publisher/1.0"


class GitHubRestAdapter:
    """Concrete GitStore / WorkflowReader backed by the GitHub v3 REST API.

    All traffic goes through *client*; when that client is built on a
    :class:`~dex_publisher.infrastructure.conditional_cache.ConditionalCacheTransport`
    every ``GET`` here is revalidated with ETags transparently.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        base_url: str = _GITHUB_API,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._api_headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": _USER_AGENT,
        }
        if token:
            self._api_headers["Authorization"] = f"Bearer {token}"

    # ── Git data API ────────────────────────────────────────────────────

    async def get_ref(self, target: RepoCoordinates) -> Ref:
        """GET /repos/{owner}/{repo}/git/ref/heads/{branch} → Ref."""
        resp = await self._request("GET", f"{_repo_path(target)}/git/ref/{target.ref_name}")
        return _parse_ref(resp.json(), target)

    async def get_commit(self, target: RepoCoordinates, sha: str) -> Commit:
        """GET /repos/{owner}/{repo}/git/commits/{sha} → Commit."""
        resp = await self._request("GET", f"{_repo_path(target)}/git/commits/{sha}")
        return _parse_commit(resp.json())

    async def create_blob(self, target: RepoCoordinates, content: bytes) -> str:
        """POST /repos/{owner}/{repo}/git/blobs with base64 content → blob SHA."""
        resp = await self._request(
            "POST",
            f"{_repo_path(target)}/git/blobs",
            json={
                "content": base64.b64encode(content).decode("ascii"),
                "encoding": "base64",
            },
        )
        return str(resp.json()["sha"])

    async def create_tree(
        self, target: RepoCoordinates, base_tree_sha: str, entries: Sequence[TreeEntry]
    ) -> str:
        """POST /repos/{owner}/{repo}/git/trees overlaying *entries* → tree SHA."""
        resp = await self._request(
            "POST",
            f"{_repo_path(target)}/git/trees",
            json={
                "base_tree": base_tree_sha,
                "tree": [
                    {"path": e.path, "mode": e.mode, "type": e.type, "sha": e.blob_sha}
                    for e in entries
                ],
            },
        )
        return str(resp.json()["sha"])

    async def create_commit(
        self, target: RepoCoordinates, tree_sha: str, parent_sha: str, message: str
    ) -> Commit:
        """POST /repos/{owner}/{repo}/git/commits → Commit."""
        resp = await self._request(
            "POST",
            f"{_repo_path(target)}/git/commits",
            json={"message": message, "tree": tree_sha, "parents": [parent_sha]},
        )
        return _parse_commit(resp.json())

    async def update_ref(
        self, target: RepoCoordinates, sha: str, *, force: bool
    ) -> Ref:
        """PATCH /repos/{owner}/{repo}/git/refs/heads/{branch}.

        With ``force=False`` GitHub answers 422 when *sha* is not a
        fast-forward of the current head; that is reported as a conflict.
        A 422 on a forced update means the request itself was rejected.
        """
        resp = await self._request(
            "PATCH",
            f"{_repo_path(target)}/git/refs/{target.ref_name}",
            json={"sha": sha, "force": force},
            unprocessable_is_conflict=not force,
        )
        return _parse_ref(resp.json(), target)

    # ── Actions API (reads only) ────────────────────────────────────────

    async def list_workflows(self, target: RepoCoordinates) -> dict[str, Any]:
        """GET /repos/{owner}/{repo}/actions/workflows."""
        resp = await self._request("GET", f"{_repo_path(target)}/actions/workflows")
        data: dict[str, Any] = resp.json()
        return data

    async def list_workflow_runs(
        self, target: RepoCoordinates, workflow_id: int | None = None, per_page: int = 10
    ) -> dict[str, Any]:
        """GET runs for the whole repository or for one workflow."""
        if workflow_id is not None:
            endpoint = f"{_repo_path(target)}/actions/workflows/{workflow_id}/runs"
        else:
            endpoint = f"{_repo_path(target)}/actions/runs"
        resp = await self._request("GET", endpoint, params={"per_page": str(per_page)})
        data: dict[str, Any] = resp.json()
        return data

    async def get_workflow_run(self, target: RepoCoordinates, run_id: int) -> dict[str, Any]:
        """GET /repos/{owner}/{repo}/actions/runs/{run_id}."""
        resp = await self._request("GET", f"{_repo_path(target)}/actions/runs/{run_id}")
        data: dict[str, Any] = resp.json()
        return data

    async def list_run_jobs(self, target: RepoCoordinates, run_id: int) -> dict[str, Any]:
        """GET /repos/{owner}/{repo}/actions/runs/{run_id}/jobs."""
        resp = await self._request("GET", f"{_repo_path(target)}/actions/runs/{run_id}/jobs")
        data: dict[str, Any] = resp.json()
        return data

    # ── Transport + error translation ───────────────────────────────────

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        unprocessable_is_conflict: bool = False,
    ) -> httpx.Response:
        """Perform a GitHub API request with error translation."""
        url = f"{self._base_url}{endpoint}"
        try:
            resp = await self._client.request(
                method, url, headers=self._api_headers, json=json, params=params
            )
        except httpx.HTTPError as exc:
            raise TransientError(f"Network error calling {method} {url}: {exc}") from exc

        if resp.status_code in (200, 201):
            return resp

        raise _translate_error(method, url, resp, unprocessable_is_conflict)


def _repo_path(target: RepoCoordinates) -> str:
    return f"/repos/{target.owner}/{target.repo}"


def _parse_ref(data: dict[str, Any], target: RepoCoordinates) -> Ref:
    name = str(data.get("ref", f"refs/{target.ref_name}"))
    return Ref(name=name.removeprefix("refs/"), target_sha=str(data["object"]["sha"]))


def _parse_commit(data: dict[str, Any]) -> Commit:
    parents = data.get("parents") or []
    return Commit(
        sha=str(data["sha"]),
        tree_sha=str(data["tree"]["sha"]),
        parent_sha=str(parents[0]["sha"]) if parents else None,
        message=str(data.get("message", "")),
    )


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return ""


def _translate_error(
    method: str, url: str, resp: httpx.Response, unprocessable_is_conflict: bool
) -> Exception:
    """Map a non-success GitHub response onto the domain error taxonomy."""
    status = resp.status_code
    detail = _error_detail(resp)
    suffix = f": {detail}" if detail else ""

    if status == 401:
        return AuthorizationError(
            f"GitHub rejected the credentials for {method} {url}{suffix}", status_code=status
        )

    if status == 403:
        remaining = resp.headers.get("x-ratelimit-remaining", "")
        if remaining == "0":
            reset_raw = resp.headers.get("x-ratelimit-reset", "")
            try:
                reset_str = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc).strftime(
                    "%Y-%m-%d %H:%M:%S UTC"
                )
            except (ValueError, OSError):
                reset_str = reset_raw or "unknown"
            return TransientError(
                f"GitHub API rate limit exceeded. Resets at {reset_str}.", status_code=status
            )
        return AuthorizationError(
            f"Access denied for {method} {url}. The token may lack the required scope{suffix}",
            status_code=status,
        )

    if status == 429:
        return TransientError("GitHub API rate limit exceeded (HTTP 429).", status_code=status)

    if status == 404:
        return NotFoundError(f"Not found: {method} {url}{suffix}", status_code=status)

    if status == 409:
        return ConflictError(f"Conflict on {method} {url}{suffix}", status_code=status)

    if status == 422:
        if unprocessable_is_conflict:
            return ConflictError(
                f"Branch update rejected for {url}{suffix}", status_code=status
            )
        return ValidationError(f"GitHub rejected {method} {url}{suffix}", status_code=status)

    if status >= 500:
        return TransientError(
            f"GitHub API returned HTTP {status} for {method} {url}", status_code=status
        )

    logger.warning("Unexpected GitHub response %d for %s %s", status, method, url)
    return UnknownError(
        f"GitHub API returned HTTP {status} for {method} {url}{suffix}", status_code=status
    )
