"""Port: workflow run reader — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Any, Protocol

from dex_publisher.domain.value_objects import RepoCoordinates


class WorkflowReader(Protocol):
    """Read-only access to GitHub Actions metadata (raw JSON payloads)."""

    async def list_workflows(self, target: RepoCoordinates) -> dict[str, Any]:
        ...

    async def list_workflow_runs(
        self, target: RepoCoordinates, workflow_id: int | None = None, per_page: int = 10
    ) -> dict[str, Any]:
        ...

    async def get_workflow_run(self, target: RepoCoordinates, run_id: int) -> dict[str, Any]:
        ...

    async def list_run_jobs(self, target: RepoCoordinates, run_id: int) -> dict[str, Any]:
        ...
