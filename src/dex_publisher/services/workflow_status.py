"""Workflow status reads — deployment progress of a DEX repository.

Every call here is a plain ``GET`` and so is served through the ETag cache
when the adapter's client uses the conditional transport.
"""

from __future__ import annotations

import logging
from typing import Any

from dex_publisher.domain.entities import WorkflowJob, WorkflowRun, WorkflowRunList, WorkflowStep
from dex_publisher.domain.ports.workflow_reader import WorkflowReader
from dex_publisher.domain.value_objects import RepoCoordinates

logger = logging.getLogger(__name__)


class WorkflowStatusService:
    """Summarises GitHub Actions runs for a repository."""

    def __init__(self, reader: WorkflowReader, per_page: int = 10) -> None:
        self._reader = reader
        self._per_page = per_page

    async def get_run_status(
        self, owner: str, repo: str, workflow_name: str | None = None
    ) -> WorkflowRunList:
        """Latest runs, optionally restricted to the workflow called *workflow_name*."""
        target = RepoCoordinates(owner=owner, repo=repo)
        workflows = await self._reader.list_workflows(target)
        if not workflows.get("total_count"):
            logger.info("No workflows found in %s", target.full_name)
            return WorkflowRunList(total_count=0, runs=[])

        workflow_id: int | None = None
        if workflow_name:
            match = next(
                (wf for wf in workflows.get("workflows", []) if wf.get("name") == workflow_name),
                None,
            )
            if match is not None:
                workflow_id = int(match["id"])
            else:
                logger.warning("Workflow '%s' not found in %s", workflow_name, target.full_name)

        data = await self._reader.list_workflow_runs(
            target, workflow_id=workflow_id, per_page=self._per_page
        )
        return WorkflowRunList(
            total_count=int(data.get("total_count", 0)),
            runs=[_parse_run(run) for run in data.get("workflow_runs", [])],
        )

    async def get_run_details(self, owner: str, repo: str, run_id: int) -> WorkflowRun:
        """One run together with its jobs and their steps."""
        target = RepoCoordinates(owner=owner, repo=repo)
        run = await self._reader.get_workflow_run(target, run_id)
        jobs = await self._reader.list_run_jobs(target, run_id)
        return _parse_run(run, jobs.get("jobs", []), default_name="Unnamed workflow run")


def _parse_run(
    data: dict[str, Any],
    jobs: list[dict[str, Any]] | None = None,
    default_name: str = "Unnamed workflow",
) -> WorkflowRun:
    return WorkflowRun(
        id=int(data["id"]),
        name=data.get("name") or default_name,
        status=data.get("status") or "unknown",
        conclusion=data.get("conclusion"),
        created_at=str(data.get("created_at", "")),
        updated_at=str(data.get("updated_at", "")),
        html_url=str(data.get("html_url", "")),
        jobs=[_parse_job(job) for job in jobs or []],
    )


def _parse_job(data: dict[str, Any]) -> WorkflowJob:
    return WorkflowJob(
        id=int(data["id"]),
        name=data.get("name") or "Unnamed job",
        status=data.get("status") or "unknown",
        conclusion=data.get("conclusion"),
        started_at=data.get("started_at"),
        completed_at=data.get("completed_at"),
        steps=[
            WorkflowStep(
                name=step.get("name") or "Unnamed step",
                status=step.get("status") or "unknown",
                conclusion=step.get("conclusion"),
                number=int(step.get("number", 0)),
            )
            for step in data.get("steps") or []
        ],
    )
