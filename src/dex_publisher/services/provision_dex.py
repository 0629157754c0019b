"""Provision-DEX use case — pushes a broker's configuration to its DEX repository.

The commit is the required step.  Reading back the deployment workflow state
is best-effort: its failure is returned in the report, not raised.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dex_publisher.domain.entities import DexConfig, DexImages, FileChange, ProvisionReport
from dex_publisher.services.dex_files import build_config_files, load_workflow_files
from dex_publisher.services.publish_files import PublishFilesUseCase
from dex_publisher.services.steps import Step, run_steps
from dex_publisher.services.workflow_status import WorkflowStatusService

logger = logging.getLogger(__name__)

UPDATE_MESSAGE = "Update DEX configuration and branding"
SETUP_MESSAGE = "Setup DEX with workflow files and configuration"


class ProvisionDexUseCase:
    def __init__(
        self,
        publisher: PublishFilesUseCase,
        workflow_status: WorkflowStatusService,
        branch: str = "main",
        workflows_dir: Path | None = None,
    ) -> None:
        self._publisher = publisher
        self._status = workflow_status
        self._branch = branch
        self._workflows_dir = workflows_dir

    async def update_config(
        self, owner: str, repo: str, config: DexConfig, images: DexImages | None = None
    ) -> ProvisionReport:
        """Commit the rendered configuration files in one commit."""
        files = build_config_files(config, images)
        return await self._publish_with_followups(owner, repo, files, UPDATE_MESSAGE)

    async def setup_repository(
        self, owner: str, repo: str, config: DexConfig, images: DexImages | None = None
    ) -> ProvisionReport:
        """Commit workflow files and configuration together as the first DEX commit."""
        files = load_workflow_files(self._workflows_dir) + build_config_files(config, images)
        logger.info("Setting up repository %s/%s with a single commit", owner, repo)
        return await self._publish_with_followups(owner, repo, files, SETUP_MESSAGE)

    async def _publish_with_followups(
        self, owner: str, repo: str, files: list[FileChange], message: str
    ) -> ProvisionReport:
        outcome = await run_steps(
            [
                Step(
                    "publish",
                    lambda: self._publisher.publish(owner, repo, self._branch, files, message),
                ),
                Step(
                    "workflow_status",
                    lambda: self._status.get_run_status(owner, repo),
                    required=False,
                ),
            ]
        )
        details: dict[str, object] = {}
        runs = outcome.results.get("workflow_status")
        if runs is not None:
            details["workflow_runs"] = runs.total_count
        return ProvisionReport(
            commit_sha=outcome.results["publish"],
            failures=outcome.failures,
            details=details,
        )
