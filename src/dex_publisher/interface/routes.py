"""API routes — thin controllers that delegate to the use cases."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from dex_publisher.domain.entities import DexConfig, DexImages, ProvisionReport
from dex_publisher.infrastructure.config import Settings
from dex_publisher.infrastructure.etag_cache import CacheStore
from dex_publisher.interface.dependencies import (
    get_app_settings,
    get_cache_store,
    get_provisioner,
    get_publisher,
    get_workflow_status,
)
from dex_publisher.interface.schemas import (
    CacheStatsResponse,
    DexConfigRequest,
    ProvisionResponse,
    PublishRequest,
    PublishResponse,
    WorkflowRunListResponse,
    WorkflowRunOut,
)
from dex_publisher.services.provision_dex import ProvisionDexUseCase
from dex_publisher.services.publish_files import PublishFilesUseCase
from dex_publisher.services.workflow_status import WorkflowStatusService

router = APIRouter()

_PUBLISH_ERRORS = {
    422: {"description": "Invalid path, content or commit message"},
    403: {"description": "Token lacks the required scope"},
    404: {"description": "Repository or branch not found"},
    409: {"description": "Branch moved during the publish"},
    503: {"description": "GitHub unavailable or rate limited; retry later"},
}


@router.post(
    "/repos/{owner}/{repo}/publish",
    response_model=PublishResponse,
    responses=_PUBLISH_ERRORS,
)
async def publish(
    owner: str,
    repo: str,
    body: PublishRequest,
    use_case: PublishFilesUseCase = Depends(get_publisher),
    settings: Settings = Depends(get_app_settings),
) -> PublishResponse:
    """Write all files to the branch as a single commit."""
    result = await use_case.publish_detailed(
        owner,
        repo,
        body.branch or settings.default_branch,
        [f.to_domain() for f in body.files],
        body.message,
    )
    return PublishResponse(
        commit_sha=result.commit_sha,
        tree_sha=result.tree_sha,
        parent_sha=result.parent_sha,
        files=result.files,
    )


@router.put(
    "/repos/{owner}/{repo}/dex-config",
    response_model=ProvisionResponse,
    responses=_PUBLISH_ERRORS,
)
async def update_dex_config(
    owner: str,
    repo: str,
    body: DexConfigRequest,
    use_case: ProvisionDexUseCase = Depends(get_provisioner),
) -> ProvisionResponse:
    """Commit the DEX configuration and branding files."""
    config, images = _to_domain(body)
    report = await use_case.update_config(owner, repo, config, images)
    return _provision_response(report)


@router.post(
    "/repos/{owner}/{repo}/setup",
    response_model=ProvisionResponse,
    responses=_PUBLISH_ERRORS,
)
async def setup_repository(
    owner: str,
    repo: str,
    body: DexConfigRequest,
    use_case: ProvisionDexUseCase = Depends(get_provisioner),
) -> ProvisionResponse:
    """Commit workflow files plus configuration as one commit."""
    config, images = _to_domain(body)
    report = await use_case.setup_repository(owner, repo, config, images)
    return _provision_response(report)


@router.get("/repos/{owner}/{repo}/workflow-runs", response_model=WorkflowRunListResponse)
async def workflow_runs(
    owner: str,
    repo: str,
    workflow_name: str | None = None,
    service: WorkflowStatusService = Depends(get_workflow_status),
) -> WorkflowRunListResponse:
    runs = await service.get_run_status(owner, repo, workflow_name)
    return WorkflowRunListResponse(
        total_count=runs.total_count,
        workflow_runs=[WorkflowRunOut(**asdict(run)) for run in runs.runs],
    )


@router.get("/repos/{owner}/{repo}/workflow-runs/{run_id}", response_model=WorkflowRunOut)
async def workflow_run_details(
    owner: str,
    repo: str,
    run_id: int,
    service: WorkflowStatusService = Depends(get_workflow_status),
) -> WorkflowRunOut:
    run = await service.get_run_details(owner, repo, run_id)
    return WorkflowRunOut(**asdict(run))


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(store: CacheStore = Depends(get_cache_store)) -> CacheStatsResponse:
    """ETag cache counters for observability."""
    stats = store.stats()
    return CacheStatsResponse(
        hits=stats.hits,
        misses=stats.misses,
        size=stats.size,
        hit_rate=stats.hit_rate,
        saved_api_calls=stats.saved_api_calls,
    )


@router.delete("/cache", status_code=204)
async def clear_cache(store: CacheStore = Depends(get_cache_store)) -> None:
    store.clear()


def _to_domain(body: DexConfigRequest) -> tuple[DexConfig, DexImages]:
    config = DexConfig(
        broker_id=body.broker_id,
        broker_name=body.broker_name,
        theme_css=body.theme_css,
        telegram_link=body.telegram_link,
        discord_link=body.discord_link,
        x_link=body.x_link,
    )
    images = DexImages(
        primary_logo=body.primary_logo,
        secondary_logo=body.secondary_logo,
        favicon=body.favicon,
    )
    return config, images


def _provision_response(report: ProvisionReport) -> ProvisionResponse:
    return ProvisionResponse(
        commit_sha=report.commit_sha,
        failures=[asdict(f) for f in report.failures],
        details=dict(report.details),
    )
