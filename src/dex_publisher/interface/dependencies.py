"""FastAPI dependency injection wiring."""

from __future__ import annotations

from functools import lru_cache

import httpx
from fastapi import Depends

from dex_publisher.infrastructure.conditional_cache import ConditionalCacheTransport
from dex_publisher.infrastructure.config import Settings, get_settings
from dex_publisher.infrastructure.etag_cache import CacheStore
from dex_publisher.infrastructure.github_rest_adapter import GitHubRestAdapter
from dex_publisher.services.provision_dex import ProvisionDexUseCase
from dex_publisher.services.publish_files import PublishFilesUseCase
from dex_publisher.services.workflow_status import WorkflowStatusService

_http_client: httpx.AsyncClient | None = None
_cache_store: CacheStore | None = None


async def startup() -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _cache_store  # noqa: PLW0603

    settings = get_settings()
    _cache_store = CacheStore()
    _http_client = httpx.AsyncClient(
        transport=ConditionalCacheTransport(_cache_store),
        timeout=httpx.Timeout(settings.http_timeout_seconds),
    )


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _cache_store  # noqa: PLW0603

    if _http_client:
        await _http_client.aclose()
        _http_client = None
    _cache_store = None


@lru_cache(maxsize=1)
def _settings() -> Settings:
    return get_settings()


def get_app_settings() -> Settings:
    return _settings()


def get_cache_store() -> CacheStore:
    assert _cache_store is not None, "startup() was not called"
    return _cache_store


def get_github_adapter() -> GitHubRestAdapter:
    settings = _settings()
    assert _http_client is not None, "startup() was not called"

    token = settings.github_token.get_secret_value() if settings.github_token else None
    return GitHubRestAdapter(client=_http_client, token=token, base_url=settings.github_api_url)


def get_publisher(
    adapter: GitHubRestAdapter = Depends(get_github_adapter),
    settings: Settings = Depends(get_app_settings),
) -> PublishFilesUseCase:
    return PublishFilesUseCase(
        git_store=adapter,
        conditional_ref_update=settings.conditional_ref_update,
        dedupe_blobs=settings.dedupe_blobs,
    )


def get_workflow_status(
    adapter: GitHubRestAdapter = Depends(get_github_adapter),
) -> WorkflowStatusService:
    return WorkflowStatusService(reader=adapter)


def get_provisioner(
    publisher: PublishFilesUseCase = Depends(get_publisher),
    workflow_status: WorkflowStatusService = Depends(get_workflow_status),
    settings: Settings = Depends(get_app_settings),
) -> ProvisionDexUseCase:
    return ProvisionDexUseCase(
        publisher=publisher,
        workflow_status=workflow_status,
        branch=settings.default_branch,
        workflows_dir=settings.workflows_dir,
    )
