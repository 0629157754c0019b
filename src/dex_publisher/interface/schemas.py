"""Pydantic request / response DTOs for the API boundary."""

from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, Field, field_validator, model_validator

from dex_publisher.domain.entities import FileChange, FileEncoding


class FileChangeIn(BaseModel):
    """One file in a publish request; binary content is base64-encoded."""

    path: str
    content: str
    encoding: FileEncoding = FileEncoding.TEXT

    @field_validator("path")
    @classmethod
    def _path_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "path must not be empty."
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def _binary_is_base64(self) -> FileChangeIn:
        if self.encoding is FileEncoding.BINARY:
            try:
                base64.b64decode(self.content, validate=True)
            except (binascii.Error, ValueError) as exc:
                msg = f"content of '{self.path}' is not valid base64."
                raise ValueError(msg) from exc
        return self

    def to_domain(self) -> FileChange:
        if self.encoding is FileEncoding.BINARY:
            return FileChange.binary(self.path, base64.b64decode(self.content))
        return FileChange.text(self.path, self.content)


class PublishRequest(BaseModel):
    """Request body for ``POST /repos/{owner}/{repo}/publish``."""

    branch: str | None = None
    message: str
    files: list[FileChangeIn] = Field(min_length=1)

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            msg = "message must not be empty."
            raise ValueError(msg)
        return stripped


class PublishResponse(BaseModel):
    commit_sha: str
    tree_sha: str
    parent_sha: str
    files: list[str]


class DexConfigRequest(BaseModel):
    """Broker branding for ``PUT .../dex-config`` and ``POST .../setup``."""

    broker_id: str
    broker_name: str
    theme_css: str | None = None
    telegram_link: str | None = None
    discord_link: str | None = None
    x_link: str | None = None
    primary_logo: str | None = None
    secondary_logo: str | None = None
    favicon: str | None = None


class StepFailureOut(BaseModel):
    step: str
    error_type: str
    message: str


class ProvisionResponse(BaseModel):
    commit_sha: str
    failures: list[StepFailureOut]
    details: dict[str, object]


class WorkflowStepOut(BaseModel):
    name: str
    status: str
    conclusion: str | None
    number: int


class WorkflowJobOut(BaseModel):
    id: int
    name: str
    status: str
    conclusion: str | None
    started_at: str | None
    completed_at: str | None
    steps: list[WorkflowStepOut]


class WorkflowRunOut(BaseModel):
    id: int
    name: str
    status: str
    conclusion: str | None
    created_at: str
    updated_at: str
    html_url: str
    jobs: list[WorkflowJobOut] = []


class WorkflowRunListResponse(BaseModel):
    total_count: int
    workflow_runs: list[WorkflowRunOut]


class CacheStatsResponse(BaseModel):
    hits: int
    misses: int
    size: int
    hit_rate: float
    saved_api_calls: int


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
