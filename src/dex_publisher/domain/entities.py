"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FileEncoding(str, Enum):
    """How the caller supplied a file's content."""

    TEXT = "text"
    BINARY = "binary"


@dataclass(frozen=True, slots=True)
class FileChange:
    """One file to write in a publish operation (repo-relative path)."""

    path: str
    content: bytes
    encoding: FileEncoding = FileEncoding.TEXT

    @classmethod
    def text(cls, path: str, content: str) -> FileChange:
        return cls(path=path, content=content.encode("utf-8"), encoding=FileEncoding.TEXT)

    @classmethod
    def binary(cls, path: str, content: bytes) -> FileChange:
        return cls(path=path, content=content, encoding=FileEncoding.BINARY)


@dataclass(frozen=True, slots=True)
class Blob:
    """A content-addressed blob on the remote store, bound to the path it serves."""

    sha: str
    path: str


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """One overlay entry of a new tree."""

    path: str
    blob_sha: str
    mode: str = "100644"
    type: str = "blob"


@dataclass(frozen=True, slots=True)
class Commit:
    """A commit object; this layer only ever creates single-parent commits."""

    sha: str
    tree_sha: str
    parent_sha: str | None
    message: str = ""


@dataclass(frozen=True, slots=True)
class Ref:
    """A mutable branch pointer, e.g. ``heads/main``."""

    name: str
    target_sha: str


@dataclass(frozen=True, slots=True)
class PublishResult:
    """Outcome of a successful atomic publish."""

    commit_sha: str
    tree_sha: str
    parent_sha: str
    files: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Validator and exact body of the most recent 200 for a request signature."""

    validator: str
    payload: bytes
    content_type: str | None = None


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Snapshot of the conditional cache counters."""

    hits: int
    misses: int
    size: int

    @property
    def hit_rate(self) -> float:
        """Percentage of cache-eligible responses served from the cache."""
        total = self.hits + self.misses
        return (self.hits / total) * 100 if total else 0.0

    @property
    def saved_api_calls(self) -> int:
        return self.hits


@dataclass(frozen=True, slots=True)
class StepFailure:
    """A best-effort step that failed without aborting the operation."""

    step: str
    error_type: str
    message: str


@dataclass(frozen=True, slots=True)
class ProvisionReport:
    """Result of a provisioning workflow: the commit plus any soft failures."""

    commit_sha: str
    failures: list[StepFailure] = field(default_factory=list)
    details: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DexConfig:
    """Broker branding that is rendered into the DEX template repository."""

    broker_id: str
    broker_name: str
    theme_css: str | None = None
    telegram_link: str | None = None
    discord_link: str | None = None
    x_link: str | None = None


@dataclass(frozen=True, slots=True)
class DexImages:
    """Optional branding images as ``data:image/...;base64,`` URIs."""

    primary_logo: str | None = None
    secondary_logo: str | None = None
    favicon: str | None = None


@dataclass(frozen=True, slots=True)
class WorkflowStep:
    name: str
    status: str
    conclusion: str | None
    number: int


@dataclass(frozen=True, slots=True)
class WorkflowJob:
    id: int
    name: str
    status: str
    conclusion: str | None
    started_at: str | None
    completed_at: str | None
    steps: list[WorkflowStep] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class WorkflowRun:
    """A single GitHub Actions run, optionally with its jobs."""

    id: int
    name: str
    status: str
    conclusion: str | None
    created_at: str
    updated_at: str
    html_url: str
    jobs: list[WorkflowJob] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class WorkflowRunList:
    total_count: int
    runs: list[WorkflowRun] = field(default_factory=list)
