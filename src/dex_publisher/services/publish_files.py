"""Publish-files use case — atomic multi-file commit to a remote branch.

This is the single entry point for writing to a repository.  It depends only
on the :class:`GitStore` port; the interface layer injects the concrete
GitHub adapter at runtime.

Order is fixed: read head → upload blobs (jointly awaited) → create tree →
create commit → advance ref.  The ref moves last, so a failure at any earlier
step leaves the branch exactly as it was.  Nothing here retries.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from dex_publisher.domain.entities import FileChange, PublishResult
from dex_publisher.domain.exceptions import DexPublisherError, UnknownError, ValidationError
from dex_publisher.domain.ports.git_store import GitStore
from dex_publisher.domain.value_objects import RepoCoordinates, normalize_path
from dex_publisher.services.blob_builder import build_blobs
from dex_publisher.services.commit_publisher import publish_commit
from dex_publisher.services.tree_composer import compose_tree

logger = logging.getLogger(__name__)

FileChanges = Mapping[str, FileChange | bytes | str] | Iterable[FileChange]


class PublishFilesUseCase:
    """Writes a set of files to a branch as exactly one new commit.

    Parameters
    ----------
    git_store:
        Adapter exposing blob/tree/commit/ref primitives.
    conditional_ref_update:
        Refuse to advance a branch whose head moved during the publish.
    dedupe_blobs:
        Upload identical file contents once per publish.
    """

    def __init__(
        self,
        git_store: GitStore,
        conditional_ref_update: bool = True,
        dedupe_blobs: bool = True,
    ) -> None:
        self._store = git_store
        self._conditional = conditional_ref_update
        self._dedupe = dedupe_blobs

    # ── Public entry points ─────────────────────────────────────────────

    async def publish(
        self,
        owner: str,
        repo: str,
        branch: str,
        changes: FileChanges,
        message: str,
    ) -> str:
        """Publish *changes* and return the new commit SHA."""
        result = await self.publish_detailed(owner, repo, branch, changes, message)
        return result.commit_sha

    async def publish_detailed(
        self,
        owner: str,
        repo: str,
        branch: str,
        changes: FileChanges,
        message: str,
    ) -> PublishResult:
        """Publish *changes* and return the commit, tree and parent SHAs."""
        target = RepoCoordinates(owner=owner, repo=repo, branch=branch)
        files = normalize_changes(changes)
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Commit message must not be empty.")

        logger.info(
            "Publishing %d file(s) to %s@%s", len(files), target.full_name, target.branch
        )
        try:
            return await self._run(target, files, message)
        except DexPublisherError:
            raise
        except Exception as exc:
            logger.exception("Unexpected failure publishing to %s", target.full_name)
            raise UnknownError(f"Publishing to {target.full_name} failed: {exc}") from exc

    # ── Pipeline ────────────────────────────────────────────────────────

    async def _run(
        self, target: RepoCoordinates, files: list[FileChange], message: str
    ) -> PublishResult:
        head_ref = await self._store.get_ref(target)
        head = await self._store.get_commit(target, head_ref.target_sha)

        blobs = await build_blobs(self._store, target, files, dedupe=self._dedupe)
        tree_sha = await compose_tree(self._store, target, head, blobs)
        commit = await publish_commit(
            self._store,
            target,
            tree_sha,
            head.sha,
            message,
            conditional=self._conditional,
        )

        logger.info("Published %s to %s@%s", commit.sha, target.full_name, target.branch)
        return PublishResult(
            commit_sha=commit.sha,
            tree_sha=tree_sha,
            parent_sha=head.sha,
            files=[f.path for f in files],
        )


def normalize_changes(changes: FileChanges) -> list[FileChange]:
    """Validate paths and collapse duplicates (last write wins).

    Accepts a path-keyed mapping of :class:`FileChange`, ``bytes`` (binary)
    or ``str`` (text), or an iterable of :class:`FileChange`.  Anything else
    is a :class:`ValidationError`.
    """
    if isinstance(changes, Mapping):
        items = [_coerce(path, value) for path, value in changes.items()]
    elif isinstance(changes, (str, bytes, bytearray)):
        raise ValidationError("File changes must be a mapping or an iterable of FileChange.")
    else:
        try:
            items = list(changes)
        except TypeError as exc:
            raise ValidationError(
                f"File changes must be a mapping or an iterable of FileChange, "
                f"not {type(changes).__name__}."
            ) from exc
        for item in items:
            if not isinstance(item, FileChange):
                raise ValidationError(
                    f"Expected FileChange in change set, got {type(item).__name__}."
                )

    by_path: dict[str, FileChange] = {}
    for change in items:
        if not isinstance(change.content, (bytes, bytearray)):
            raise ValidationError(f"Content for '{change.path}' must be bytes.")
        path = normalize_path(change.path)
        if path in by_path:
            logger.warning("Duplicate path '%s' in change set; keeping the last one", path)
        by_path[path] = FileChange(path=path, content=bytes(change.content), encoding=change.encoding)

    if not by_path:
        raise ValidationError("At least one file change is required.")
    return list(by_path.values())


def _coerce(path: str, value: FileChange | bytes | str) -> FileChange:
    if isinstance(value, FileChange):
        return FileChange(path=path, content=value.content, encoding=value.encoding)
    if isinstance(value, str):
        try:
            return FileChange.text(path, value)
        except UnicodeEncodeError as exc:
            raise ValidationError(f"Text content for '{path}' is not valid UTF-8.") from exc
    if isinstance(value, (bytes, bytearray)):
        return FileChange.binary(path, bytes(value))
    raise ValidationError(f"Unsupported content type for '{path}': {type(value).__name__}")
