"""Commit publisher — creates the commit and advances the branch ref last."""

from __future__ import annotations

import logging

from dex_publisher.domain.entities import Commit
from dex_publisher.domain.exceptions import ConflictError
from dex_publisher.domain.ports.git_store import GitStore
from dex_publisher.domain.value_objects import RepoCoordinates

logger = logging.getLogger(__name__)


async def publish_commit(
    store: GitStore,
    target: RepoCoordinates,
    tree_sha: str,
    parent_sha: str,
    message: str,
    *,
    conditional: bool = True,
) -> Commit:
    """Create one commit on top of *parent_sha* and move the branch to it.

    With *conditional* the branch is re-read first and the update is sent
    without ``force``, so a head that moved since *parent_sha* was read
    raises :class:`ConflictError` and the ref is left alone.  Otherwise the
    update is forced (last writer wins).
    """
    commit = await store.create_commit(target, tree_sha, parent_sha, message)
    logger.info("Created commit %s (parent %s) in %s", commit.sha, parent_sha, target.full_name)

    if conditional:
        current = await store.get_ref(target)
        if current.target_sha != parent_sha:
            raise ConflictError(
                f"Branch {target.branch} of {target.full_name} moved from {parent_sha} "
                f"to {current.target_sha}; commit {commit.sha} was not published."
            )

    ref = await store.update_ref(target, commit.sha, force=not conditional)
    logger.info("Advanced %s of %s to %s", ref.name, target.full_name, ref.target_sha)
    return commit
