"""Tree composer — overlays new blobs on the head commit's tree."""

from __future__ import annotations

import logging
from typing import Sequence

from dex_publisher.domain.entities import Blob, Commit, TreeEntry
from dex_publisher.domain.ports.git_store import GitStore
from dex_publisher.domain.value_objects import RepoCoordinates

logger = logging.getLogger(__name__)


def overlay_entries(blobs: Sequence[Blob]) -> list[TreeEntry]:
    """One regular-file entry per changed path, sorted by path."""
    return [TreeEntry(path=b.path, blob_sha=b.sha) for b in sorted(blobs, key=lambda b: b.path)]


async def compose_tree(
    store: GitStore,
    target: RepoCoordinates,
    head: Commit,
    blobs: Sequence[Blob],
) -> str:
    """Create a tree equal to *head*'s tree except for the paths in *blobs*.

    Paths not listed are inherited from the base tree untouched.
    """
    entries = overlay_entries(blobs)
    tree_sha = await store.create_tree(target, head.tree_sha, entries)
    logger.info(
        "Created tree %s over base %s (%d changed path(s))",
        tree_sha,
        head.tree_sha,
        len(entries),
    )
    return tree_sha
