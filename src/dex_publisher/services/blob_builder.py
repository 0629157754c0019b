"""Content blob builder — uploads every changed file as a git blob, concurrently."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Sequence

from dex_publisher.domain.entities import Blob, FileChange
from dex_publisher.domain.ports.git_store import GitStore
from dex_publisher.domain.value_objects import RepoCoordinates

logger = logging.getLogger(__name__)


def git_blob_id(content: bytes) -> str:
    """Return the SHA-1 git assigns to a blob holding *content*."""
    header = f"blob {len(content)}\0".encode("ascii")
    return hashlib.sha1(header + content).hexdigest()


async def build_blobs(
    store: GitStore,
    target: RepoCoordinates,
    changes: Sequence[FileChange],
    *,
    dedupe: bool = True,
) -> list[Blob]:
    """Upload all *changes* and return one :class:`Blob` per path, in order.

    Uploads are dispatched together and awaited jointly; the first failure
    propagates and the caller never sees a partial blob list.  With *dedupe*
    identical contents are uploaded once.
    """
    if dedupe:
        unique: dict[str, bytes] = {}
        for change in changes:
            unique.setdefault(git_blob_id(change.content), change.content)
        keys = list(unique)
        shas = await asyncio.gather(*(store.create_blob(target, unique[k]) for k in keys))
        sha_by_key = dict(zip(keys, shas))
        blobs = [Blob(sha=sha_by_key[git_blob_id(c.content)], path=c.path) for c in changes]
        logger.info(
            "Created %d blob(s) for %d file(s) in %s", len(keys), len(changes), target.full_name
        )
        return blobs

    shas = await asyncio.gather(*(store.create_blob(target, c.content) for c in changes))
    logger.info("Created %d blob(s) in %s", len(shas), target.full_name)
    return [Blob(sha=sha, path=c.path) for c, sha in zip(changes, shas)]
