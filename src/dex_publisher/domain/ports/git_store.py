"""Port: git object store — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol, Sequence

from dex_publisher.domain.entities import Commit, Ref, TreeEntry
from dex_publisher.domain.value_objects import RepoCoordinates


class GitStore(Protocol):
    """Abstract contract over the hosting platform's low-level git data API."""

    async def get_ref(self, target: RepoCoordinates) -> Ref:
        """Return the branch ref for ``target.branch``."""
        ...

    async def get_commit(self, target: RepoCoordinates, sha: str) -> Commit:
        """Return the commit object *sha* (used to find its tree)."""
        ...

    async def create_blob(self, target: RepoCoordinates, content: bytes) -> str:
        """Upload *content* and return the blob SHA."""
        ...

    async def create_tree(
        self, target: RepoCoordinates, base_tree_sha: str, entries: Sequence[TreeEntry]
    ) -> str:
        """Create a tree overlaying *entries* on *base_tree_sha*; return its SHA."""
        ...

    async def create_commit(
        self, target: RepoCoordinates, tree_sha: str, parent_sha: str, message: str
    ) -> Commit:
        """Create a single-parent commit."""
        ...

    async def update_ref(
        self, target: RepoCoordinates, sha: str, *, force: bool
    ) -> Ref:
        """Point the branch at *sha*; ``force=False`` rejects non-fast-forwards."""
        ...
