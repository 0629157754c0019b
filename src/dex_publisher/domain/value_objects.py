"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from dex_publisher.domain.exceptions import ValidationError

_NAME_RE = re.compile(r"^[A-Za-z0-9\-_.]+$")
_BRANCH_RE = re.compile(r"^[A-Za-z0-9\-_./]+$")


@dataclass(frozen=True, slots=True)
class RepoCoordinates:
    """Validated ``owner/repo@branch`` target of a publish.

    Rejects names GitHub would not accept so a bad caller value fails before
    any request is sent.
    """

    owner: str
    repo: str
    branch: str = "main"

    def __post_init__(self) -> None:
        if not _NAME_RE.match(self.owner or ""):
            raise ValidationError(f"Invalid repository owner: '{self.owner}'.")
        if not _NAME_RE.match(self.repo or ""):
            raise ValidationError(f"Invalid repository name: '{self.repo}'.")
        if (
            not _BRANCH_RE.match(self.branch or "")
            or self.branch.startswith("/")
            or self.branch.endswith("/")
            or ".." in self.branch
        ):
            raise ValidationError(f"Invalid branch name: '{self.branch}'.")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def ref_name(self) -> str:
        return f"heads/{self.branch}"


def normalize_path(path: str) -> str:
    """Return *path* as a clean repo-relative path or raise ValidationError.

    A single leading ``/`` is accepted and stripped; ``..``, empty segments and
    trailing slashes are rejected.
    """
    if not isinstance(path, str) or not path.strip():
        raise ValidationError("File path must not be empty.")
    cleaned = path[1:] if path.startswith("/") else path
    if not cleaned or cleaned.startswith("/") or cleaned.endswith("/"):
        raise ValidationError(f"Invalid file path: '{path}'.")
    segments = cleaned.split("/")
    if any(seg in ("", ".", "..") for seg in segments):
        raise ValidationError(f"Invalid file path: '{path}'.")
    if "\x00" in cleaned:
        raise ValidationError(f"File path contains a NUL byte: '{path!r}'.")
    return cleaned
