"""Domain exception hierarchy.

Each exception maps to a specific HTTP status code at the interface layer.
Inner layers raise these; the outermost error-handler translates them.
"""

from __future__ import annotations


class DexPublisherError(Exception):
    """Base exception for the entire application."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ── Caller input ────────────────────────────────────────────────────────────


class ValidationError(DexPublisherError):
    """Malformed path, content or commit message supplied by the caller."""


# ── Git hosting platform errors ─────────────────────────────────────────────


class AuthorizationError(DexPublisherError):
    """The token is missing or lacks the scope for this operation (401/403)."""


class NotFoundError(DexPublisherError):
    """The repository, branch or object does not exist (404)."""


class ConflictError(DexPublisherError):
    """The branch ref moved while a publish was in flight."""


class TransientError(DexPublisherError):
    """Network failure, server error or rate limit; retryable by the caller."""


class UnknownError(DexPublisherError):
    """Any other failure; the original error is chained as ``__cause__``."""


# ── Conditional cache ───────────────────────────────────────────────────────


class CacheInvariantError(DexPublisherError):
    """A 304 Not Modified arrived for a request with no cached entry."""
